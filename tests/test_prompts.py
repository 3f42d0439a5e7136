from picks_engine.models.criteria import Criteria
from picks_engine.prompts import DISCOVERY_PROMPTS, build_analysis_prompt, build_discovery_prompt


def test_discovery_prompt_reflects_criteria():
    c = Criteria(timeframe="1-month", discovery_method="undervalued-gems", number_of_picks=6)
    prompt = build_discovery_prompt(c, {"governmentTrades": []})
    assert DISCOVERY_PROMPTS["undervalued-gems"] in prompt
    assert "Provide 6 high-conviction picks" in prompt
    assert '"timeframe": "1-month"' in prompt
    assert "Government trading data unavailable" in prompt


def test_unknown_values_fall_back_to_all():
    prompt = build_discovery_prompt(Criteria(discovery_method="astrology"), {})
    assert DISCOVERY_PROMPTS["all"] in prompt


def test_trades_and_patterns_are_capped():
    trades = [{"representative": f"Rep {i}", "transactionType": "buy", "ticker": "AAPL", "amount": "$1K"}
              for i in range(15)]
    patterns = [{"marketRegime": "bull", "results": [{"ticker": f"T{i}", "sector": "Tech",
                                                       "targetGain": 20.0, "riskReward": 2.5}]}
                for i in range(5)]
    prompt = build_discovery_prompt(Criteria(), {"governmentTrades": trades}, patterns)
    assert "Rep 9:" in prompt and "Rep 10:" not in prompt
    assert "T2 (" in prompt and "T3 (" not in prompt


def test_analysis_prompt():
    prompt = build_analysis_prompt("AAPL", {
        "quote": {"price": 187.5},
        "profile": {"name": "Apple Inc.", "marketCap": 2_900_000_000_000, "sector": "Technology"},
    })
    assert "AAPL (Apple Inc.)" in prompt
    assert "$2900.0B" in prompt
