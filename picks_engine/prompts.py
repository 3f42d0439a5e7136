"""
Picks Engine — Prompt Assembly
────────────────────────────────
Builds the discovery and single-ticker analysis prompts from criteria,
market context and prior success patterns. Unknown criteria values fall
back to the "all" guidance.
"""

from typing import List, Optional

from picks_engine.models.criteria import Criteria, RISK_REWARD_FLOORS

DISCOVERY_PROMPTS = {
    "emerging-growth": (
        "Focus on emerging growth companies with:\n"
        "- Revenue growth >25% YoY\n"
        "- Market cap $500M-$10B\n"
        "- Strong competitive moats\n"
        "- Expanding addressable markets\n"
        "- Recent positive catalysts"
    ),
    "international-plays": (
        "Focus on international opportunities:\n"
        "- ADRs of strong foreign companies\n"
        "- Currency-advantaged plays\n"
        "- Emerging market leaders\n"
        "- Global expansion stories\n"
        "- Geopolitical beneficiaries"
    ),
    "sector-rotation": (
        "Focus on sector rotation opportunities:\n"
        "- Sectors showing relative strength\n"
        "- Cyclical turning points\n"
        "- Policy beneficiaries\n"
        "- Supply/demand imbalances\n"
        "- Institutional rotation patterns"
    ),
    "thematic-plays": (
        "Focus on thematic investment opportunities:\n"
        "- AI/ML transformation\n"
        "- Energy transition\n"
        "- Demographics shifts\n"
        "- Infrastructure modernization\n"
        "- Digital transformation"
    ),
    "undervalued-gems": (
        "Focus on undervalued opportunities:\n"
        "- P/E ratios below sector average\n"
        "- Strong balance sheets\n"
        "- Hidden assets or catalysts\n"
        "- Temporary headwinds resolving\n"
        "- Management changes or activism"
    ),
    "momentum":   "Focus on momentum and technical breakouts",
    "value":      "Focus on undervalued opportunities with strong fundamentals",
    "growth":     "Focus on high-growth companies with expansion potential",
    "contrarian": "Focus on contrarian plays and turnaround stories",
    "all": (
        "Comprehensive analysis across all discovery methods:\n"
        "- Emerging growth opportunities\n"
        "- International plays and ADRs\n"
        "- Sector rotation beneficiaries\n"
        "- Thematic investment trends\n"
        "- Undervalued gems with catalysts"
    ),
}

CATALYST_PROMPTS = {
    "technical":       "Focus on technical analysis signals: breakouts, momentum, volume patterns, support/resistance levels",
    "earnings":        "Focus on earnings-related catalysts: upcoming reports, guidance revisions, estimate changes",
    "government":      "Focus on government trading activity: congressional purchases, insider activity, regulatory changes",
    "gov-trades":      "Focus on government trading activity: congressional purchases, insider activity, regulatory changes",
    "sector":          "Focus on sector momentum: relative strength, rotation patterns, industry trends",
    "sector-momentum": "Focus on sector momentum: relative strength, rotation patterns, industry trends",
    "all":             "Consider all catalyst types: technical, fundamental, government activity, and sector dynamics",
}

SECTOR_PROMPTS = {
    "technology":  "Technology sector focus: software, semiconductors, cloud computing, AI/ML",
    "tech":        "Technology sector focus: software, semiconductors, cloud computing, AI/ML",
    "healthcare":  "Healthcare focus: pharmaceuticals, biotechnology, medical devices, services",
    "biotech":     "Biotechnology focus: pharmaceuticals, medical devices, healthcare innovation",
    "finance":     "Financial sector focus: banks, insurance, fintech, payment processors",
    "financials":  "Financial sector focus: banks, insurance, fintech, payment processors",
    "energy":      "Energy sector focus: oil & gas, renewables, utilities, energy infrastructure",
    "consumer":    "Consumer focus: retail, restaurants, consumer goods, e-commerce",
    "industrials": "Industrial focus: manufacturing, aerospace, defense, infrastructure",
    "all":         "Diversified across all major sectors for balanced exposure",
}

MAX_GOV_TRADES = 10
MAX_PATTERNS   = 3


def _gov_trades_block(trades: List[dict]) -> str:
    if not trades:
        return "Government trading data unavailable.\n\n"
    lines = []
    for t in trades[:MAX_GOV_TRADES]:
        lines.append(
            f"- {t.get('representative', 'Unknown')}: "
            f"{str(t.get('transactionType', '')).upper()} {t.get('ticker', '?')} ({t.get('amount', 'n/a')})"
        )
    return "Recent Government Trading Activity:\n" + "\n".join(lines) + "\n\n"


def _patterns_block(patterns: List[dict]) -> str:
    if not patterns:
        return ""
    lines = []
    for p in patterns[:MAX_PATTERNS]:
        picks = ", ".join(
            f"{r.get('ticker')} ({r.get('sector')}, +{r.get('targetGain')}%, R/R {r.get('riskReward')})"
            for r in p.get("results", [])
        )
        lines.append(f"- Regime {p.get('marketRegime', 'unknown')}: {picks}")
    return "HISTORICAL CONTEXT (recent accepted picks for similar criteria):\n" + "\n".join(lines) + "\n\n"


def build_discovery_prompt(criteria: Criteria, market_context: dict,
                           success_patterns: Optional[List[dict]] = None) -> str:
    discovery = DISCOVERY_PROMPTS.get(criteria.discovery_method, DISCOVERY_PROMPTS["all"])
    catalyst  = CATALYST_PROMPTS.get(criteria.catalyst_type, CATALYST_PROMPTS["all"])
    sector    = SECTOR_PROMPTS.get(criteria.sector_preference, SECTOR_PROMPTS["all"])
    floors    = RISK_REWARD_FLOORS

    return f"""You are a professional quantitative analyst with 15+ years of experience. Perform a comprehensive multi-step stock analysis.

ANALYSIS CRITERIA:
- Timeframe: {criteria.timeframe}
- Risk Appetite: {criteria.risk_appetite}
- Discovery Method: {discovery}
- Catalyst Focus: {catalyst}
- Sector Focus: {sector}

{_gov_trades_block(market_context.get("governmentTrades") or [])}{_patterns_block(success_patterns or [])}ANALYSIS REQUIREMENTS:

1. STOCK DISCOVERY PROCESS:
   - Screen 2000+ stocks across major indices (S&P 500, NASDAQ, Russell 2000)
   - Include international ADRs and emerging market leaders
   - Apply quantitative filters based on the discovery method
   - Consider market cap ranges: small ($300M-2B), mid ($2B-10B), large ($10B+)

2. MULTI-STEP VALIDATION:
   - Fundamental analysis: revenue growth, profitability, balance sheet strength
   - Technical analysis: price action, volume, momentum indicators
   - Catalyst validation: upcoming events, news flow, insider activity
   - Risk assessment: volatility, liquidity, sector headwinds

3. POSITION SIZING & RISK MANAGEMENT:
   - Calculate appropriate entry, target, and stop-loss levels
   - Ensure risk-reward ratios of at least {floors['aggressive']}:1 for aggressive, {floors['moderate']}:1 for moderate, {floors['conservative']}:1 for conservative
   - Consider position correlation and portfolio impact

4. PROBABILITY ASSESSMENT:
   - Assign probability of success (0-100%) based on confluence of factors
   - Higher probabilities require multiple confirming signals
   - Account for market regime and macro environment

RESPONSE FORMAT (JSON):
{{
  "picks": [
    {{
      "ticker": "SYMBOL",
      "companyName": "Full Company Name",
      "entryPrice": 0.00,
      "targetPrice": 0.00,
      "stopLossPrice": 0.00,
      "riskRewardRatio": 0.0,
      "timeframe": "{criteria.timeframe}",
      "rationale": "Detailed analysis explaining the investment thesis, key catalysts, technical setup, and risk factors",
      "tags": ["sector", "catalyst-type", "market-cap", "risk-level"],
      "probabilityOfSuccess": 0,
      "marketCapBillion": 0.0,
      "sector": "Sector Name",
      "catalysts": ["catalyst1", "catalyst2", "catalyst3"],
      "technicalSignals": ["signal1", "signal2"],
      "riskFactors": ["risk1", "risk2"]
    }}
  ]
}}

QUALITY STANDARDS:
- Provide {criteria.number_of_picks} high-conviction picks (quality over quantity)
- Each pick must have a detailed, professional rationale (minimum 150 words)
- All prices must be realistic and based on current market conditions
- Risk-reward ratios must meet the specified criteria
- Probability assessments must be conservative and well-justified

Focus on actionable, high-probability opportunities with clear catalysts and well-defined risk parameters."""


def build_analysis_prompt(ticker: str, stock_data: dict) -> str:
    quote   = stock_data.get("quote") or {}
    profile = stock_data.get("profile") or {}
    try:
        cap = f"${float(profile.get('marketCap') or 0) / 1e9:.1f}B"
    except (TypeError, ValueError):
        cap = "N/A"

    return f"""Analyze {ticker} ({profile.get('name', ticker)}) and provide a comprehensive investment recommendation.

CURRENT DATA:
- Current Price: ${quote.get('price')}
- Market Cap: {cap}
- Sector: {profile.get('sector', 'Unknown')}
- Exchange: {profile.get('exchange', 'Unknown')}

ANALYSIS REQUIREMENTS:
1. Buy/Sell/Hold recommendation with confidence level (0-100%)
2. Specific target price and stop loss levels
3. Detailed rationale including:
   - Technical analysis (price action, momentum)
   - Fundamental analysis (valuation, growth prospects)
   - Risk assessment and key risk factors
4. Investment timeframe recommendation
5. Key metrics and volatility assessment

RESPONSE FORMAT (JSON):
{{
  "recommendation": "BUY|SELL|HOLD",
  "targetPrice": 0.00,
  "stopLoss": 0.00,
  "confidence": 0,
  "rationale": "Detailed analysis explaining the recommendation",
  "riskLevel": "LOW|MEDIUM|HIGH",
  "timeframe": "timeframe recommendation",
  "keyMetrics": {{
    "peRatio": 0.0,
    "marketCap": "market cap string",
    "volume": "volume string",
    "volatility": 0.0
  }}
}}"""
