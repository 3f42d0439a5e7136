import asyncio
import json

import pytest

from picks_engine.learning import BackgroundWriter, LearningStore, UNKNOWN_REGIME
from picks_engine.models.criteria import Criteria
from picks_engine.models.stock_pick import StockPick


@pytest.fixture
def learning(store):
    return LearningStore(store)


def _pick(ticker="AAPL", sector="Technology"):
    return StockPick(ticker=ticker, company_name="Apple", entry_price=100.0, target_price=120.0,
                     stop_loss_price=92.0, risk_reward_ratio=2.5, sector=sector,
                     probability_of_success=70, market_cap_billion=3000.0)


class TestSuccessPatterns:

    @pytest.mark.asyncio
    async def test_pattern_summarises_results(self, learning, fake_redis):
        c = Criteria(risk_appetite="moderate", discovery_method="value", timeframe="1-week")
        assert await learning.record_success_pattern(c, [_pick(), _pick("XOM", sector=None)]) is True

        keyed = json.loads(await fake_redis.get("pattern:moderate:value:1-week"))
        assert keyed["marketRegime"] == UNKNOWN_REGIME
        assert keyed["results"][0] == {
            "ticker": "AAPL", "sector": "Technology", "marketCap": 3000.0,
            "targetGain": 20.0, "riskReward": 2.5, "confidence": 70,
        }
        assert keyed["results"][1]["sector"] == "unknown"
        assert 0 < await fake_redis.ttl("pattern:moderate:value:1-week") <= 30 * 86400

    @pytest.mark.asyncio
    async def test_global_list_capped_at_100(self, learning, fake_redis):
        c = Criteria()
        for _ in range(150):
            await learning.record_success_pattern(c, [_pick()])
        assert await fake_redis.llen("success_patterns") == 100

    @pytest.mark.asyncio
    async def test_fetch_filters_on_appetite_and_method(self, learning, fake_redis):
        await learning.record_success_pattern(Criteria(risk_appetite="moderate", discovery_method="value"), [_pick()])
        await learning.record_success_pattern(Criteria(risk_appetite="aggressive", discovery_method="value"), [_pick()])
        await learning.record_success_pattern(Criteria(risk_appetite="moderate", discovery_method="growth"), [_pick()])
        await fake_redis.lpush("success_patterns", "{corrupt")

        found = await learning.fetch_success_patterns(Criteria(risk_appetite="moderate", discovery_method="value"))

        assert len(found) == 1
        assert found[0]["criteria"]["riskAppetite"] == "moderate"

    @pytest.mark.asyncio
    async def test_malformed_criteria_entries_skipped(self, learning, fake_redis):
        await learning.record_success_pattern(Criteria(), [_pick()])
        await fake_redis.lpush("success_patterns", json.dumps({"criteria": "x"}))
        await fake_redis.lpush("success_patterns", json.dumps(["not", "an", "object"]))

        found = await learning.fetch_success_patterns(Criteria())

        assert len(found) == 1
        assert found[0]["criteria"]["riskAppetite"] == "aggressive"

    @pytest.mark.asyncio
    async def test_pattern_records_current_regime(self, learning, fake_redis):
        await learning.update_market_regime("bull", {"vix": 13})
        await learning.record_success_pattern(Criteria(), [_pick()])
        latest = json.loads((await fake_redis.lrange("success_patterns", 0, 0))[0])
        assert latest["marketRegime"] == "bull"


class TestMarketRegime:

    @pytest.mark.asyncio
    async def test_default_is_unknown(self, learning):
        assert await learning.current_market_regime() == UNKNOWN_REGIME
        assert await learning.market_regime_snapshot() is None

    @pytest.mark.asyncio
    async def test_update_and_read(self, learning, fake_redis):
        assert await learning.update_market_regime("bear", {"breadth": 0.3}) is True
        assert await learning.current_market_regime() == "bear"
        assert (await learning.market_regime_snapshot())["indicators"] == {"breadth": 0.3}
        assert 0 < await fake_redis.ttl("market_regime") <= 86400


class TestUserSearches:

    @pytest.mark.asyncio
    async def test_history_capped_and_expiring(self, learning, fake_redis):
        for i in range(60):
            await learning.record_user_search("sess-1", Criteria(), i)
        assert await fake_redis.llen("user:sess-1:searches") == 50
        newest = json.loads((await fake_redis.lrange("user:sess-1:searches", 0, 0))[0])
        assert newest["resultCount"] == 59
        assert 0 < await fake_redis.ttl("user:sess-1:searches") <= 7 * 86400

    @pytest.mark.asyncio
    async def test_no_session_no_write(self, learning):
        assert await learning.record_user_search("", Criteria(), 3) is False


class TestPerformanceTracking:

    @pytest.mark.asyncio
    async def test_record_written_with_90_day_ttl(self, learning, fake_redis):
        assert await learning.track_performance("aapl", _pick().to_dict()) is True
        keys = await fake_redis.keys("performance:AAPL:*")
        assert len(keys) == 1
        record = json.loads(await fake_redis.get(keys[0]))
        assert record["analysis"]["targetPrice"] == 120.0
        assert record["actualPerformance"] is None
        assert 0 < await fake_redis.ttl(keys[0]) <= 90 * 86400

    @pytest.mark.asyncio
    async def test_disabled_store_is_silent(self, disabled_store):
        learning = LearningStore(disabled_store)
        assert await learning.track_performance("AAPL", _pick()) is False
        assert await learning.record_success_pattern(Criteria(), [_pick()]) is False


class TestBackgroundWriter:

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        writer = BackgroundWriter(max_concurrent=2, max_pending=10)
        running, peak = 0, 0

        async def work():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        for i in range(6):
            assert writer.submit(f"w{i}", work) is True
        await writer.drain()

        assert peak == 2
        assert writer.pending == 0

    @pytest.mark.asyncio
    async def test_submissions_past_cap_are_dropped(self):
        writer = BackgroundWriter(max_concurrent=1, max_pending=2)
        gate = asyncio.Event()

        async def blocked():
            await gate.wait()

        assert writer.submit("a", blocked) is True
        assert writer.submit("b", blocked) is True
        assert writer.submit("c", blocked) is False
        assert writer.dropped == 1

        gate.set()
        await writer.drain()

    @pytest.mark.asyncio
    async def test_failures_are_counted_not_raised(self):
        writer = BackgroundWriter()

        async def broken():
            raise RuntimeError("redis went away")

        writer.submit("broken", broken)
        await writer.drain()
        assert writer.failed == 1
