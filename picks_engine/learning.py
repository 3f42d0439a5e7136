"""
Picks Engine — Learning State
───────────────────────────────
Auxiliary state that improves future generations:

  success_patterns              capped list (100) of recent successful batches
  pattern:<risk>:<method>:<tf>  latest pattern per criteria combo, 30 days
  market_regime                 singleton, 24 hours
  user:<session>:searches       capped list (50), TTL refreshed to 7 days
  performance:<TICKER>:<ms>     one record per tracked pick, 90 days

Every write is best-effort. Failures are logged, never raised, never retried.
BackgroundWriter keeps these writes off the request path.
"""

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Union

from picks_engine.cache.keys import pattern_key, performance_key, user_search_key
from picks_engine.cache.store import CacheStore
from picks_engine.cache.ttl_config import (
    MARKET_REGIME_KEY, MAX_SUCCESS_PATTERNS, MAX_USER_SEARCHES,
    PATTERN_LOOKBACK, SUCCESS_PATTERNS_KEY, TTL,
)
from picks_engine.models.criteria import Criteria
from picks_engine.models.stock_pick import StockPick

log = logging.getLogger("pe.learning")

UNKNOWN_REGIME = "unknown"

PickLike = Union[StockPick, Dict[str, Any]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _as_pick(p: PickLike) -> StockPick:
    return p if isinstance(p, StockPick) else StockPick.from_dict(p)


def _summarise(pick: StockPick) -> dict:
    return {
        "ticker":     pick.ticker,
        "sector":     pick.sector or "unknown",
        "marketCap":  pick.market_cap_billion,
        "targetGain": pick.target_gain_pct,
        "riskReward": pick.risk_reward_ratio,
        "confidence": pick.probability_of_success,
    }


class LearningStore:

    def __init__(self, store: CacheStore):
        self.store = store

    # ── Success patterns ──────────────────────────────────────

    async def record_success_pattern(self, criteria: Criteria, results: Iterable[PickLike]) -> bool:
        if not self.store.enabled:
            return False
        try:
            pattern = {
                "criteria":     criteria.to_dict(),
                "results":      [_summarise(_as_pick(r)) for r in results],
                "timestamp":    _now_ms(),
                "marketRegime": await self.current_market_regime(),
            }
            raw = json.dumps(pattern, default=str)
        except Exception as e:
            log.warning(f"Success pattern build failed: {e}")
            return False

        keyed = await self.store.set_with_expiry(pattern_key(criteria), raw, TTL["pattern"])
        listed = await self.store.push_capped(SUCCESS_PATTERNS_KEY, raw, MAX_SUCCESS_PATTERNS)
        return keyed and listed

    async def fetch_success_patterns(self, criteria: Criteria) -> List[dict]:
        """Recent patterns with the same risk appetite and discovery method."""
        raw_items = await self.store.range(SUCCESS_PATTERNS_KEY, 0, PATTERN_LOOKBACK - 1)
        matches = []
        for raw in raw_items:
            try:
                pattern = json.loads(raw)
                c = pattern.get("criteria") or {}
                if not isinstance(c, dict):
                    raise TypeError("criteria is not an object")
            except (ValueError, TypeError, AttributeError):
                log.debug("Skipping corrupt success pattern")
                continue
            if (c.get("riskAppetite") == criteria.risk_appetite
                    and c.get("discoveryMethod") == criteria.discovery_method):
                matches.append(pattern)
        return matches

    # ── Market regime ─────────────────────────────────────────

    async def update_market_regime(self, regime: str, indicators: Optional[dict] = None) -> bool:
        try:
            raw = json.dumps({
                "regime":     regime,
                "indicators": indicators or {},
                "timestamp":  _now_ms(),
            }, default=str)
        except (TypeError, ValueError) as e:
            log.warning(f"Market regime serialise failed: {e}")
            return False
        return await self.store.set_with_expiry(MARKET_REGIME_KEY, raw, TTL["regime"])

    async def current_market_regime(self) -> str:
        raw = await self.store.get(MARKET_REGIME_KEY)
        if not raw:
            return UNKNOWN_REGIME
        try:
            return json.loads(raw).get("regime") or UNKNOWN_REGIME
        except (ValueError, AttributeError) as e:
            log.warning(f"Market regime read failed: {e}")
            return UNKNOWN_REGIME

    async def market_regime_snapshot(self) -> Optional[dict]:
        raw = await self.store.get(MARKET_REGIME_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    # ── User history ──────────────────────────────────────────

    async def record_user_search(self, session_id: str, criteria: Criteria, result_count: int) -> bool:
        if not session_id:
            return False
        key = user_search_key(session_id)
        raw = json.dumps({
            "criteria":    criteria.to_dict(),
            "resultCount": result_count,
            "timestamp":   _now_ms(),
        })
        pushed = await self.store.push_capped(key, raw, MAX_USER_SEARCHES)
        if not pushed:
            return False
        return await self.store.expire(key, TTL["user_search"])

    # ── Performance tracking ──────────────────────────────────

    async def track_performance(self, ticker: str, analysis: PickLike,
                                actual_performance: Optional[dict] = None) -> bool:
        """actual_performance is filled in later by a reconciliation job."""
        try:
            pick = _as_pick(analysis)
            raw = json.dumps({
                "ticker": ticker.upper(),
                "analysis": {
                    "entryPrice":    pick.entry_price,
                    "targetPrice":   pick.target_price,
                    "stopLossPrice": pick.stop_loss_price,
                    "timeframe":     pick.timeframe,
                    "confidence":    pick.probability_of_success,
                },
                "actualPerformance": actual_performance,
                "timestamp":         _now_ms(),
            }, default=str)
        except Exception as e:
            log.warning(f"Performance record build failed for {ticker}: {e}")
            return False
        return await self.store.set_with_expiry(
            performance_key(ticker, _now_ms()), raw, TTL["performance"]
        )


# ── Background dispatch ───────────────────────────────────────

class BackgroundWriter:
    """
    Detached fire-and-forget writes with a bounded footprint.
    At most `max_concurrent` run at once; beyond `max_pending` queued
    writes new submissions are dropped.
    """

    def __init__(self, max_concurrent: int = 4, max_pending: int = 64):
        self._sem = asyncio.Semaphore(max(1, max_concurrent))
        self._max_pending = max_pending
        self._tasks: Set[asyncio.Task] = set()
        self.dropped = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, name: str, factory: Callable[[], Awaitable[Any]]) -> bool:
        if len(self._tasks) >= self._max_pending:
            self.dropped += 1
            log.warning(f"Learning write '{name}' dropped — {len(self._tasks)} already pending")
            return False

        async def _do():
            async with self._sem:
                try:
                    await factory()
                except Exception as e:
                    self.failed += 1
                    log.warning(f"Learning write '{name}' failed: {e}")

        task = asyncio.create_task(_do())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def drain(self):
        """Wait for everything currently in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
