"""
Picks Engine — Engine
───────────────────────
One object per process, built at startup and injected into the routes.

Discovery flow:
  criteria → derive key → cache hit? return it
           → market context + success patterns → prompt → model
           → validate & repair → cache 4h → learning writes (background)

Analysis flow:
  ticker → derive key → cache hit? return it
         → market snapshot (cached 15m) → prompt → model
         → normalise → cache 15m

There is no de-duplication of identical in-flight requests; two concurrent
misses both generate.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from picks_engine.cache.keys import derive_key
from picks_engine.cache.response_cache import ResponseCache
from picks_engine.cache.store import CacheStore
from picks_engine.config import Settings
from picks_engine.errors import GenerationError, PicksEngineError
from picks_engine.learning import BackgroundWriter, LearningStore
from picks_engine.models.criteria import Criteria
from picks_engine.models.stock_pick import StockPick
from picks_engine.prompts import build_analysis_prompt, build_discovery_prompt
from picks_engine.providers.anthropic_llm import AnthropicGenerator
from picks_engine.providers.base import MarketDataError, MarketDataProvider, TextGenerator
from picks_engine.providers.yahoo import YahooMarketData
from picks_engine.validation import PickValidator, normalize_analysis

log = logging.getLogger("pe.engine")

DISCOVERY = "discovery"
ANALYSIS  = "analysis"

DISCOVERY_TEMPERATURE = 0.3
DISCOVERY_MAX_TOKENS  = 4000
ANALYSIS_TEMPERATURE  = 0.3
ANALYSIS_MAX_TOKENS   = 2000


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PicksEngine:

    def __init__(
        self,
        store: CacheStore,
        generator: Optional[TextGenerator],
        market_data: MarketDataProvider,
        settings: Optional[Settings] = None,
        writer: Optional[BackgroundWriter] = None,
    ):
        self.settings    = settings or Settings()
        self.store       = store
        self.responses   = ResponseCache(store)
        self.learning    = LearningStore(store)
        self.generator   = generator
        self.market_data = market_data
        self.validator   = PickValidator(market_data, self.settings.lookup_timeout)
        self.writer      = writer or BackgroundWriter(max_concurrent=self.settings.max_learning_writes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PicksEngine":
        return cls(
            store=CacheStore.from_settings(settings),
            generator=AnthropicGenerator.from_settings(settings),
            market_data=YahooMarketData(),
            settings=settings,
        )

    async def close(self):
        await self.writer.drain()
        await self.store.close()
        close = getattr(self.market_data, "close", None)
        if close:
            await close()

    def is_caching_enabled(self) -> bool:
        return self.store.enabled

    def _with_model(self, criteria: Criteria) -> Criteria:
        if criteria.model:
            return criteria
        return replace(criteria, model=self.settings.default_model)

    # ── Cache facade ──────────────────────────────────────────

    async def get_cached_or_null(self, criteria: Criteria, request_type: str,
                                 ticker: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return await self.responses.get_generated_result(derive_key(criteria, request_type, ticker))

    async def store_result(self, criteria: Criteria, request_type: str, payload: Dict[str, Any],
                           ttl_hours: float, ticker: Optional[str] = None) -> None:
        await self.responses.cache_generated_result(
            derive_key(criteria, request_type, ticker), payload, ttl_hours
        )

    async def validate_and_repair(self, raw_text: str, criteria: Criteria) -> List[StockPick]:
        return await self.validator.validate_and_repair(raw_text, criteria)

    def record_outcome(self, criteria: Criteria, picks: Iterable[StockPick],
                       session_id: Optional[str] = None) -> None:
        """Schedule learning writes. Returns immediately; failures are logged only."""
        picks = list(picks)
        if picks:
            self.writer.submit(
                "success_pattern",
                lambda: self.learning.record_success_pattern(criteria, picks),
            )
            for pick in picks:
                self.writer.submit(
                    f"performance:{pick.ticker}",
                    lambda p=pick: self.learning.track_performance(p.ticker, p),
                )
        if session_id:
            self.writer.submit(
                "user_search",
                lambda: self.learning.record_user_search(session_id, criteria, len(picks)),
            )

    # ── Generation ────────────────────────────────────────────

    async def _generate(self, prompt: str, temperature: float, max_tokens: int, model: str) -> str:
        if self.generator is None:
            raise GenerationError("Anthropic API key not configured. Please add your API key to continue.")
        try:
            return await self.generator.generate(prompt, temperature, max_tokens, model=model)
        except PicksEngineError:
            raise
        except Exception as e:
            raise GenerationError(f"AI generation failed: {e}") from e

    async def market_context(self) -> dict:
        try:
            overview = await self.market_data.overview()
            return {
                "governmentTrades": list(overview.get("governmentTrades") or [])[:10],
                "timestamp":        _now_iso(),
            }
        except Exception as e:
            log.warning(f"Market context gathering failed: {e}")
            return {
                "governmentTrades": [],
                "timestamp":        _now_iso(),
                "error":            "Market context unavailable",
            }

    async def generate_picks(self, criteria: Criteria,
                             session_id: Optional[str] = None) -> Dict[str, Any]:
        criteria = self._with_model(criteria)

        cached = await self.get_cached_or_null(criteria, DISCOVERY)
        if cached:
            log.info(f"Using cached discovery result ({criteria.risk_appetite}/{criteria.discovery_method})")
            if session_id:
                count = len(cached.get("picks") or [])
                self.writer.submit(
                    "user_search",
                    lambda: self.learning.record_user_search(session_id, criteria, count),
                )
            return cached

        context  = await self.market_context()
        patterns = await self.learning.fetch_success_patterns(criteria)
        prompt   = build_discovery_prompt(criteria, context, patterns)

        log.info(f"Generating fresh picks with {criteria.model}")
        text  = await self._generate(prompt, DISCOVERY_TEMPERATURE, DISCOVERY_MAX_TOKENS, criteria.model)
        picks = await self.validate_and_repair(text, criteria)

        payload = {
            "picks":       [p.to_dict() for p in picks],
            "modelUsed":   criteria.model,
            "criteria":    criteria.to_dict(),
            "generatedAt": _now_iso(),
        }
        await self.store_result(criteria, DISCOVERY, payload, self.settings.discovery_ttl_hours)
        self.record_outcome(criteria, picks, session_id)

        log.info(f"Generated {len(picks)} picks with {criteria.model}")
        return {**payload, "fromCache": False}

    async def analyze_stock(self, ticker: str, criteria: Optional[Criteria] = None) -> Dict[str, Any]:
        ticker   = ticker.upper().strip()
        criteria = self._with_model(criteria or Criteria())

        cached = await self.get_cached_or_null(criteria, ANALYSIS, ticker)
        if cached:
            log.info(f"Using cached analysis for {ticker}")
            return cached

        stock_data = await self._stock_data(ticker)
        prompt = build_analysis_prompt(ticker, stock_data)
        text   = await self._generate(prompt, ANALYSIS_TEMPERATURE, ANALYSIS_MAX_TOKENS, criteria.model)
        result = normalize_analysis(text, ticker, stock_data)

        payload = {**result.to_dict(), "modelUsed": criteria.model}
        await self.store_result(criteria, ANALYSIS, payload, self.settings.analysis_ttl_hours, ticker)
        log.info(f"Analysed {ticker} with {criteria.model}")
        return {**payload, "fromCache": False}

    async def _stock_data(self, ticker: str) -> dict:
        snapshot = await self.responses.get_market_snapshot(ticker)
        if snapshot:
            return snapshot
        try:
            data = await self.market_data.comprehensive_data(ticker)
        except PicksEngineError:
            raise
        except Exception as e:
            raise MarketDataError(f"Failed to load market data for {ticker}: {e}") from e
        await self.responses.cache_market_snapshot(ticker, data, self.settings.market_ttl_minutes)
        return data

    # ── Cache warming ─────────────────────────────────────────

    async def warm_cache(self, popular: Iterable[Criteria], generate: bool = False) -> List[str]:
        """Returns the discovery keys that missed. Regenerates them when asked."""
        if not self.is_caching_enabled():
            return []
        missing = []
        for criteria in popular:
            criteria = self._with_model(criteria)
            key = derive_key(criteria, DISCOVERY)
            if await self.responses.get_generated_result(key):
                continue
            missing.append(key)
            log.info(f"Cache miss for {key}{' — regenerating' if generate else ''}")
            if generate:
                try:
                    await self.generate_picks(criteria)
                except PicksEngineError as e:
                    log.warning(f"Warm generation failed for {key}: {e}")
        return missing
