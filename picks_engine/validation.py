"""
Picks Engine — Pick Validation & Repair
─────────────────────────────────────────
Turns raw generated text into picks that are safe to show and cache.

Batch level (fatal):
  no JSON object in the text        → ParseError
  JSON without a `picks` list       → FormatError
  every pick rejected               → BatchEmptyError

Pick level (isolated, the batch continues):
  missing ticker / name / entry / target      → skipped
  ticker not a real, tradable instrument      → skipped
  live quote unavailable or timed out         → AI entry estimate kept
  target <= entry                             → target = entry × 1.15
  stop >= entry (or missing)                  → stop   = entry × 0.92
  R/R below the appetite floor                → target raised to meet it

Picks are checked concurrently; survivors keep their original order.
"""

import asyncio
import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, List, Optional

from picks_engine.errors import BatchEmptyError, FormatError, ParseError, PickRejected
from picks_engine.models.analysis import AnalysisResult, KeyMetrics
from picks_engine.models.criteria import Criteria
from picks_engine.models.stock_pick import StockPick
from picks_engine.providers.base import MarketDataProvider

log = logging.getLogger("pe.validation")

TARGET_REPAIR_MULT = 1.15   # 15% minimum target
STOP_REPAIR_MULT   = 0.92   # 8% maximum loss
PRICE_DP           = 4
RATIO_DP           = 2

DEFAULT_PROBABILITY = 65
DEFAULT_MARKET_CAP  = 5.0
DEFAULT_SECTOR      = "Technology"
DEFAULT_CATALYSTS   = ["Technical breakout", "Sector momentum"]
DEFAULT_SIGNALS     = ["Volume surge", "Moving average cross"]
DEFAULT_RISKS       = ["Market volatility", "Sector rotation"]
DEFAULT_CAP_TAG     = "mid-cap"

_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


def extract_json(text: str) -> dict:
    """Greedy first-`{` to last-`}` span, decoded."""
    match = _JSON_SPAN.search(text or "")
    if not match:
        raise ParseError("No JSON found in AI response")
    try:
        parsed = json.loads(match.group(0))
    except ValueError as e:
        raise ParseError(f"Malformed JSON in AI response: {e}") from e
    if not isinstance(parsed, dict):
        raise ParseError("AI response JSON is not an object")
    return parsed


def risk_reward(entry: float, target: float, stop: float) -> float:
    return round((target - entry) / (entry - stop), RATIO_DP)


def repair_prices(pick: StockPick, floor: float) -> StockPick:
    """Enforce target > entry > stop and the R/R floor. Mutates and returns pick."""
    entry = pick.entry_price
    prices = (entry, pick.target_price, pick.stop_loss_price)
    if not all(p is None or math.isfinite(p) for p in prices):
        raise PickRejected(pick.ticker, "non-finite price")
    if entry <= 0:
        raise PickRejected(pick.ticker, "non-positive entry price")

    if pick.target_price <= entry:
        log.warning(f"Adjusting target for {pick.ticker}: {pick.target_price} <= entry {entry}")
        pick.target_price = round(entry * TARGET_REPAIR_MULT, PRICE_DP)

    if pick.stop_loss_price is None or pick.stop_loss_price >= entry:
        log.warning(f"Adjusting stop loss for {pick.ticker}: {pick.stop_loss_price} >= entry {entry}")
        pick.stop_loss_price = round(entry * STOP_REPAIR_MULT, PRICE_DP)

    pick.risk_reward_ratio = risk_reward(entry, pick.target_price, pick.stop_loss_price)

    if pick.risk_reward_ratio < floor:
        log.warning(f"Raising target for {pick.ticker}: R/R {pick.risk_reward_ratio} < {floor}")
        raised = entry + (entry - pick.stop_loss_price) * floor
        pick.target_price = round(raised, PRICE_DP)
        # 4 dp target rounding can undershoot the floor on very tight stops
        pick.risk_reward_ratio = max(risk_reward(entry, raised, pick.stop_loss_price), floor)

    return pick


def fill_defaults(pick: StockPick, criteria: Criteria) -> StockPick:
    pick.probability_of_success = pick.probability_of_success or DEFAULT_PROBABILITY
    pick.market_cap_billion = pick.market_cap_billion or DEFAULT_MARKET_CAP
    pick.sector = pick.sector or DEFAULT_SECTOR
    pick.catalysts = pick.catalysts or list(DEFAULT_CATALYSTS)
    pick.technical_signals = pick.technical_signals or list(DEFAULT_SIGNALS)
    pick.risk_factors = pick.risk_factors or list(DEFAULT_RISKS)
    pick.tags = pick.tags or [pick.sector.lower(), criteria.risk_appetite, DEFAULT_CAP_TAG]
    pick.timeframe = pick.timeframe or criteria.timeframe
    return pick


class PickValidator:

    def __init__(self, market_data: MarketDataProvider, lookup_timeout: Optional[float] = None):
        self.market_data = market_data
        self.lookup_timeout = lookup_timeout or None

    async def _lookup(self, coro):
        if self.lookup_timeout:
            return await asyncio.wait_for(coro, self.lookup_timeout)
        return await coro

    async def validate_and_repair(self, raw_text: str, criteria: Criteria) -> List[StockPick]:
        parsed = extract_json(raw_text)
        candidates = parsed.get("picks")
        if not isinstance(candidates, list):
            raise FormatError("Invalid response format: missing picks array")

        log.info(f"Found {len(candidates)} picks to validate")
        results = await asyncio.gather(*[self._validate_one(c, criteria) for c in candidates])
        picks = [p for p in results if p is not None]

        if not picks:
            raise BatchEmptyError("No valid picks after validation")
        log.info(f"Validation complete: {len(picks)}/{len(candidates)} picks accepted")
        return picks

    async def _validate_one(self, raw: Any, criteria: Criteria) -> Optional[StockPick]:
        ticker = raw.get("ticker") if isinstance(raw, dict) else None
        try:
            if not isinstance(raw, dict):
                raise PickRejected("?", "pick is not an object")
            pick = StockPick.from_dict(raw)
            if not (pick.ticker and pick.company_name and pick.entry_price and pick.target_price):
                raise PickRejected(ticker, "missing required fields")

            if not await self._lookup(self.market_data.validate_ticker(pick.ticker)):
                raise PickRejected(pick.ticker, "failed ticker validation")

            await self._apply_live_quote(pick)
            repair_prices(pick, criteria.risk_reward_floor)
            fill_defaults(pick, criteria)
            log.debug(f"{pick.ticker} validated")
            return pick

        except PickRejected as e:
            log.warning(f"Skipping {e}")
        except Exception as e:
            log.warning(f"Validation failed for {ticker}: {e}")
        return None

    async def _apply_live_quote(self, pick: StockPick):
        try:
            quote = await self._lookup(self.market_data.quick_quote(pick.ticker))
            price = float(quote["price"])
            if not math.isfinite(price) or price <= 0:
                raise ValueError(f"bad live price {price}")
        except Exception as e:
            log.warning(f"Could not get current price for {pick.ticker}, using AI estimate: {e!r}")
            return

        pick.entry_price = round(price, PRICE_DP)
        live_name = quote.get("companyName")
        if live_name and live_name != f"{pick.ticker} Corporation":
            pick.company_name = live_name


# ── Single-ticker analysis ────────────────────────────────────

def _fmt_billions(market_cap: Any) -> str:
    try:
        return f"${float(market_cap) / 1e9:.1f}B"
    except (TypeError, ValueError):
        return "N/A"


def _fmt_volume(volume: Any) -> str:
    try:
        return f"{int(volume):,}"
    except (TypeError, ValueError):
        return "N/A"


def normalize_analysis(raw_text: str, ticker: str, stock_data: dict) -> AnalysisResult:
    """Fill an AnalysisResult from generated JSON, anchored on live data."""
    analysis = extract_json(raw_text)
    quote   = stock_data.get("quote") or {}
    profile = stock_data.get("profile") or {}
    price   = float(quote.get("price") or 0)
    metrics = analysis.get("keyMetrics") or {}

    recommendation = str(analysis.get("recommendation") or "HOLD").upper()
    if recommendation not in ("BUY", "SELL", "HOLD"):
        recommendation = "HOLD"
    risk_level = str(analysis.get("riskLevel") or "MEDIUM").upper()
    if risk_level not in ("LOW", "MEDIUM", "HIGH"):
        risk_level = "MEDIUM"

    return AnalysisResult(
        ticker=ticker.upper(),
        company_name=profile.get("name") or ticker.upper(),
        current_price=price,
        recommendation=recommendation,
        target_price=analysis.get("targetPrice") or round(price * 1.1, PRICE_DP),
        stop_loss=analysis.get("stopLoss") or round(price * 0.9, PRICE_DP),
        confidence=analysis.get("confidence") or 75,
        rationale=analysis.get("rationale") or
            "Analysis based on current market conditions and company fundamentals.",
        risk_level=risk_level,
        timeframe=analysis.get("timeframe") or "2-4 weeks",
        key_metrics=KeyMetrics(
            pe_ratio=metrics.get("peRatio") or 25.0,
            market_cap=_fmt_billions(profile.get("marketCap")),
            volume=_fmt_volume(quote.get("volume")),
            volatility=metrics.get("volatility") or 0.25,
        ),
        data_source="live",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
