"""
Picks Engine — Response Cache
───────────────────────────────
Two entry families, each with its own expiry policy:

  ai:<derived key>    generated payloads   {response, timestamp, model}
  market:<TICKER>     market snapshots     {data, timestamp, source, ttl}

Reads never raise. A corrupt entry is a miss.
Generated payloads come back flagged with fromCache / cachedAt.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

from picks_engine.cache.keys import market_key
from picks_engine.cache.store import CacheStore
from picks_engine.cache.ttl_config import AI_PREFIX, DISCOVERY_TTL_HOURS, HOUR, MARKET_TTL_MINUTES

log = logging.getLogger("pe.cache.response")


def _now_ms() -> int:
    return int(time.time() * 1000)


class ResponseCache:

    def __init__(self, store: CacheStore):
        self.store = store

    @property
    def enabled(self) -> bool:
        return self.store.enabled

    # ── Generated results ─────────────────────────────────────

    async def cache_generated_result(self, key: str, payload: Dict[str, Any],
                                     ttl_hours: float = DISCOVERY_TTL_HOURS) -> bool:
        if not self.store.enabled:
            return False
        if not isinstance(payload, dict):
            log.warning(f"Not caching {key}: payload is {type(payload).__name__}, expected an object")
            return False
        entry = {
            "response":  payload,
            "timestamp": _now_ms(),
            "model":     payload.get("modelUsed") or "unknown",
        }
        try:
            raw = json.dumps(entry, default=str)
        except (TypeError, ValueError) as e:
            log.warning(f"Could not serialise payload for {key}: {e}")
            return False
        ok = await self.store.set_with_expiry(f"{AI_PREFIX}:{key}", raw, round(ttl_hours * HOUR))
        if ok:
            log.debug(f"Cached {key} for {ttl_hours}h")
        return ok

    async def get_generated_result(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.store.get(f"{AI_PREFIX}:{key}")
        if not raw:
            return None
        try:
            entry = json.loads(raw)
            payload = entry["response"]
            if not isinstance(payload, dict):
                raise ValueError("response is not an object")
            payload["fromCache"] = True
            payload["cachedAt"] = entry.get("timestamp")
            return payload
        except (ValueError, KeyError, TypeError) as e:
            log.warning(f"Corrupt cache entry for {key}, treating as miss: {e}")
            return None

    # ── Market snapshots ──────────────────────────────────────

    async def cache_market_snapshot(self, ticker: str, data: Dict[str, Any],
                                    ttl_minutes: int = MARKET_TTL_MINUTES) -> bool:
        if not self.store.enabled:
            return False
        ttl_s = int(ttl_minutes * 60)
        entry = {
            "data":      data,
            "timestamp": _now_ms(),
            "source":    "live-api",
            "ttl":       ttl_s,
        }
        try:
            raw = json.dumps(entry, default=str)
        except (TypeError, ValueError) as e:
            log.warning(f"Could not serialise market data for {ticker}: {e}")
            return False
        return await self.store.set_with_expiry(market_key(ticker), raw, ttl_s)

    async def get_market_snapshot(self, ticker: str) -> Optional[Dict[str, Any]]:
        """
        Store-side expiry is the primary mechanism; the age check here is a
        safety net for stores whose expiry is eventually consistent.
        """
        raw = await self.store.get(market_key(ticker))
        if not raw:
            return None
        try:
            entry = json.loads(raw)
            ttl_s = entry.get("ttl") or MARKET_TTL_MINUTES * 60
            age_ms = _now_ms() - int(entry["timestamp"])
            if age_ms >= ttl_s * 1000:
                log.debug(f"{ticker}: market snapshot stale ({age_ms // 1000}s)")
                return None
            return entry["data"]
        except (ValueError, KeyError, TypeError) as e:
            log.warning(f"Corrupt market entry for {ticker}, treating as miss: {e}")
            return None
