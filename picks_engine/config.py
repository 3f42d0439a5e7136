"""
Picks Engine — Configuration
──────────────────────────────
Environment variables (.env or host):
    UPSTASH_REDIS_URL          = rediss://default:<token>@<host>:6379  (or https://<host>)
    UPSTASH_REDIS_TOKEN        = <token>
    ANTHROPIC_API_KEY          = sk-ant-...
    PICKS_DEFAULT_MODEL        = claude-sonnet-4-20250514
    PICKS_DISCOVERY_TTL_HOURS  = 4
    PICKS_ANALYSIS_TTL_HOURS   = 0.25
    PICKS_MARKET_TTL_MINUTES   = 15
    PICKS_LOOKUP_TIMEOUT       = 8        # seconds per quote lookup, 0 = none
    PICKS_MAX_LEARNING_WRITES  = 4        # concurrent background writes
    PICKS_WARM_INTERVAL        = 3600     # seconds between warm-cache runs, 0 = off
    PORT                       = 8000

The legacy Upstash REST names (UPSTASH_REDIS_REST_URL / _TOKEN) are honoured
when the plain names are absent.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from picks_engine.cache.ttl_config import (
    ANALYSIS_TTL_HOURS, DISCOVERY_TTL_HOURS, MARKET_TTL_MINUTES,
)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def _env(name: str, fallback: Optional[str] = None) -> str:
    value = os.getenv(name)
    if not value and fallback:
        value = os.getenv(fallback)
    return (value or "").strip()


@dataclass(frozen=True)
class Settings:
    redis_url:            str   = ""
    redis_token:          str   = ""
    anthropic_api_key:    str   = ""
    default_model:        str   = DEFAULT_MODEL
    discovery_ttl_hours:  float = DISCOVERY_TTL_HOURS
    analysis_ttl_hours:   float = ANALYSIS_TTL_HOURS
    market_ttl_minutes:   int   = MARKET_TTL_MINUTES
    lookup_timeout:       float = 8.0
    max_learning_writes:  int   = 4
    warm_interval:        int   = 3600
    port:                 int   = 8000

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            redis_url           = _env("UPSTASH_REDIS_URL", "UPSTASH_REDIS_REST_URL"),
            redis_token         = _env("UPSTASH_REDIS_TOKEN", "UPSTASH_REDIS_REST_TOKEN"),
            anthropic_api_key   = _env("ANTHROPIC_API_KEY"),
            default_model       = _env("PICKS_DEFAULT_MODEL") or DEFAULT_MODEL,
            discovery_ttl_hours = float(os.getenv("PICKS_DISCOVERY_TTL_HOURS", DISCOVERY_TTL_HOURS)),
            analysis_ttl_hours  = float(os.getenv("PICKS_ANALYSIS_TTL_HOURS", ANALYSIS_TTL_HOURS)),
            market_ttl_minutes  = int(os.getenv("PICKS_MARKET_TTL_MINUTES", MARKET_TTL_MINUTES)),
            lookup_timeout      = float(os.getenv("PICKS_LOOKUP_TIMEOUT", "8")),
            max_learning_writes = int(os.getenv("PICKS_MAX_LEARNING_WRITES", "4")),
            warm_interval       = int(os.getenv("PICKS_WARM_INTERVAL", "3600")),
            port                = int(os.getenv("PORT", "8000")),
        )

    @property
    def anthropic_configured(self) -> bool:
        key = self.anthropic_api_key
        return bool(key) and "your_" not in key
