"""
Picks Engine — TTL Configuration
──────────────────────────────────
Single source of truth for all cache durations and list caps.
Organised by how fast the underlying thing goes stale.
"""

HOUR = 3600
DAY  = 24 * HOUR

# ── Generated results (hours, converted by the response cache) ─
DISCOVERY_TTL_HOURS = 4       # batch picks, generation cost dominates
ANALYSIS_TTL_HOURS  = 0.25    # single-ticker, intraday price drift

# ── Market data (minutes) ─────────────────────────────────────
MARKET_TTL_MINUTES  = 15

# ── Learning state (seconds) ──────────────────────────────────
TTL = {
    "pattern":      30 * DAY,   # keyed success pattern per criteria combo
    "regime":       DAY,        # market regime singleton
    "user_search":  7 * DAY,    # per-session search history
    "performance":  90 * DAY,   # post-hoc performance tracking
}

# ── List caps ─────────────────────────────────────────────────
MAX_SUCCESS_PATTERNS = 100
MAX_USER_SEARCHES    = 50
PATTERN_LOOKBACK     = 20     # most recent global entries scanned for context

# ── Key families ──────────────────────────────────────────────
AI_PREFIX            = "ai"
MARKET_PREFIX        = "market"
SUCCESS_PATTERNS_KEY = "success_patterns"
MARKET_REGIME_KEY    = "market_regime"
