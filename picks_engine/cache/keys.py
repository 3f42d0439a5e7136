"""
Picks Engine — Cache Keys
───────────────────────────
Human-readable composite keys. No hashing: the key doubles as a debugging
aid, and only the listed criteria fields take part, so field order and
extra fields never change it.
"""

from typing import Mapping, Optional, Union

from picks_engine.cache.ttl_config import MARKET_PREFIX
from picks_engine.models.criteria import Criteria

DELIMITER = ":"

CriteriaLike = Union[Criteria, Mapping]


def _as_criteria(criteria: CriteriaLike) -> Criteria:
    if isinstance(criteria, Criteria):
        return criteria
    return Criteria.from_dict(dict(criteria))


def derive_key(criteria: CriteriaLike, request_type: str, ticker: Optional[str] = None) -> str:
    """
    discovery:aggressive:all:3-days
    analysis:moderate:value:1-week:AAPL:claude-sonnet-4-20250514
    """
    c = _as_criteria(criteria)
    parts = [request_type, c.risk_appetite, c.discovery_method, c.timeframe]
    if ticker:
        parts.append(ticker.upper().strip())
    if c.model:
        parts.append(c.model)
    return DELIMITER.join(parts)


def pattern_key(criteria: CriteriaLike) -> str:
    c = _as_criteria(criteria)
    return DELIMITER.join(["pattern", c.risk_appetite, c.discovery_method, c.timeframe])


def market_key(ticker: str) -> str:
    return f"{MARKET_PREFIX}{DELIMITER}{ticker.upper()}"


def user_search_key(session_id: str) -> str:
    return f"user{DELIMITER}{session_id}{DELIMITER}searches"


def performance_key(ticker: str, ts_ms: int) -> str:
    return f"performance{DELIMITER}{ticker.upper()}{DELIMITER}{ts_ms}"
