"""
Picks Engine — Cache Store
────────────────────────────
Thin wrapper over Redis (Upstash or any TLS endpoint) with per-key TTL.

Caching is a cost optimisation, never a correctness requirement:
  - credentials missing, insecure or obviously placeholder → disabled
  - client construction failure                             → disabled
  - any read/write error at runtime                         → logged, treated as miss / no-op

Construct once per process and inject into every consumer.
"""

import logging
from typing import List, Optional
from urllib.parse import urlparse

import redis.asyncio as aioredis

from picks_engine.errors import ConfigurationError

log = logging.getLogger("pe.cache")

SOCKET_TIMEOUT = 2
UPSTASH_TLS_PORT = 6379

PLACEHOLDER_MARKERS = ("your_", "_here", "placeholder", "changeme")


def _has_placeholder(value: str) -> bool:
    lowered = value.lower()
    return any(m in lowered for m in PLACEHOLDER_MARKERS)


def resolve_redis_url(url: str, token: str) -> str:
    """
    Validate credentials and return a rediss:// URL.
    Upstash REST-style https://<host> endpoints map to rediss://<host>:6379.
    Raises ConfigurationError when the cache must stay disabled.
    """
    url, token = (url or "").strip(), (token or "").strip()
    if not url or not token:
        raise ConfigurationError("Redis URL or token not set")
    if _has_placeholder(url) or _has_placeholder(token):
        raise ConfigurationError("Redis credentials look like placeholders")

    parsed = urlparse(url)
    if parsed.scheme == "rediss":
        return url
    if parsed.scheme == "https" and parsed.hostname:
        return f"rediss://{parsed.hostname}:{parsed.port or UPSTASH_TLS_PORT}"
    raise ConfigurationError(f"Redis URL must use a secure scheme (got '{parsed.scheme or 'none'}')")


class CacheStore:
    """
    String-valued key-value store with TTL.
    Every method is safe to call when disabled and never raises on IO errors.
    """

    def __init__(self, client: Optional[aioredis.Redis] = None):
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "CacheStore":
        try:
            url = resolve_redis_url(settings.redis_url, settings.redis_token)
            client = aioredis.from_url(
                url,
                password=settings.redis_token,
                decode_responses=True,
                socket_timeout=SOCKET_TIMEOUT,
            )
        except ConfigurationError as e:
            log.warning(f"Redis cache disabled: {e}")
            return cls(None)
        except Exception as e:
            log.warning(f"Redis cache disabled — client construction failed: {e}")
            return cls(None)
        log.info("Redis cache enabled")
        return cls(client)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> bool:
        if not self._client:
            return False
        try:
            await self._client.setex(key, max(1, int(ttl_seconds)), value)
            return True
        except Exception as e:
            log.warning(f"Cache write failed for {key}: {e}")
            return False

    async def get(self, key: str) -> Optional[str]:
        if not self._client:
            return None
        try:
            return await self._client.get(key)
        except Exception as e:
            log.warning(f"Cache read failed for {key}: {e}")
            return None

    async def push_capped(self, list_key: str, value: str, max_len: int) -> bool:
        """Prepend to a list and trim it to the newest max_len entries."""
        if not self._client:
            return False
        try:
            await self._client.lpush(list_key, value)
            await self._client.ltrim(list_key, 0, max_len - 1)
            return True
        except Exception as e:
            log.warning(f"Capped push failed for {list_key}: {e}")
            return False

    async def range(self, list_key: str, start: int, end: int) -> List[str]:
        if not self._client:
            return []
        try:
            return list(await self._client.lrange(list_key, start, end))
        except Exception as e:
            log.warning(f"List read failed for {list_key}: {e}")
            return []

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        if not self._client:
            return False
        try:
            return bool(await self._client.expire(key, max(1, int(ttl_seconds))))
        except Exception as e:
            log.warning(f"Expire failed for {key}: {e}")
            return False

    async def ping(self) -> bool:
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())
        except Exception as e:
            log.warning(f"Redis ping failed: {e}")
            return False

    async def close(self):
        if self._client:
            try:
                await self._client.aclose()
            except Exception as e:
                log.warning(f"Redis close failed: {e}")
