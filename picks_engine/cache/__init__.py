from .keys import derive_key
from .response_cache import ResponseCache
from .store import CacheStore

__all__ = ["derive_key", "ResponseCache", "CacheStore"]
