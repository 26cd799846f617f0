"""Response caching for idempotent generation calls."""

from .response_cache import ResponseCache, CacheEntry

__all__ = ["ResponseCache", "CacheEntry"]
