"""Cache stores."""

from .ttl_cache_store import CacheStats, TTLCacheStore

__all__ = ["CacheStats", "TTLCacheStore"]
