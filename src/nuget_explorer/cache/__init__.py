"""
Caching for registry lookups.
"""

from .memory_cache import MemoryCache, CacheEntry, cache_key

__all__ = [
    "MemoryCache",
    "CacheEntry",
    "cache_key"
]
