"""
Catalog caching package.

Provides the fail-soft Redis client and the cache key layout used by the
cache-aside resolver. Entries are short-lived and expire purely by TTL;
nothing here invalidates on writes.
"""

from .cache_client import CacheResult, CacheStatus, RedisCacheClient

__all__ = ["CacheResult", "CacheStatus", "RedisCacheClient"]
