"""
Result-type Redis cache client for the Catalog service.

``get`` and ``set`` never raise. Every call returns a ``CacheResult`` whose
status tells the caller whether it found a value, stored one, or hit an
error and should carry on without the cache.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import redis.asyncio as redis

from shared.logging import get_logger


class CacheStatus(str, Enum):
    """Outcome of a cache call."""

    HIT = "hit"
    MISS = "miss"
    STORED = "stored"
    ERROR = "error"


@dataclass(frozen=True)
class CacheResult:
    """Explicit outcome of a cache read or write."""

    status: CacheStatus
    value: Optional[str] = None
    error: Optional[str] = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT

    @property
    def failed(self) -> bool:
        return self.status is CacheStatus.ERROR

    @classmethod
    def found(cls, value: str) -> "CacheResult":
        return cls(CacheStatus.HIT, value=value)

    @classmethod
    def missing(cls) -> "CacheResult":
        return cls(CacheStatus.MISS)

    @classmethod
    def stored(cls) -> "CacheResult":
        return cls(CacheStatus.STORED)

    @classmethod
    def failure(cls, error: Any) -> "CacheResult":
        return cls(CacheStatus.ERROR, error=str(error))


class RedisCacheClient:
    """Fail-soft wrapper around a ``redis.asyncio`` client."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        client: Optional[Any] = None,
        connect_timeout: float = 10.0,
        command_timeout: float = 5.0,
    ) -> None:
        self.redis_url = redis_url
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.logger = get_logger("catalog.cache")
        self._redis = client

    def _get_redis(self):
        """Get Redis connection, created lazily from the configured URL."""
        if self._redis is None:
            if not self.redis_url:
                raise ConnectionError("Redis URL is not configured")
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.connect_timeout,
                socket_timeout=self.command_timeout,
            )
        return self._redis

    async def get(self, key: str) -> CacheResult:
        """Read a key. Returns HIT with the stored text, MISS, or ERROR."""
        try:
            value = await self._get_redis().get(key)
        except Exception as exc:
            self.logger.warning("Redis read failed", key=key, error=str(exc))
            return CacheResult.failure(exc)

        if value is None:
            return CacheResult.missing()
        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError as exc:
                self.logger.warning("Discarding undecodable cache payload", key=key)
                return CacheResult.failure(exc)
        return CacheResult.found(value)

    async def set(self, key: str, value: str, ttl_seconds: int) -> CacheResult:
        """Write a key with an expiry. Returns STORED or ERROR."""
        try:
            await self._get_redis().set(key, value, ex=int(ttl_seconds))
        except Exception as exc:
            self.logger.warning("Redis write failed", key=key, ttl=ttl_seconds, error=str(exc))
            return CacheResult.failure(exc)

        self.logger.debug("Cached value", key=key, ttl=ttl_seconds)
        return CacheResult.stored()

    async def ping(self) -> bool:
        """Return True when Redis responds to a ping."""
        try:
            return bool(await self._get_redis().ping())
        except Exception as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            return False

    async def close(self) -> None:
        """Close Redis connections."""
        if self._redis is None:
            return
        try:
            await self._redis.aclose()
        except Exception as exc:  # pragma: no cover - close is best effort
            self.logger.debug("Redis close failed", error=str(exc))
        finally:
            self._redis = None
