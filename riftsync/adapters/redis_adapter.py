"""Redis-backed player cache store.

One JSON document per player under ``{prefix}:{puuid}``. A single ``SET``
replaces the whole document, so readers never observe a partial write.
Sync cycles for one player take turns through ``{prefix}:lock:{puuid}``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from riftsync.config.settings import Settings
from riftsync.contracts import PlayerCache
from riftsync.core.errors import CacheIOError
from riftsync.core.ports import PlayerCachePort

logger = logging.getLogger(__name__)


class RedisPlayerCacheStore(PlayerCachePort):
    """Player cache store using the async redis client."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        *,
        key_prefix: str = "riftsync:player-cache",
        ttl_seconds: int | None = None,
        lock_timeout_seconds: int = 300,
        client: Any = None,
    ) -> None:
        self._redis_url = redis_url
        self._key_prefix = key_prefix.rstrip(":")
        self._ttl_seconds = ttl_seconds
        self._lock_timeout_seconds = lock_timeout_seconds
        self._client: Any = client  # aioredis.Redis

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisPlayerCacheStore:
        return cls(
            settings.redis_url,
            key_prefix=settings.cache_key_prefix,
            ttl_seconds=settings.cache_ttl_seconds,
            lock_timeout_seconds=settings.sync_lock_timeout_seconds,
        )

    def key_for(self, puuid: str) -> str:
        return f"{self._key_prefix}:{puuid}"

    def lock_key_for(self, puuid: str) -> str:
        return f"{self._key_prefix}:lock:{puuid}"

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._client:
            logger.warning("Redis client already connected")
            return
        self._client = aioredis.from_url(
            self._redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        logger.info("Redis client connected")

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis client disconnected")

    async def read(self, puuid: str) -> PlayerCache | None:
        if not self._client:
            await self.connect()
        key = self.key_for(puuid)
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            raise CacheIOError("read", puuid, str(e)) from e
        if raw is None:
            return None
        try:
            return PlayerCache.model_validate_json(raw)
        except ValidationError as e:
            raise CacheIOError("read", puuid, f"undecodable document at {key}: {e}") from e

    async def write(self, puuid: str, cache: PlayerCache) -> None:
        if not self._client:
            await self.connect()
        key = self.key_for(puuid)
        document = cache.model_dump_json(by_alias=True)
        try:
            if self._ttl_seconds:
                await self._client.set(key, document, ex=self._ttl_seconds)
            else:
                await self._client.set(key, document)
        except RedisError as e:
            raise CacheIOError("write", puuid, str(e)) from e
        logger.debug(f"Cached {len(cache.matches)} matches for {puuid} at {key}")

    @asynccontextmanager
    async def sync_lock(self, puuid: str) -> AsyncIterator[None]:
        """Hold the player's lock key (SET NX PX) for one sync cycle.

        Waits up to the lock TTL for a cycle running in another worker. If
        Redis cannot be reached the cycle runs unlocked, since it can neither
        read nor persist the window anyway.
        """
        if not self._client:
            await self.connect()
        lock = self._client.lock(
            self.lock_key_for(puuid),
            timeout=self._lock_timeout_seconds,
            blocking_timeout=self._lock_timeout_seconds,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.warning(f"Sync lock unavailable for {puuid}, running unlocked: {e}")
            lock = None
            acquired = True
        if not acquired:
            raise CacheIOError(
                "lock",
                puuid,
                f"another sync held the lock for over {self._lock_timeout_seconds}s",
            )
        try:
            yield
        finally:
            if lock is not None:
                try:
                    await lock.release()
                except RedisError as e:
                    # Expired under a long cycle; another worker may own it now
                    logger.warning(f"Sync lock for {puuid} was lost before release: {e}")

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False
        try:
            await self._client.ping()
            return True
        except RedisError:
            return False

    async def close(self) -> None:
        await self.disconnect()
