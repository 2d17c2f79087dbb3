"""Adapter construction from settings, and the one-shot sync runner."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from riftsync.adapters.file_cache import FilePlayerCacheStore
from riftsync.adapters.redis_adapter import RedisPlayerCacheStore
from riftsync.adapters.riot_api import RiotAPIAdapter
from riftsync.config.settings import Settings
from riftsync.contracts import SyncResult
from riftsync.core.ports import PlayerCachePort
from riftsync.core.services.match_history_sync import MatchHistorySyncService

_player_guard_lock = threading.Lock()
_players_inflight: set[str] = set()


def build_cache_store(settings: Settings) -> PlayerCachePort:
    """Pick the cache backend named by ``CACHE_BACKEND``."""
    if settings.cache_backend == "file":
        return FilePlayerCacheStore(settings.cache_dir)
    return RedisPlayerCacheStore.from_settings(settings)


def build_riot_adapter(settings: Settings) -> RiotAPIAdapter:
    return RiotAPIAdapter.from_settings(settings)


async def _acquire_player_slot(puuid: str, poll_interval: float = 0.05) -> None:
    while True:
        with _player_guard_lock:
            if puuid not in _players_inflight:
                _players_inflight.add(puuid)
                return
        await asyncio.sleep(poll_interval)


def _release_player_slot(puuid: str) -> None:
    with _player_guard_lock:
        _players_inflight.discard(puuid)


@asynccontextmanager
async def player_sync_guard(puuid: str) -> AsyncIterator[None]:
    """Serialize sync cycles for one player within this process.

    The slot set is shared across threads and event loops, so runs that each
    own a short-lived loop still take turns.
    """
    await _acquire_player_slot(puuid)
    try:
        yield
    finally:
        _release_player_slot(puuid)


def _reset_player_guard_state_for_tests() -> None:
    with _player_guard_lock:
        _players_inflight.clear()


async def sync_once(settings: Settings, puuid: str) -> SyncResult:
    """Run one sync cycle with freshly built adapters and release them after.

    Used by the CLI and the Celery worker, which each run on a short-lived
    event loop and cannot share sessions across calls. Cycles for the same
    player never overlap: the in-process guard covers one worker and the
    cache store's lock covers the others. A caller that waited starts from
    whatever the previous cycle persisted.

    Raises:
        UpstreamError: the cycle was aborted by an upstream failure
        CacheIOError: the player's lock stayed held past its timeout
    """
    if not puuid:
        raise ValueError("puuid is required")
    async with player_sync_guard(puuid):
        riot = build_riot_adapter(settings)
        cache = build_cache_store(settings)
        try:
            async with cache.sync_lock(puuid):
                service = MatchHistorySyncService.from_settings(settings, riot, cache)
                return await service.sync(puuid)
        finally:
            await riot.close()
            await cache.close()
