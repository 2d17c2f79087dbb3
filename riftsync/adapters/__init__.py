"""Adapters for external systems (Riot API, cache stores)."""

from riftsync.adapters.factory import build_cache_store, build_riot_adapter, sync_once
from riftsync.adapters.file_cache import FilePlayerCacheStore
from riftsync.adapters.redis_adapter import RedisPlayerCacheStore
from riftsync.adapters.riot_api import RiotAPIAdapter

__all__ = [
    "FilePlayerCacheStore",
    "RedisPlayerCacheStore",
    "RiotAPIAdapter",
    "build_cache_store",
    "build_riot_adapter",
    "sync_once",
]
