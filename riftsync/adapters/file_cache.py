"""Filesystem player cache store.

For single-host deployments and the CLI. Each player is one JSON file; a
write goes to a sibling temp file that is then renamed over the target, so a
crash mid-write leaves the previous document in place.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from riftsync.contracts import PlayerCache
from riftsync.core.errors import CacheIOError
from riftsync.core.ports import PlayerCachePort

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class FilePlayerCacheStore(PlayerCachePort):
    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir)

    def path_for(self, puuid: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", puuid)
        return self._cache_dir / f"{safe}.json"

    async def read(self, puuid: str) -> PlayerCache | None:
        return await asyncio.to_thread(self._read_sync, puuid)

    async def write(self, puuid: str, cache: PlayerCache) -> None:
        await asyncio.to_thread(self._write_sync, puuid, cache)

    def _read_sync(self, puuid: str) -> PlayerCache | None:
        path = self.path_for(puuid)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheIOError("read", puuid, str(e)) from e
        try:
            return PlayerCache.model_validate_json(raw)
        except ValidationError as e:
            raise CacheIOError("read", puuid, f"undecodable document at {path}: {e}") from e

    def _write_sync(self, puuid: str, cache: PlayerCache) -> None:
        target = self.path_for(puuid)
        document = cache.model_dump_json(by_alias=True)
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._cache_dir, prefix=target.stem, suffix=".tmp")
        except OSError as e:
            raise CacheIOError("write", puuid, str(e)) from e

        tmp_path = Path(tmp_name)
        try:
            with open(fd, "w", encoding="utf-8") as fh:
                fh.write(document)
                fh.flush()
                os.fsync(fh.fileno())
            tmp_path.replace(target)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise CacheIOError("write", puuid, str(e)) from e
        logger.debug(f"Cached {len(cache.matches)} matches for {puuid} at {target}")
