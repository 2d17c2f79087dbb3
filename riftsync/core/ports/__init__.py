"""Port interfaces for hexagonal architecture.

These ports define the contracts between the match-history core and its
external adapters (Riot Match-V5 over HTTP, the per-player cache store).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager, nullcontext

from riftsync.contracts import FetchOutcome, PlayerCache

__all__ = ["RiotMatchPort", "PlayerCachePort"]


class RiotMatchPort(ABC):
    """Port for the two Match-V5 endpoints the core depends on.

    Implementations never raise for HTTP-level conditions: every call returns
    a ``FetchOutcome`` and leaves retry policy to the caller.
    """

    @abstractmethod
    async def get_match_ids(self, puuid: str, *, start: int, count: int) -> FetchOutcome:
        """One page of match ids for a player, newest first."""
        pass

    @abstractmethod
    async def get_match_detail(self, match_id: str) -> FetchOutcome:
        """Full Match-V5 detail payload for one match."""
        pass


class PlayerCachePort(ABC):
    """Port for durable per-player match-window storage.

    Writes must be atomic: a reader sees either the previous document or the
    new one, never a partial write.
    """

    @abstractmethod
    async def read(self, puuid: str) -> PlayerCache | None:
        """Return the cached window, or None when the player has no entry.

        Raises:
            CacheIOError: backend unreachable or stored document undecodable
        """
        pass

    @abstractmethod
    async def write(self, puuid: str, cache: PlayerCache) -> None:
        """Persist the cached window, replacing any previous document.

        Raises:
            CacheIOError: backend failure; the previous document is left intact
        """
        pass

    def sync_lock(self, puuid: str) -> AbstractAsyncContextManager[None]:
        """Lock held across processes for the length of one player's sync cycle.

        Stores without shared state take no lock; ``sync_once`` still
        serializes cycles within one process.

        Raises:
            CacheIOError: the lock could not be acquired in time
        """
        return nullcontext()

    async def close(self) -> None:
        """Release backend resources. No-op unless the backend holds connections."""
        return None
