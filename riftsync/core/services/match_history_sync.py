"""Match-history sync orchestrator.

Given a PUUID, decide whether the cached window is fresh and, if not, fetch
exactly the matches that are missing, merge them into the window and persist
it. States of one cycle:

    NoCache ─────────────────────────────► FULL_SYNC
    Cached ─► freshness check (1 id) ─┬──► UP_TO_DATE           (newest == watermark)
                                      ├──► FRESHNESS_RATE_LIMITED (served from cache)
                                      └──► delta pagination ─┬─► INCREMENTAL_SYNC (watermark met)
                                                             └─► RESYNC           (watermark never met)

Upstream errors abort the cycle before anything is written. Rate limits end
the cycle early with whatever was gathered; the partial window is still
written. After a complete cycle ``latestMatchId`` is the freshness-check id.
After a rate-limited one it deliberately stays behind that id, at the newest
match below which the history is fully fetched, so the next cycle lists and
fetches the skipped matches instead of treating them as already seen.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime

from structlog.contextvars import bound_contextvars

from riftsync.config.settings import Settings
from riftsync.contracts import (
    CacheSource,
    FetchError,
    FetchRateLimited,
    FetchSuccess,
    MatchRecord,
    PlayerCache,
    SyncResult,
    SyncState,
    unreachable_outcome,
)
from riftsync.core.errors import CacheIOError, UpstreamError
from riftsync.core.metrics import record_cache_error, record_sync
from riftsync.core.ports import PlayerCachePort, RiotMatchPort
from riftsync.core.services.detail_fetcher import BoundedDetailFetcher, DetailBatch, RequestPacer
from riftsync.core.services.id_paginator import PAGE_SIZE, MatchIdPage, paginate_match_ids
from riftsync.core.services.match_projector import project_match, sort_newest_first
from riftsync.core.services.single_flight import SingleFlight

logger = logging.getLogger(__name__)


def merge_windows(
    new: Iterable[MatchRecord], existing: Iterable[MatchRecord], cap: int
) -> list[MatchRecord]:
    """New records ahead of existing ones, de-duplicated by id, newest first, ≤ cap."""
    seen: set[str] = set()
    combined: list[MatchRecord] = []
    for record in (*new, *existing):
        if record.id in seen:
            continue
        seen.add(record.id)
        combined.append(record)
    return sort_newest_first(combined)[:cap]


def _newest_listed_id(outcome: FetchSuccess) -> str | None:
    page = outcome.payload
    if not isinstance(page, list) or not all(isinstance(mid, str) for mid in page):
        raise UpstreamError("match id page is not a list of strings", 200)
    return page[0] if page else None


class MatchHistorySyncService:
    """Keeps one bounded, newest-first match window per player."""

    def __init__(
        self,
        riot: RiotMatchPort,
        cache: PlayerCachePort,
        *,
        window_size: int = 300,
        page_size: int = PAGE_SIZE,
        detail_fetcher: BoundedDetailFetcher | None = None,
        single_flight: SingleFlight[SyncResult] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if window_size < 1:
            raise ValueError("window_size must be >= 1")
        self._riot = riot
        self._cache = cache
        self._window_size = window_size
        self._page_size = page_size
        self._detail_fetcher = detail_fetcher or BoundedDetailFetcher(
            riot, pacer=RequestPacer(15.0)
        )
        self._flights: SingleFlight[SyncResult] = single_flight or SingleFlight()
        self._clock = clock or (lambda: datetime.now(UTC))

    @classmethod
    def from_settings(
        cls, settings: Settings, riot: RiotMatchPort, cache: PlayerCachePort
    ) -> MatchHistorySyncService:
        fetcher = BoundedDetailFetcher(
            riot,
            pacer=RequestPacer(settings.detail_requests_per_second),
            batch_size=settings.detail_batch_size,
            concurrency=settings.detail_concurrency,
        )
        return cls(
            riot,
            cache,
            window_size=settings.match_window_size,
            page_size=settings.match_id_page_size,
            detail_fetcher=fetcher,
        )

    @property
    def window_size(self) -> int:
        return self._window_size

    async def sync(self, puuid: str) -> SyncResult:
        """Return the player's current window, refreshing the cache if stale.

        Concurrent calls for the same PUUID share one cycle.

        Raises:
            UpstreamError: freshness check or id pagination failed; cache untouched
        """
        if not puuid:
            raise ValueError("puuid is required")
        return await self._flights.do(puuid, lambda: self._sync(puuid))

    async def _sync(self, puuid: str) -> SyncResult:
        started = time.perf_counter()
        with bound_contextvars(puuid=puuid):
            cached = await self._read_cache(puuid)
            if cached is None:
                result = await self._full_sync(puuid)
            else:
                result = await self._refresh(puuid, cached)
            logger.info(
                f"Sync {result.sync_state} for {puuid}: {len(result.matches)} matches, "
                f"{result.fetched_matches} new, rate_limited={result.rate_limited}"
            )
        record_sync(str(result.sync_state), time.perf_counter() - started)
        return result

    # ------------------------------------------------------------------
    # Cache IO
    # ------------------------------------------------------------------

    async def _read_cache(self, puuid: str) -> PlayerCache | None:
        try:
            return await self._cache.read(puuid)
        except CacheIOError as e:
            # Unreadable cache is treated as absent; the next write replaces it
            logger.warning(f"Cache read failed for {puuid}, syncing from scratch: {e}")
            record_cache_error("read")
            return None

    async def _write_cache(self, puuid: str, cache: PlayerCache) -> str | None:
        try:
            await self._cache.write(puuid, cache)
        except CacheIOError as e:
            logger.error(f"Cache write failed for {puuid}: {e}")
            record_cache_error("write")
            return str(e)
        return None

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def _full_sync(self, puuid: str) -> SyncResult:
        ids = await paginate_match_ids(
            self._riot, puuid, self._window_size, page_size=self._page_size
        )
        freshest = ids.match_ids[0] if ids.match_ids else None
        return await self._apply_delta(
            puuid, ids, previous=None, state=SyncState.FULL_SYNC, freshest_id=freshest
        )

    async def _refresh(self, puuid: str, cached: PlayerCache) -> SyncResult:
        outcome = await self._riot.get_match_ids(puuid, start=0, count=1)
        if isinstance(outcome, FetchRateLimited):
            logger.warning(f"Freshness check rate limited for {puuid}; serving cached window")
            return self._from_cache(
                cached, SyncState.FRESHNESS_RATE_LIMITED, rate_limited=True
            )
        elif isinstance(outcome, FetchError):
            raise UpstreamError.from_outcome(outcome)
        elif isinstance(outcome, FetchSuccess):
            freshest = _newest_listed_id(outcome)
        else:
            unreachable_outcome(outcome)

        if freshest is None or freshest == cached.latest_match_id:
            return self._from_cache(cached, SyncState.UP_TO_DATE)

        ids = await paginate_match_ids(
            self._riot,
            puuid,
            self._window_size,
            stop_at=cached.latest_match_id,
            page_size=self._page_size,
        )
        if cached.latest_match_id is None:
            state = SyncState.FULL_SYNC
        elif ids.watermark_found or ids.rate_limited:
            state = SyncState.INCREMENTAL_SYNC
        else:
            logger.warning(
                f"Watermark {cached.latest_match_id} not found within {self._window_size} ids "
                f"for {puuid}; resyncing window"
            )
            state = SyncState.RESYNC
        return await self._apply_delta(
            puuid, ids, previous=cached, state=state, freshest_id=freshest
        )

    async def _apply_delta(
        self,
        puuid: str,
        ids: MatchIdPage,
        *,
        previous: PlayerCache | None,
        state: SyncState,
        freshest_id: str | None,
    ) -> SyncResult:
        delta = ids.match_ids
        cached_by_id = {m.id: m for m in previous.matches} if previous else {}

        # Oldest first: a rate limit then cuts off the newest ids, which the
        # held-back watermark makes the next cycle fetch.
        to_fetch = [mid for mid in reversed(delta) if mid not in cached_by_id]
        batch = await self._detail_fetcher.fetch_all(to_fetch) if to_fetch else DetailBatch()

        fresh = sort_newest_first(
            project_match(batch.payloads[mid], puuid, match_id=mid)
            for mid in delta
            if mid in batch.payloads
        )

        if state is SyncState.INCREMENTAL_SYNC:
            base = previous.matches if previous else []
        else:
            # Full sync / resync: the listed ids define the window
            base = [cached_by_id[mid] for mid in delta if mid in cached_by_id]

        merged = merge_windows(fresh, base, self._window_size)
        watermark = self._next_watermark(
            delta, ids, batch, cached_by_id, previous, state, freshest_id
        )
        rate_limited = ids.rate_limited or batch.rate_limited

        if (
            previous is not None
            and not fresh
            and watermark == previous.latest_match_id
            and [m.id for m in merged] == [m.id for m in previous.matches]
        ):
            # Nothing learned this cycle; keep the stored document as is
            return self._from_cache(previous, state, rate_limited=rate_limited)

        cache = PlayerCache(
            puuid=puuid,
            matches=merged,
            latest_match_id=watermark,
            updated_at=self._clock(),
            requested_cap=self._window_size,
        )
        cache_error = await self._write_cache(puuid, cache)

        warnings = self._warnings(merged)
        if rate_limited:
            missing = len(batch.skipped_ids)
            warnings.append(
                "Rate limited by upstream: "
                + (f"{missing} match(es) not fetched" if missing else "match list incomplete")
                + f"; retry after {max(ids.retry_after_seconds, batch.retry_after_seconds):g}s"
            )
        dropped = len(batch.failed_ids) + len(batch.transient_failed_ids)
        if dropped:
            warnings.append(f"{dropped} match(es) dropped after upstream errors")

        return SyncResult(
            puuid=puuid,
            matches=merged,
            rate_limited=rate_limited,
            fetched_matches=len(fresh),
            requested_cap=self._window_size,
            source=CacheSource.SYNC,
            sync_state=state,
            updated_at=cache.updated_at,
            latest_match_id=watermark,
            persisted=cache_error is None,
            cache_error=cache_error,
            warnings=warnings,
        )

    @staticmethod
    def _next_watermark(
        delta: Sequence[str],
        ids: MatchIdPage,
        batch: DetailBatch,
        cached_by_id: dict[str, MatchRecord],
        previous: PlayerCache | None,
        state: SyncState,
        freshest_id: str | None,
    ) -> str | None:
        previous_mark = previous.latest_match_id if previous else None
        if state is SyncState.INCREMENTAL_SYNC and not ids.watermark_found:
            # Listing stopped short of the old watermark: the gap is unseen
            return previous_mark

        fallback = previous_mark if state is SyncState.INCREMENTAL_SYNC else None
        reached: str | None = None
        for mid in reversed(delta):
            if mid in cached_by_id or batch.resolved(mid):
                reached = mid
            else:
                return reached or fallback
        return freshest_id if freshest_id is not None else (reached or fallback)

    def _from_cache(
        self, cached: PlayerCache, state: SyncState, *, rate_limited: bool = False
    ) -> SyncResult:
        matches = cached.matches[: self._window_size]
        return SyncResult(
            puuid=cached.puuid,
            matches=matches,
            rate_limited=rate_limited,
            fetched_matches=0,
            requested_cap=self._window_size,
            source=CacheSource.CACHE,
            sync_state=state,
            updated_at=cached.updated_at,
            latest_match_id=cached.latest_match_id,
            warnings=self._warnings(matches),
        )

    @staticmethod
    def _warnings(matches: Sequence[MatchRecord]) -> list[str]:
        return [
            f"{m.id}: player not found among participants; stats are from the first participant"
            for m in matches
            if not m.participant_located
        ]
