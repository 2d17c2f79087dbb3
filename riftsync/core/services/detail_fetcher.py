"""Bounded concurrent fetch of Match-V5 detail payloads.

Ids are processed in fixed-size batches. Inside a batch a small pool of
workers pulls from one shared cursor, and every request start goes through a
``RequestPacer`` so the aggregate rate stays under the configured ceiling.

A rate-limited response is a cooperative stop signal: requests already in
flight complete, nothing new is dispatched, and whatever was gathered is
returned with ``rate_limited`` set. A per-match error is logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from riftsync.contracts import (
    FetchError,
    FetchRateLimited,
    FetchSuccess,
    unreachable_outcome,
)
from riftsync.core.ports import RiotMatchPort

logger = logging.getLogger(__name__)


class RequestPacer:
    """Spaces request starts at least ``1 / requests_per_second`` apart.

    Clock and sleep are injectable so tests can run on a fake clock.
    """

    def __init__(
        self,
        requests_per_second: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be > 0")
        self.interval = 1.0 / requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._next_slot: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait for the next free start slot and claim it."""
        async with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            if slot > now:
                await self._sleep(slot - now)
            self._next_slot = slot + self.interval


@dataclass(slots=True)
class DetailBatch:
    """Detail payloads keyed by match id, plus what was not fetched."""

    payloads: dict[str, dict[str, Any]] = field(default_factory=dict)
    rate_limited: bool = False
    retry_after_seconds: float = 0.0
    failed_ids: list[str] = field(default_factory=list)
    # Timeouts, network failures and 5xx (also dropped)
    transient_failed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)

    def resolved(self, match_id: str) -> bool:
        """Requested and answered (fetched or dropped); false for skipped ids."""
        return match_id not in self.skipped_ids


class BoundedDetailFetcher:
    def __init__(
        self,
        riot: RiotMatchPort,
        *,
        pacer: RequestPacer,
        batch_size: int = 20,
        concurrency: int = 8,
    ) -> None:
        if batch_size < 1 or concurrency < 1:
            raise ValueError("batch_size and concurrency must be >= 1")
        self._riot = riot
        self._pacer = pacer
        self._batch_size = batch_size
        self._concurrency = concurrency

    async def fetch_all(self, match_ids: Sequence[str]) -> DetailBatch:
        result = DetailBatch()
        stop = asyncio.Event()
        dispatched: set[str] = set()

        for offset in range(0, len(match_ids), self._batch_size):
            if stop.is_set():
                break
            batch = match_ids[offset : offset + self._batch_size]
            cursor = iter(batch)
            workers = min(self._concurrency, len(batch))
            await asyncio.gather(
                *(self._worker(cursor, result, stop, dispatched) for _ in range(workers))
            )

        result.skipped_ids = [mid for mid in match_ids if mid not in dispatched]
        if result.rate_limited:
            logger.warning(
                f"Detail fetch stopped by rate limit: {len(result.payloads)} fetched, "
                f"{len(result.skipped_ids)} skipped, retry after {result.retry_after_seconds}s"
            )
        return result

    async def _worker(
        self,
        cursor: Iterator[str],
        result: DetailBatch,
        stop: asyncio.Event,
        dispatched: set[str],
    ) -> None:
        for match_id in cursor:
            if stop.is_set():
                return
            await self._pacer.acquire()
            if stop.is_set():
                return
            dispatched.add(match_id)
            outcome = await self._riot.get_match_detail(match_id)

            if isinstance(outcome, FetchSuccess):
                if isinstance(outcome.payload, dict):
                    result.payloads[match_id] = outcome.payload
                else:
                    logger.warning(f"Dropping match {match_id}: detail payload is not an object")
                    result.failed_ids.append(match_id)
            elif isinstance(outcome, FetchRateLimited):
                result.rate_limited = True
                result.retry_after_seconds = max(
                    result.retry_after_seconds, outcome.retry_after_seconds
                )
                # A 429 was not served; report the id as skipped
                stop.set()
                dispatched.discard(match_id)
                return
            elif isinstance(outcome, FetchError):
                logger.warning(
                    f"Dropping match {match_id}: upstream error {outcome.status_code}"
                    + (" (timeout)" if outcome.timed_out else ""),
                )
                if outcome.timed_out or outcome.is_network_failure or outcome.status_code >= 500:
                    result.transient_failed_ids.append(match_id)
                else:
                    result.failed_ids.append(match_id)
            else:
                unreachable_outcome(outcome)
