"""Offset pagination over the Match-V5 "match ids by PUUID" endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from riftsync.contracts import (
    FetchError,
    FetchRateLimited,
    FetchSuccess,
    unreachable_outcome,
)
from riftsync.core.errors import UpstreamError
from riftsync.core.ports import RiotMatchPort

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


@dataclass(slots=True)
class MatchIdPage:
    """Accumulated ids (newest first) and why pagination stopped."""

    match_ids: list[str] = field(default_factory=list)
    rate_limited: bool = False
    retry_after_seconds: float = 0.0
    watermark_found: bool = False
    exhausted: bool = False
    requests: int = 0

    @property
    def reached_cap(self) -> bool:
        return not (self.rate_limited or self.watermark_found or self.exhausted)


async def paginate_match_ids(
    riot: RiotMatchPort,
    puuid: str,
    max_count: int,
    *,
    stop_at: str | None = None,
    page_size: int = PAGE_SIZE,
) -> MatchIdPage:
    """Collect up to ``max_count`` match ids, newest first.

    Stops when the cap is reached, when the upstream returns an empty or short
    page (no more history), when ``stop_at`` is seen (it and everything after
    it are excluded), or on a rate limit (``rate_limited`` set, ids gathered so
    far kept).

    Raises:
        UpstreamError: any error outcome, or a page that is not a list of ids
    """
    result = MatchIdPage()
    if max_count <= 0:
        return result

    page_size = max(1, min(page_size, PAGE_SIZE))
    seen: set[str] = set()
    start = 0

    while len(result.match_ids) < max_count:
        count = min(page_size, max_count - len(result.match_ids))
        outcome = await riot.get_match_ids(puuid, start=start, count=count)
        result.requests += 1

        if isinstance(outcome, FetchRateLimited):
            logger.warning(
                f"Rate limited paging match ids for {puuid} at offset {start}; "
                f"keeping {len(result.match_ids)} ids"
            )
            result.rate_limited = True
            result.retry_after_seconds = outcome.retry_after_seconds
            break
        elif isinstance(outcome, FetchError):
            raise UpstreamError.from_outcome(outcome)
        elif isinstance(outcome, FetchSuccess):
            page = outcome.payload
        else:
            unreachable_outcome(outcome)

        if not isinstance(page, list) or not all(isinstance(mid, str) for mid in page):
            raise UpstreamError("match id page is not a list of strings", 200)

        if not page:
            result.exhausted = True
            break

        for match_id in page:
            if stop_at is not None and match_id == stop_at:
                result.watermark_found = True
                break
            # Offsets drift when a new match lands mid-pagination
            if match_id in seen:
                continue
            seen.add(match_id)
            result.match_ids.append(match_id)
            if len(result.match_ids) >= max_count:
                break

        if result.watermark_found:
            break
        start += len(page)
        if len(page) < count:
            result.exhausted = True
            break

    logger.debug(
        f"Paged {len(result.match_ids)} match ids for {puuid} in {result.requests} request(s)"
    )
    return result
