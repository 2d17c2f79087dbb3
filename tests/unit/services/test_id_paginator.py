"""Unit tests for match-id pagination."""

import pytest

from riftsync.contracts import FetchError, FetchRateLimited, FetchSuccess
from riftsync.core.errors import UpstreamError
from riftsync.core.services.id_paginator import paginate_match_ids
from tests.unit.fakes import PUUID, FakeRiot, history


@pytest.mark.asyncio
async def test_stops_at_watermark_and_excludes_it():
    riot = FakeRiot(["N1", "N2", "X", "P1"], {})

    page = await paginate_match_ids(riot, PUUID, 300, stop_at="X")

    assert page.match_ids == ["N1", "N2"]
    assert page.watermark_found is True
    assert page.reached_cap is False
    assert riot.id_calls == [(0, 100)]


@pytest.mark.asyncio
async def test_pages_until_cap():
    ids, _ = history(250)
    riot = FakeRiot(ids, {})

    page = await paginate_match_ids(riot, PUUID, 230)

    assert page.match_ids == ids[:230]
    assert riot.id_calls == [(0, 100), (100, 100), (200, 30)]
    assert page.requests == 3
    assert page.reached_cap is True


@pytest.mark.asyncio
async def test_short_page_means_history_exhausted():
    ids, _ = history(120)
    riot = FakeRiot(ids, {})

    page = await paginate_match_ids(riot, PUUID, 300)

    assert page.match_ids == ids
    assert page.exhausted is True
    assert riot.id_calls == [(0, 100), (100, 100)]


@pytest.mark.asyncio
async def test_empty_first_page():
    page = await paginate_match_ids(FakeRiot([], {}), PUUID, 300)

    assert page.match_ids == []
    assert page.exhausted is True


@pytest.mark.asyncio
async def test_rate_limit_keeps_ids_gathered_so_far():
    ids, _ = history(150)
    riot = FakeRiot(ids, {}, id_outcomes={1: FetchRateLimited(retry_after_seconds=12)})

    page = await paginate_match_ids(riot, PUUID, 300)

    assert page.match_ids == ids[:100]
    assert page.rate_limited is True
    assert page.retry_after_seconds == 12
    assert page.watermark_found is False


@pytest.mark.asyncio
async def test_error_outcome_raises():
    riot = FakeRiot([], {}, id_outcomes={0: FetchError(status_code=401, body_text="Unauthorized")})

    with pytest.raises(UpstreamError) as exc_info:
        await paginate_match_ids(riot, PUUID, 300)

    assert exc_info.value.status_code == 401
    assert exc_info.value.is_retryable is False


@pytest.mark.asyncio
async def test_non_list_payload_raises():
    riot = FakeRiot([], {}, id_outcomes={0: FetchSuccess(payload={"status": "odd"})})

    with pytest.raises(UpstreamError):
        await paginate_match_ids(riot, PUUID, 300)


@pytest.mark.asyncio
async def test_duplicates_from_shifting_offsets_are_skipped():
    riot = FakeRiot(
        [],
        {},
        id_outcomes={
            0: FetchSuccess(payload=["A", "B"]),
            # A new game landed: the next offset repeats B
            1: FetchSuccess(payload=["B", "C"]),
            2: FetchSuccess(payload=[]),
        },
    )

    page = await paginate_match_ids(riot, PUUID, 10, page_size=2)

    assert page.match_ids == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_non_positive_cap_makes_no_request():
    riot = FakeRiot(["A"], {})

    page = await paginate_match_ids(riot, PUUID, 0)

    assert page.match_ids == []
    assert riot.id_calls == []
