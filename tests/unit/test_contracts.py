"""Unit tests for data contracts and the error taxonomy."""

from datetime import UTC, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from riftsync.contracts import (
    FetchError,
    FetchOutcome,
    FetchRateLimited,
    MatchRecord,
    PlayerCache,
    SyncResult,
    SyncState,
    parse_retry_after,
    regional_routing,
    unreachable_outcome,
)
from riftsync.contracts.common import Region
from riftsync.core.errors import CacheIOError, UpstreamError
from riftsync.core.services.match_projector import project_match
from tests.unit.fakes import BASE_TS, PUUID, history, make_detail, records_for


class TestFetchOutcome:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("5", 5.0),
            ("2.5", 2.5),
            (" 10 ", 10.0),
            (None, 0.0),
            ("soon", 0.0),
            ("-3", 0.0),
            ("inf", 0.0),
        ],
    )
    def test_parse_retry_after(self, raw, expected):
        assert parse_retry_after(raw) == expected

    def test_discriminated_by_kind(self):
        adapter = TypeAdapter(FetchOutcome)

        outcome = adapter.validate_python({"kind": "rate_limited", "retry_after_seconds": 2})

        assert isinstance(outcome, FetchRateLimited)

    def test_unreachable_outcome_raises(self):
        with pytest.raises(TypeError):
            unreachable_outcome(object())

    def test_network_failure_flag(self):
        assert FetchError(status_code=0).is_network_failure is True
        assert FetchError(status_code=500).is_network_failure is False


class TestMatchRecord:
    def test_items_must_have_seven_slots(self):
        with pytest.raises(ValidationError):
            MatchRecord(id="NA1_1", items=[1, 2, 3])

    def test_serializes_camel_case(self):
        record = project_match(make_detail("NA1_1", BASE_TS), PUUID)

        dumped = record.model_dump(by_alias=True)

        assert dumped["endTimestamp"] == BASE_TS
        assert dumped["csCount"] == 192
        assert dumped["teamObjectives"][0]["teamId"] == 100

    def test_player_cache_accepts_aliases(self):
        cache = PlayerCache.model_validate(
            {
                "puuid": PUUID,
                "matches": [],
                "latestMatchId": None,
                "updatedAt": "2024-01-01T00:00:00Z",
                "requestedCap": 300,
                "someFutureField": True,
            }
        )

        assert cache.requested_cap == 300
        assert cache.updated_at == datetime(2024, 1, 1, tzinfo=UTC)


class TestSyncResultPayload:
    def test_payload_shape(self):
        ids, details = history(2)
        details[ids[1]] = make_detail(ids[1], BASE_TS, duration=None)
        result = SyncResult(
            puuid=PUUID,
            matches=records_for(ids, details),
            rate_limited=True,
            fetched_matches=2,
            requested_cap=300,
            source="sync",
            sync_state=SyncState.FULL_SYNC,
            updated_at=datetime(2024, 6, 1, tzinfo=UTC),
            latest_match_id=ids[0],
            warnings=["something"],
        )

        payload = result.to_payload()

        assert payload["puuid"] == PUUID
        assert payload["rateLimited"] is True
        assert payload["fetchedMatches"] == 2
        assert payload["requestedCap"] == 300
        assert payload["cache"] == {
            "source": "sync",
            "state": "FULL_SYNC",
            "updatedAt": "2024-06-01T00:00:00+00:00",
            "latestMatchId": ids[0],
            "persisted": True,
            "error": None,
        }
        assert payload["dataQuality"] == {"warnings": ["something"]}
        first, second = payload["matches"]
        assert first["id"] == ids[0]
        assert first["perMinute"]["kda"] == 6.0
        assert first["perMinute"]["csPerMin"] == 6.4
        assert second["perMinute"]["csPerMin"] is None


class TestErrors:
    def test_upstream_error_from_outcome(self):
        error = UpstreamError.from_outcome(
            FetchError(status_code=502, body_text="bad gateway"), url="https://x"
        )

        assert error.status_code == 502
        assert error.is_retryable is True
        assert error.to_dict() == {
            "type": "upstream_error",
            "status_code": 502,
            "detail": "bad gateway",
            "url": "https://x",
        }
        assert "502" in str(error)

    def test_client_errors_are_not_retryable(self):
        assert UpstreamError("forbidden", 403).is_retryable is False

    def test_cache_error_message(self):
        error = CacheIOError("write", PUUID, "disk full")

        assert str(error) == f"Cache write failed for {PUUID}: disk full"


@pytest.mark.parametrize(
    "platform,region",
    [
        ("na1", Region.AMERICAS),
        ("EUW1", Region.EUROPE),
        ("kr", Region.ASIA),
        ("vn2", Region.SEA),
        (" oc1 ", Region.SEA),
    ],
)
def test_regional_routing(platform, region):
    assert regional_routing(platform) == region


@pytest.mark.parametrize("platform", ["??", "na", "euw2", ""])
def test_regional_routing_rejects_unknown_platform(platform):
    with pytest.raises(ValueError):
        regional_routing(platform)
