"""Unit tests for the Celery sync task.

The task body runs in-process; ``sync_once`` is patched so no adapter is
built and nothing touches the network.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from celery.exceptions import Retry

import riftsync.tasks.sync_tasks as mod
from riftsync.contracts import SyncResult, SyncState
from riftsync.core.errors import CacheIOError, UpstreamError
from riftsync.tasks.celery_app import celery_app
from riftsync.tasks.sync_tasks import sync_match_history
from tests.unit.fakes import PUUID, history, records_for


def make_result() -> SyncResult:
    ids, details = history(2)
    return SyncResult(
        puuid=PUUID,
        matches=records_for(ids, details),
        fetched_matches=2,
        requested_cap=300,
        source="sync",
        sync_state=SyncState.FULL_SYNC,
        updated_at=datetime(2024, 6, 1, tzinfo=UTC),
        latest_match_id=ids[0],
    )


class TestSyncMatchHistory:
    def test_success_returns_payload(self):
        with patch.object(mod, "sync_once", new=AsyncMock(return_value=make_result())) as run:
            result = sync_match_history(PUUID)

        assert result["success"] is True
        assert result["puuid"] == PUUID
        assert result["cache"]["state"] == "FULL_SYNC"
        assert len(result["matches"]) == 2
        assert run.await_args.args[1] == PUUID

    def test_correlation_id_is_bound_for_the_run(self, monkeypatch: pytest.MonkeyPatch):
        recorded: list[str] = []
        monkeypatch.setattr(mod, "set_correlation_id", recorded.append, raising=True)

        with patch.object(mod, "sync_once", new=AsyncMock(return_value=make_result())):
            sync_match_history(PUUID, correlation_id="api:req-42")

        assert recorded == ["api:req-42"]

    def test_non_retryable_upstream_error_is_reported(self):
        error = UpstreamError("Forbidden", 403, url="https://americas.api.riotgames.com/x")

        with patch.object(mod, "sync_once", new=AsyncMock(side_effect=error)):
            result = sync_match_history(PUUID)

        assert result["success"] is False
        assert result["error"]["status_code"] == 403
        assert result["error"]["type"] == "upstream_error"

    def test_retryable_upstream_error_is_retried_with_backoff(self):
        error = UpstreamError("Service Unavailable", 503)

        with (
            patch.object(mod, "sync_once", new=AsyncMock(side_effect=error)),
            patch.object(sync_match_history, "retry", side_effect=Retry("retry")) as retry,
        ):
            with pytest.raises(Retry):
                sync_match_history(PUUID)

        retry.assert_called_once()
        assert retry.call_args.kwargs["exc"] is error
        assert retry.call_args.kwargs["countdown"] == 1

    def test_player_lock_timeout_is_retried(self):
        error = CacheIOError("lock", PUUID, "another sync held the lock for over 300s")

        with (
            patch.object(mod, "sync_once", new=AsyncMock(side_effect=error)),
            patch.object(sync_match_history, "retry", side_effect=Retry("retry")) as retry,
        ):
            with pytest.raises(Retry):
                sync_match_history(PUUID)

        assert retry.call_args.kwargs["exc"] is error


def test_sync_tasks_are_routed_to_sync_queue():
    routes = celery_app.conf.task_routes

    assert routes["riftsync.tasks.sync_tasks.*"] == {"queue": "sync"}
    assert sync_match_history.name == "riftsync.tasks.sync_tasks.sync_match_history"
