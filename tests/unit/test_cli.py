"""Unit tests for the command-line entry point."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

import main
from riftsync.config.settings import Settings
from riftsync.contracts import SyncResult, SyncState
from riftsync.core.errors import CacheIOError, UpstreamError
from tests.unit.fakes import PUUID


@pytest.fixture
def settings():
    return Settings(RIOT_API_KEY="RGAPI-cli")


def test_flags_override_settings(settings):
    args = main.build_parser().parse_args(
        [PUUID, "--platform", "EUW1", "--window", "20", "--cache-backend", "file"]
    )

    overridden = main.apply_overrides(settings, args)

    assert overridden.riot_platform == "euw1"
    assert overridden.match_window_size == 20
    assert overridden.cache_backend == "file"
    assert settings.match_window_size == 300


def test_unknown_platform_rejected():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args([PUUID, "--platform", "na"])


def test_window_must_be_positive(settings):
    args = main.build_parser().parse_args([PUUID, "--window", "0"])

    with pytest.raises(SystemExit):
        main.apply_overrides(settings, args)


@pytest.mark.asyncio
async def test_run_prints_payload(settings, capsys):
    result = SyncResult(
        puuid=PUUID,
        requested_cap=300,
        source="cache",
        sync_state=SyncState.UP_TO_DATE,
        updated_at=datetime(2024, 1, 1, tzinfo=UTC),
    )

    with patch.object(main, "sync_once", new=AsyncMock(return_value=result)):
        code = await main.run(settings, PUUID)

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["cache"]["state"] == "UP_TO_DATE"
    assert payload["matches"] == []


@pytest.mark.asyncio
async def test_run_exits_2_on_upstream_error(settings, capsys):
    with patch.object(main, "sync_once", new=AsyncMock(side_effect=UpstreamError("down", 503))):
        code = await main.run(settings, PUUID)

    assert code == main.EXIT_UPSTREAM_ERROR == 2
    last_line = capsys.readouterr().err.strip().splitlines()[-1]
    assert json.loads(last_line)["error"]["status_code"] == 503


@pytest.mark.asyncio
async def test_run_exits_3_when_player_lock_times_out(settings, capsys):
    error = CacheIOError("lock", PUUID, "another sync held the lock for over 300s")
    with patch.object(main, "sync_once", new=AsyncMock(side_effect=error)):
        code = await main.run(settings, PUUID)

    assert code == main.EXIT_CACHE_ERROR == 3
    last_line = capsys.readouterr().err.strip().splitlines()[-1]
    assert json.loads(last_line)["error"] == {
        "type": "cache_error",
        "operation": "lock",
        "detail": "another sync held the lock for over 300s",
    }
