import json
import logging

import pytest

from riftsync.contracts import FetchSuccess
from riftsync.core.observability import (
    clear_correlation_id,
    configure_stdlib_json_logging,
    redact,
    set_correlation_id,
    trace_adapter,
)


@pytest.fixture
def json_log_file(tmp_path):
    """Route logging to a JSON file for one test, then restore the root logger."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    target = tmp_path / "riftsync.log"
    configure_stdlib_json_logging(level="DEBUG", file_target=str(target))

    def read() -> list[dict]:
        for handler in root.handlers:
            handler.flush()
        return [json.loads(line) for line in target.read_text(encoding="utf-8").splitlines()]

    yield read

    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in saved_handlers:
            handler.close()
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def test_redact_masks_secret_keys_recursively() -> None:
    masked = redact(
        {
            "api_key": "RGAPI-0123456789abcdef",
            "puuid": "abc",
            "nested": [{"X-Riot-Token": "short"}],
        }
    )

    assert masked["api_key"] == "RGAP…def"
    assert masked["puuid"] == "abc"
    assert masked["nested"][0]["X-Riot-Token"] == "***"


def test_stdlib_records_carry_correlation_id(json_log_file) -> None:
    set_correlation_id("cid-1234")
    try:
        logging.getLogger("riftsync.test").warning("cache write failed")
    finally:
        clear_correlation_id()

    entry = json_log_file()[-1]
    assert entry["event"] == "cache write failed"
    assert entry["level"] == "warning"
    assert entry["logger"] == "riftsync.test"
    assert entry["correlation_id"] == "cid-1234"
    assert "timestamp" in entry


@pytest.mark.asyncio
async def test_trace_adapter_logs_outcome_without_secrets(json_log_file) -> None:
    @trace_adapter
    async def fetch(url: str, *, token: str | None = None) -> FetchSuccess:
        return FetchSuccess(payload=[])

    result = await fetch("https://example.invalid", token="RGAPI-super-secret-value")

    assert result.kind == "success"
    entries = [e for e in json_log_file() if e["event"] == "adapter_call"]
    assert entries[-1]["outcome"] == "success"
    assert entries[-1]["kwargs"]["token"] != "RGAPI-super-secret-value"
    assert "duration_ms" in entries[-1]


@pytest.mark.asyncio
async def test_trace_adapter_logs_and_reraises_failures(json_log_file) -> None:
    @trace_adapter
    async def broken() -> None:
        raise RuntimeError("socket closed")

    with pytest.raises(RuntimeError):
        await broken()

    failed = [e for e in json_log_file() if e["event"] == "adapter_call_failed"]
    assert failed[-1]["error_type"] == "RuntimeError"
    assert failed[-1]["level"] == "error"


def test_trace_adapter_rejects_sync_functions() -> None:
    with pytest.raises(TypeError):

        @trace_adapter
        def not_async() -> None:
            return None
