"""Observability helpers for riftsync.

Structured logging is structlog-first: module code logs through the stdlib
``logging`` API and ``configure_stdlib_json_logging`` routes those records
through structlog's ``ProcessorFormatter`` so every line carries the same
timestamp, level, logger name and bound context (``correlation_id``,
``puuid``...). ``trace_adapter`` wraps upstream-facing coroutines with timing
and outcome logging.
"""

from __future__ import annotations

import functools
import inspect
import logging
import re
import sys
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

import structlog
from structlog.contextvars import bind_contextvars, merge_contextvars, unbind_contextvars

_SHARED_PROCESSORS: list[Any] = [
    merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        *_SHARED_PROCESSORS,
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_SENSITIVE_KEY_RE = re.compile(r"(token|key|secret|password|authorization|auth)", re.IGNORECASE)


def _mask_scalar(value: Any) -> Any:
    if value is None:
        return None
    s = str(value)
    if len(s) <= 8:
        return "***"
    return f"{s[:4]}…{s[-3:]}"


def redact(obj: Any) -> Any:
    """Mask values stored under secret-looking keys (recursively)."""
    if isinstance(obj, dict):
        return {
            k: (_mask_scalar(v) if _SENSITIVE_KEY_RE.search(str(k)) else redact(v))
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [redact(i) for i in obj]
    return obj


def configure_stdlib_json_logging(level: str = "INFO", file_target: str | None = None) -> None:
    """Route stdlib logging through structlog.

    JSON lines when stderr is not a TTY (workers, containers), the console
    renderer otherwise. ``file_target`` adds a JSON file handler.
    """
    renderer: Any = (
        structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if file_target:
        file_handler = logging.FileHandler(file_target, encoding="utf-8")
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=_SHARED_PROCESSORS,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.format_exc_info,
                    structlog.processors.JSONRenderer(),
                ],
            )
        )
        root.addHandler(file_handler)

    root.setLevel(level.upper())
    # aiohttp access/client logs are noisy at INFO
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation id to every log line emitted in this context."""
    bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    unbind_contextvars("correlation_id")


def trace_adapter(func: F) -> F:
    """Log duration and outcome of an adapter call.

    Keyword arguments are redacted before logging; the return value is
    summarized by its ``kind`` attribute when it has one (fetch outcomes).
    """
    name = f"{func.__module__}.{func.__qualname__}"

    if not inspect.iscoroutinefunction(func):
        raise TypeError("trace_adapter only wraps coroutine functions")

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        start = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.error(
                "adapter_call_failed",
                function=name,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                error_type=type(e).__name__,
                error_message=str(e),
                kwargs=redact(dict(kwargs)),
            )
            raise
        logger.debug(
            "adapter_call",
            function=name,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            outcome=getattr(result, "kind", type(result).__name__),
            kwargs=redact(dict(kwargs)),
        )
        return result

    return cast(F, wrapper)
