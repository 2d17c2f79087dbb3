"""Celery application configuration.

Redis is both broker and result backend. Sync tasks get their own queue so a
backlog of player syncs never starves other work on the same broker.
"""

import contextlib
import logging

from celery import Celery
from celery.signals import after_task_publish, task_failure, task_postrun, task_prerun

from riftsync.config.settings import get_settings
from riftsync.core.observability import configure_stdlib_json_logging

logger = logging.getLogger(__name__)

settings = get_settings()

# Structured logging for workers (stdout only; Celery may set logfile)
configure_stdlib_json_logging(level=settings.app_log_level)

celery_app = Celery(
    "riftsync",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    result_extended=True,
    # One sync holds a detail-fetch pool; keep prefetch low
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    task_routes={
        "riftsync.tasks.sync_tasks.*": {"queue": "sync"},
    },
    task_time_limit=settings.celery_task_time_limit,
    task_track_started=True,
    task_send_sent_event=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

logger.info("Celery application configured")

# ----------------------------------------------------------------------------
# Trace hooks (publish → start → finish / fail)
# ----------------------------------------------------------------------------
# Structured log lines keyed by task_id and correlation_id. Hooks must never
# break publishing or execution, hence the suppress blocks.


def _extract_kwargs_from_body(body: object) -> dict:
    """Best-effort kwargs from a publish body: dict form or (args, kwargs, embed)."""
    if isinstance(body, dict):
        return dict(body.get("kwargs") or {})
    if isinstance(body, list | tuple) and len(body) >= 2 and isinstance(body[1], dict):
        return dict(body[1])
    return {}


@after_task_publish.connect
def _on_task_published(
    sender=None, body=None, exchange=None, routing_key=None, headers=None, **kwargs
):
    with contextlib.suppress(Exception):
        logger.info(
            "celery_task_published",
            extra={
                "task_id": (headers or {}).get("id"),
                "task_name": sender,
                "routing_key": routing_key,
                "correlation_id": _extract_kwargs_from_body(body).get("correlation_id"),
            },
        )


@task_prerun.connect
def _on_task_prerun(task=None, task_id=None, args=None, kwargs=None, **_):
    with contextlib.suppress(Exception):
        logger.info(
            "celery_task_started",
            extra={
                "task_id": task_id,
                "task_name": getattr(task, "name", None),
                "correlation_id": (kwargs or {}).get("correlation_id"),
            },
        )


@task_postrun.connect
def _on_task_postrun(task=None, task_id=None, retval=None, state=None, **_):
    with contextlib.suppress(Exception):
        logger.info(
            "celery_task_finished",
            extra={
                "task_id": task_id,
                "task_name": getattr(task, "name", None),
                "state": state,
            },
        )


@task_failure.connect
def _on_task_failure(task_id=None, exception=None, sender=None, **_):
    with contextlib.suppress(Exception):
        logger.error(
            "celery_task_failed",
            extra={
                "task_id": task_id,
                "task_name": getattr(sender, "name", None),
                "error": str(exception) if exception else None,
            },
        )
