"""Background match-history sync.

One task per player. The worker bridges into asyncio with a fresh event loop
per run; the Riot session and cache client live only for that run.
"""

import asyncio
import logging
from typing import Any

from riftsync.adapters.factory import sync_once
from riftsync.config.settings import get_settings
from riftsync.core.errors import CacheIOError, UpstreamError
from riftsync.core.observability import clear_correlation_id, set_correlation_id
from riftsync.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="riftsync.tasks.sync_tasks.sync_match_history",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def sync_match_history(
    self: Any,  # Celery task instance
    puuid: str,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    """Sync one player's match window and return the consumer payload.

    Upstream 5xx, timeouts and network failures are retried with exponential
    backoff. Any other upstream error is reported in the result instead of
    failing the task, since repeating it cannot succeed. A player lock held
    elsewhere for too long is retried the same way.

    Args:
        puuid: Player Universally Unique Identifier
        correlation_id: Optional id bound to every log line of this run

    Returns:
        ``SyncResult.to_payload()`` plus ``success``/``task_id``, or
        ``{"success": False, "error": {...}}``
    """
    if correlation_id:
        set_correlation_id(correlation_id)
    logger.info(f"[Task {self.request.id}] Syncing match history for {puuid}")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        result = loop.run_until_complete(sync_once(get_settings(), puuid))
    except UpstreamError as exc:
        if exc.is_retryable:
            logger.warning(
                f"[Task {self.request.id}] Retryable upstream error for {puuid}: {exc}"
            )
            raise self.retry(exc=exc, countdown=2**self.request.retries) from exc
        logger.error(f"[Task {self.request.id}] Upstream error for {puuid}: {exc}")
        return {
            "success": False,
            "puuid": puuid,
            "error": exc.to_dict(),
            "task_id": self.request.id,
        }
    except CacheIOError as exc:
        # Another worker is still syncing this player
        logger.warning(f"[Task {self.request.id}] Cache error for {puuid}: {exc}")
        raise self.retry(exc=exc, countdown=2**self.request.retries) from exc
    finally:
        loop.close()
        asyncio.set_event_loop(None)
        if correlation_id:
            clear_correlation_id()

    logger.info(
        f"[Task {self.request.id}] Synced {puuid}: {result.sync_state}, "
        f"{len(result.matches)} matches"
    )
    return {"success": True, **result.to_payload(), "task_id": self.request.id}
