"""Celery task definitions for background match-history syncs."""

from riftsync.tasks.celery_app import celery_app

# Import task modules to ensure registration
from riftsync.tasks import sync_tasks  # noqa: F401

__all__ = ["celery_app"]
