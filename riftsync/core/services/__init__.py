"""Service layer for the match-history cache.

Services take ports (interfaces) and compose them into the sync cycle:
id pagination, bounded detail fetch, projection and the orchestrator.
"""

from riftsync.core.services.detail_fetcher import BoundedDetailFetcher, DetailBatch, RequestPacer
from riftsync.core.services.id_paginator import MatchIdPage, paginate_match_ids
from riftsync.core.services.match_history_sync import MatchHistorySyncService, merge_windows
from riftsync.core.services.match_projector import (
    per_minute_metrics,
    project_match,
    sort_newest_first,
)
from riftsync.core.services.single_flight import SingleFlight

__all__ = [
    "BoundedDetailFetcher",
    "DetailBatch",
    "RequestPacer",
    "MatchIdPage",
    "paginate_match_ids",
    "MatchHistorySyncService",
    "merge_windows",
    "per_minute_metrics",
    "project_match",
    "sort_newest_first",
    "SingleFlight",
]
