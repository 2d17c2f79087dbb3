"""Contract models for data validation."""

from .common import Platform, Region, Role, regional_routing
from .fetch_outcome import (
    FetchError,
    FetchOutcome,
    FetchRateLimited,
    FetchSuccess,
    parse_retry_after,
    unreachable_outcome,
)
from .match_history import (
    CacheSource,
    MatchRecord,
    PerMinuteMetrics,
    PlayerCache,
    SyncResult,
    SyncState,
    TeamObjectives,
)

__all__ = [
    "Platform",
    "Region",
    "Role",
    "regional_routing",
    "FetchError",
    "FetchOutcome",
    "FetchRateLimited",
    "FetchSuccess",
    "parse_retry_after",
    "unreachable_outcome",
    "CacheSource",
    "MatchRecord",
    "PerMinuteMetrics",
    "PlayerCache",
    "SyncResult",
    "SyncState",
    "TeamObjectives",
]
