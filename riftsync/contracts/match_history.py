"""
Match-history cache data contracts.

``MatchRecord`` is the compact, stable-shape projection of a Match-V5 detail
payload for one player. ``PlayerCache`` is the per-player document owned by the
cache store. ``SyncResult`` is what a sync hands back to its caller.

Absent statistics are ``None``; zero is a valid stat and never stands in for
missing data.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from .common import BaseContract, Role

ITEM_SLOTS = 7


class TeamObjectives(BaseContract):
    """Objective kill counts for one team in a match."""

    team_id: int | None = Field(None, alias="teamId")
    win: bool | None = None
    baron: int | None = None
    dragon: int | None = None
    herald: int | None = None
    tower: int | None = None


class MatchRecord(BaseContract):
    """Projected match from the requesting player's point of view."""

    id: str = Field(..., min_length=1, description="Match-V5 match id, e.g. NA1_5012345678")
    end_timestamp: int | None = Field(None, alias="endTimestamp", description="Epoch ms")
    duration_seconds: int | None = Field(None, alias="durationSeconds")
    queue_id: int | None = Field(None, alias="queueId")
    game_version: str | None = Field(None, alias="gameVersion")
    champion_name: str | None = Field(None, alias="championName")
    win: bool | None = None
    kills: int | None = None
    deaths: int | None = None
    assists: int | None = None
    gold_earned: int | None = Field(None, alias="goldEarned")
    damage_dealt: int | None = Field(None, alias="damageDealt")
    damage_taken: int | None = Field(None, alias="damageTaken")
    vision_score: int | None = Field(None, alias="visionScore")
    cs_count: int | None = Field(None, alias="csCount")
    role: Role | None = None
    items: list[int | None] = Field(
        default_factory=lambda: [None] * ITEM_SLOTS,
        min_length=ITEM_SLOTS,
        max_length=ITEM_SLOTS,
    )
    team_objectives: list[TeamObjectives] = Field(default_factory=list, alias="teamObjectives")
    # False when the player was not found and the first participant was used
    participant_located: bool = Field(True, alias="participantLocated")


class PerMinuteMetrics(BaseContract):
    """Derived per-minute rates for one match; all None when duration is unknown."""

    kda: float | None = None
    cs_per_min: float | None = Field(None, alias="csPerMin")
    gold_per_min: float | None = Field(None, alias="goldPerMin")
    vision_per_min: float | None = Field(None, alias="visionPerMin")
    dmg_dealt_per_min: float | None = Field(None, alias="dmgDealtPerMin")


class PlayerCache(BaseContract):
    """Cached bounded match window for one player."""

    puuid: str = Field(..., min_length=1)
    matches: list[MatchRecord] = Field(default_factory=list, description="Newest first")
    latest_match_id: str | None = Field(
        None, alias="latestMatchId", description="Newest match id at last successful sync"
    )
    updated_at: datetime = Field(..., alias="updatedAt")
    requested_cap: int = Field(..., ge=1, alias="requestedCap")


class CacheSource(str, Enum):
    CACHE = "cache"
    SYNC = "sync"


class SyncState(str, Enum):
    """Terminal state of one sync cycle."""

    UP_TO_DATE = "UP_TO_DATE"
    FRESHNESS_RATE_LIMITED = "FRESHNESS_RATE_LIMITED"
    FULL_SYNC = "FULL_SYNC"
    INCREMENTAL_SYNC = "INCREMENTAL_SYNC"
    RESYNC = "RESYNC"


class SyncResult(BaseContract):
    """Outcome of ``MatchHistorySyncService.sync`` for one player."""

    puuid: str
    matches: list[MatchRecord] = Field(default_factory=list)
    rate_limited: bool = Field(False, alias="rateLimited")
    fetched_matches: int = Field(0, ge=0, alias="fetchedMatches")
    requested_cap: int = Field(..., ge=1, alias="requestedCap")
    source: CacheSource
    sync_state: SyncState = Field(..., alias="syncState")
    updated_at: datetime | None = Field(None, alias="updatedAt")
    latest_match_id: str | None = Field(None, alias="latestMatchId")
    persisted: bool = True
    cache_error: str | None = Field(None, alias="cacheError")
    warnings: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready structure for downstream consumers."""
        from riftsync.core.services.match_projector import per_minute_metrics

        matches: list[dict[str, Any]] = []
        for record in self.matches:
            item = record.model_dump(mode="json", by_alias=True)
            item["perMinute"] = per_minute_metrics(record).model_dump(mode="json", by_alias=True)
            matches.append(item)

        return {
            "puuid": self.puuid,
            "rateLimited": self.rate_limited,
            "fetchedMatches": self.fetched_matches,
            "requestedCap": self.requested_cap,
            "matches": matches,
            "cache": {
                "source": self.source,
                "state": self.sync_state,
                "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
                "latestMatchId": self.latest_match_id,
                "persisted": self.persisted,
                "error": self.cache_error,
            },
            "dataQuality": {"warnings": list(self.warnings)},
        }
