"""Match-V5 detail payload → compact ``MatchRecord`` projection.

The projection is pure and total: any shape problem in the raw payload
degrades the affected field to ``None`` instead of raising. ``csCount`` is the
single derived sum where a missing summand counts as 0.

Player lookup goes through ``metadata.participants`` (PUUID list) and indexes
``info.participants``. When the PUUID is absent the first participant is used
and the record is flagged with ``participant_located=False``; stats on such a
record describe someone else and should be treated as approximate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from riftsync.contracts import MatchRecord, PerMinuteMetrics, Role, TeamObjectives
from riftsync.contracts.match_history import ITEM_SLOTS

logger = logging.getLogger(__name__)

_ROLE_ALIASES: dict[str, Role] = {
    "TOP": Role.TOP,
    "JUNGLE": Role.JUNGLE,
    "MIDDLE": Role.MID,
    "MID": Role.MID,
    "BOTTOM": Role.ADC,
    "ADC": Role.ADC,
    "CARRY": Role.ADC,
    "DUO_CARRY": Role.ADC,
    "UTILITY": Role.SUPPORT,
    "SUPPORT": Role.SUPPORT,
    "DUO_SUPPORT": Role.SUPPORT,
}


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _int(value: Any) -> int | None:
    # bool is an int subclass; a boolean where a count belongs is bad data
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def normalize_role(*candidates: Any) -> Role | None:
    """First non-empty candidate mapped onto the closed role set.

    Riot reports ``teamPosition`` (preferred), then legacy ``role``/``lane``.
    Unrecognized values (``NONE``, ``SOLO``...) become ``UNKNOWN``; no value at
    all stays ``None``.
    """
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return _ROLE_ALIASES.get(candidate.strip().upper(), Role.UNKNOWN)
    return None


def locate_participant(raw: dict[str, Any], puuid: str) -> tuple[dict[str, Any], bool]:
    """Return (participant stat block, located) for ``puuid``."""
    metadata = _dict(raw.get("metadata"))
    info = _dict(raw.get("info"))
    participants = info.get("participants")
    participants = participants if isinstance(participants, list) else []

    ids = metadata.get("participants")
    if isinstance(ids, list) and puuid in ids:
        idx = ids.index(puuid)
        if idx < len(participants) and isinstance(participants[idx], dict):
            return participants[idx], True

    if participants and isinstance(participants[0], dict):
        return participants[0], False
    return {}, False


def _team_objectives(info: dict[str, Any]) -> list[TeamObjectives]:
    teams = info.get("teams")
    if not isinstance(teams, list):
        return []
    result: list[TeamObjectives] = []
    for team in teams:
        team = _dict(team)
        objectives = _dict(team.get("objectives"))
        result.append(
            TeamObjectives(
                team_id=_int(team.get("teamId")),
                win=_bool(team.get("win")),
                baron=_int(_dict(objectives.get("baron")).get("kills")),
                dragon=_int(_dict(objectives.get("dragon")).get("kills")),
                herald=_int(_dict(objectives.get("riftHerald")).get("kills")),
                tower=_int(_dict(objectives.get("tower")).get("kills")),
            )
        )
    return result


def project_match(raw: Any, puuid: str, *, match_id: str | None = None) -> MatchRecord:
    """Project one raw detail payload for the requesting player.

    ``match_id`` is used when the payload's ``metadata.matchId`` is missing
    (the id that was requested is authoritative for the cache key).
    """
    raw = _dict(raw)
    metadata = _dict(raw.get("metadata"))
    info = _dict(raw.get("info"))
    participant, located = locate_participant(raw, puuid)

    resolved_id = _str(metadata.get("matchId")) or match_id
    if not resolved_id:
        raise ValueError("match payload has no metadata.matchId and no requested id")
    if not located:
        logger.debug(f"Player {puuid} not found in {resolved_id}; using first participant")

    cs_count = (_int(participant.get("totalMinionsKilled")) or 0) + (
        _int(participant.get("neutralMinionsKilled")) or 0
    )

    return MatchRecord(
        id=resolved_id,
        end_timestamp=_int(info.get("gameEndTimestamp")),
        duration_seconds=_int(info.get("gameDuration")),
        queue_id=_int(info.get("queueId")),
        game_version=_str(info.get("gameVersion")),
        champion_name=_str(participant.get("championName")),
        win=_bool(participant.get("win")),
        kills=_int(participant.get("kills")),
        deaths=_int(participant.get("deaths")),
        assists=_int(participant.get("assists")),
        gold_earned=_int(participant.get("goldEarned")),
        damage_dealt=_int(participant.get("totalDamageDealtToChampions")),
        damage_taken=_int(participant.get("totalDamageTaken")),
        vision_score=_int(participant.get("visionScore")),
        cs_count=cs_count,
        role=normalize_role(
            participant.get("teamPosition"), participant.get("role"), participant.get("lane")
        ),
        items=[_int(participant.get(f"item{slot}")) for slot in range(ITEM_SLOTS)],
        team_objectives=_team_objectives(info),
        participant_located=located,
    )


def sort_newest_first(records: Iterable[MatchRecord]) -> list[MatchRecord]:
    """Order by end timestamp descending; records without one go last (stable)."""
    return sorted(
        records,
        key=lambda r: (r.end_timestamp is None, -(r.end_timestamp or 0)),
    )


def _per_minute(value: int | None, minutes: float | None) -> float | None:
    if value is None or minutes is None:
        return None
    return round(value / minutes, 3)


def per_minute_metrics(record: MatchRecord) -> PerMinuteMetrics:
    """KDA and per-minute rates; all per-minute values None without a duration."""
    minutes = record.duration_seconds / 60 if record.duration_seconds else None
    if minutes is not None and minutes <= 0:
        minutes = None

    kda = None
    if record.kills is not None and record.deaths is not None and record.assists is not None:
        kda = round((record.kills + record.assists) / max(1, record.deaths), 3)

    return PerMinuteMetrics(
        kda=kda,
        cs_per_min=_per_minute(record.cs_count, minutes),
        gold_per_min=_per_minute(record.gold_earned, minutes),
        vision_per_min=_per_minute(record.vision_score, minutes),
        dmg_dealt_per_min=_per_minute(record.damage_dealt, minutes),
    )
