"""Cumulative box-score snapshots and segment diffs for live games."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pandas as pd

from .events import _coerce_id, _safe_int

CORE_STAT_FIELDS = [
    "points",
    "reboundsTotal",
    "reboundsOffensive",
    "assists",
    "blocks",
    "steals",
    "turnovers",
    "foulsPersonal",
    "fieldGoalsMade",
    "fieldGoalsAttempted",
    "threePointersMade",
    "threePointersAttempted",
    "freeThrowsMade",
    "freeThrowsAttempted",
    "rimFieldGoalsMade",
    "rimFieldGoalsAttempted",
    "midFieldGoalsMade",
    "midFieldGoalsAttempted",
]


def empty_snapshot() -> dict:
    return {"teams": {}, "players": {}}


def build_snapshot(box_score: Optional[dict]) -> Optional[dict]:
    """
    Capture cumulative team and player totals from a box score.

    Args:
        box_score: {home: {teamId, totals, players}, away: {...}}

    Returns:
        {teams: teamId -> totals, players: personId -> stats}, or None when
        either side is missing
    """
    if not box_score or not box_score.get("home") or not box_score.get("away"):
        return None
    snapshot = empty_snapshot()
    for side in (box_score["home"], box_score["away"]):
        snapshot["teams"][_coerce_id(side.get("teamId"))] = dict(side.get("totals") or {})
        for player in side.get("players") or []:
            snapshot["players"][_coerce_id(player.get("personId"))] = player
    return snapshot


def diff_stats(start: Optional[dict], end: Optional[dict]) -> dict:
    """end - start for every core counting stat the end snapshot carries."""
    start = start or {}
    end = end or {}
    return {
        field: (end.get(field) or 0) - (start.get(field) or 0)
        for field in CORE_STAT_FIELDS
        if field in end
    }


def diff_snapshots(start: Optional[dict], end: Optional[dict], base_players: Optional[list] = None) -> Optional[dict]:
    """
    Segment totals as the difference between two cumulative snapshots.

    Args:
        start: Snapshot at the segment start (None counts as all zeros)
        end: Snapshot at the segment end
        base_players: Box score players to produce lines for

    Returns:
        {teamTotals, playerStats}, or None without an end snapshot
    """
    if not end:
        return None
    start = start or empty_snapshot()
    team_totals = {
        team_id: diff_stats(start.get("teams", {}).get(team_id), totals)
        for team_id, totals in (end.get("teams") or {}).items()
    }
    player_stats = {}
    # Team-only snapshots (persisted period records) carry no player lines.
    if start.get("players") is None or end.get("players") is None:
        return {"teamTotals": team_totals, "playerStats": player_stats}
    for player in base_players or []:
        person_id = _coerce_id(player.get("personId"))
        line = {
            "personId": person_id,
            "firstName": player.get("firstName") or "",
            "familyName": player.get("familyName") or "",
            "jerseyNum": player.get("jerseyNum") or "",
            "position": player.get("position") or "",
            "minutes": 0,
            "plusMinusPoints": 0,
        }
        line.update(diff_stats(
            (start.get("players") or {}).get(person_id),
            (end.get("players") or {}).get(person_id),
        ))
        player_stats[person_id] = line
    return {"teamTotals": team_totals, "playerStats": player_stats}


def period_end_key(period: int) -> str:
    return f"period-end-{period}"


def _snapshot_entry(action, kind: str, key: str, snapshot: dict, now: datetime) -> dict:
    return {
        "key": key,
        "type": kind,
        "period": _safe_int(action.get("period")),
        "clock": action.get("clock") or "",
        "actionNumber": _safe_int(action.get("actionNumber")),
        "snapshot": snapshot,
        "updatedAt": now.isoformat(),
    }


def collect_snapshot_entries(
    actions: Optional[list],
    snapshot: Optional[dict],
    existing: Optional[list] = None,
    now: Optional[datetime] = None,
) -> list:
    """
    New snapshot entries for period ends and timeouts not yet recorded.

    Every entry captures the same (current) snapshot; call this on each
    refresh so the first refresh after a boundary records it.
    """
    if snapshot is None:
        return []
    now = now or datetime.now(timezone.utc)
    known = {entry.get("key") for entry in existing or []}
    additions = []
    for action in actions or []:
        action_type = str(action.get("actionType") or "").lower()
        if action_type == "period" and action.get("subType") == "end":
            key = period_end_key(_safe_int(action.get("period")))
            kind = "period-end"
        elif action_type == "timeout":
            key = f"timeout-{_safe_int(action.get('actionNumber'))}"
            kind = "timeout"
        else:
            continue
        if key in known:
            continue
        known.add(key)
        additions.append(_snapshot_entry(action, kind, key, snapshot, now))
    return additions


def segment_snapshot_bounds(
    segment: str,
    entries: Optional[list],
    current: Optional[dict],
    current_period: Optional[int],
) -> Optional[dict]:
    """
    Start and end snapshots bounding a segment.

    The end is the closing period-end snapshot, or the current snapshot when
    the segment is still being played.

    Returns:
        {start, startMeta, end, endIsLive}, or None for unknown segments
    """
    by_key = {entry.get("key"): entry for entry in entries or []}

    def end_entry(period):
        return by_key.get(period_end_key(period))

    def end_snapshot(period):
        entry = end_entry(period)
        return entry.get("snapshot") if entry else None

    def live_end(last_period, live_periods):
        is_live = current_period in live_periods
        return end_snapshot(last_period) or (current if is_live else None), is_live

    if segment == "all":
        return {"start": empty_snapshot(), "startMeta": None, "end": current, "endIsLive": False}

    quarters = {"q1": 1, "q2": 2, "q3": 3, "q4": 4}
    if segment in quarters:
        period = quarters[segment]
        end, is_live = live_end(period, {period})
        if period == 1:
            start, meta = empty_snapshot(), None
        else:
            start, meta = end_snapshot(period - 1), end_entry(period - 1)
        return {"start": start, "startMeta": meta, "end": end, "endIsLive": is_live}
    if segment == "first-half":
        end, is_live = live_end(2, {1, 2})
        return {"start": empty_snapshot(), "startMeta": None, "end": end, "endIsLive": is_live}
    if segment == "second-half":
        end, is_live = live_end(4, {3, 4})
        return {"start": end_snapshot(2), "startMeta": end_entry(2), "end": end, "endIsLive": is_live}
    if segment == "q1-q3":
        end, _ = live_end(3, {1, 2, 3})
        return {"start": empty_snapshot(), "startMeta": None, "end": end, "endIsLive": current_period == 3}
    return None


def snapshot_label(meta: Optional[dict]) -> Optional[str]:
    """Human label for a segment's start snapshot, e.g. "Period end (Q2 PT00M00.00S)"."""
    if not meta:
        return None
    kind = "Period end" if meta.get("type") == "period-end" else "Timeout"
    return f"{kind} (Q{meta.get('period')} {meta.get('clock')})"


def period_snapshot_records(
    game: dict,
    window_minutes: float = 3,
    now: Optional[datetime] = None,
) -> list:
    """
    Period-end team totals worth persisting for a live game.

    A period end qualifies when its actual time lies within the last
    window_minutes, so a periodic capture job records each boundary once
    or twice rather than re-writing every old period.

    Returns:
        List of {gameId, period, teamId, totals}
    """
    now = now or datetime.now(timezone.utc)
    box_score = game.get("boxScore") or {}
    home = box_score.get("home") or {}
    away = box_score.get("away") or {}
    if not home.get("totals") or not away.get("totals"):
        return []

    window = timedelta(minutes=window_minutes)
    records = []
    for action in game.get("playByPlayActions") or []:
        if str(action.get("actionType") or "").lower() != "period" or action.get("subType") != "end":
            continue
        actual = pd.to_datetime(action.get("timeActual"), utc=True, errors="coerce")
        if pd.isna(actual):
            continue
        age = now - actual.to_pydatetime()
        if age < timedelta(0) or age > window:
            continue
        period = _safe_int(action.get("period"))
        for side in (away, home):
            records.append({
                "gameId": str(game.get("gameId")),
                "period": period,
                "teamId": _coerce_id(side.get("teamId")),
                "totals": side.get("totals"),
            })
    return records


def snapshot_entries_from_records(records: Optional[list]) -> list:
    """Turn persisted period records into team-only period-end snapshot entries."""
    by_period: dict = {}
    for record in records or []:
        period = _safe_int(record.get("period"))
        entry = by_period.setdefault(period, {
            "key": period_end_key(period),
            "type": "period-end",
            "period": period,
            "clock": "PT00M00.00S",
            "actionNumber": 0,
            "snapshot": {"teams": {}, "players": None},
        })
        entry["snapshot"]["teams"][_coerce_id(record.get("teamId"))] = record.get("totals") or {}
    return [by_period[p] for p in sorted(by_period)]
