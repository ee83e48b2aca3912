"""Compose the per-segment game dashboard from a live game resource."""

import re
from typing import Optional

from .aggregate import aggregate_segment_stats
from .events import _coerce_id, _safe_int, format_minutes, normalize_actions, normalize_stints
from .metrics import (
    compute_kills,
    creating_stats,
    disruptions,
    four_factors,
    pace,
    shot_profile,
    team_possessions,
    team_ratings,
    transition_stats,
)
from .segments import filter_actions, segment_seconds
from .snapshots import build_snapshot, diff_snapshots, segment_snapshot_bounds, snapshot_label

_ISO_DURATION_PATTERN = re.compile(r"PT(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?")

FOUL_BONUS_LIMIT = 5

ROSTER_FIELDS = ("personId", "firstName", "familyName", "jerseyNum", "position")


def normalize_clock(clock) -> str:
    """Convert an ISO-8601 game clock ("PT04M30.00S") to "4:30"."""
    if not clock:
        return ""
    clock = str(clock)
    if not clock.startswith("PT"):
        return clock
    match = _ISO_DURATION_PATTERN.match(clock)
    if not match:
        return clock
    minutes = int(match.group(1) or 0)
    seconds = int(float(match.group(2) or 0))
    return f"{minutes}:{seconds:02d}"


def _overtime_label(period: int, final: bool = False) -> str:
    ot = period - 4
    if final:
        return "F/OT" if ot == 1 else f"F/OT{ot}"
    return "OT" if ot == 1 else f"{ot}OT"


def game_status_label(game: dict) -> Optional[str]:
    """
    Short status label for the scoreboard header.

    Returns:
        "F", "F/OT2", "HT", "End Q3", "Q2", "OT", "2OT", ... or None for
        games that have not started
    """
    status_text = str(game.get("gameStatusText") or "").lower()
    status = _safe_int(game.get("gameStatus"))
    period = _safe_int(game.get("period"))

    if status == 3 or "final" in status_text:
        return _overtime_label(period, final=True) if period > 4 else "F"

    if "halftime" in status_text:
        return "HT"

    if "end of" in status_text or "end q" in status_text:
        return _overtime_label(period) if period > 4 else f"End Q{period}"

    if status == 2:
        if normalize_clock(game.get("gameClock")) == "0:00" or game.get("gameClock") == "PT0S":
            if period == 2:
                return "HT"
            if period > 4:
                return _overtime_label(period)
            return f"End Q{period}"
        return f"Q{period}" if period <= 4 else _overtime_label(period)

    return None


def _official_seconds(value) -> Optional[int]:
    if not value:
        return None
    match = _ISO_DURATION_PATTERN.search(str(value))
    if not match or not (match.group(1) or match.group(2)):
        return None
    return round(int(match.group(1) or 0) * 60 + float(match.group(2) or 0))


def _official_row(official: dict) -> dict:
    return {
        "personId": _coerce_id(official.get("personId")),
        "name": official.get("name") or "",
        "firstName": official.get("firstName") or "",
        "familyName": official.get("familyName") or "",
        "jerseyNum": str(official.get("jerseyNum") or ""),
        "assignment": official.get("assignment") or "",
    }


def calls_against(actions, segment: str, team_codes: dict) -> dict:
    """
    Fouls each official called against each team within the segment.

    Args:
        actions: Normalized actions DataFrame
        segment: Segment name
        team_codes: Dict of teamId to tricode

    Returns:
        Dict of officialId to {tricode: count}
    """
    calls: dict = {}
    fouls = filter_actions(actions, segment)
    if fouls.empty:
        return calls
    fouls = fouls[(fouls["actionType"] == "foul") & (fouls["officialId"] != "")]
    for _, action in fouls.iterrows():
        code = team_codes.get(action["teamId"])
        if not code:
            continue
        by_team = calls.setdefault(action["officialId"], {})
        by_team[code] = by_team.get(code, 0) + 1
    return calls


def team_fouls(actions, period: int, team_id: str) -> int:
    """Fouls charged to a team in the given period."""
    if actions.empty:
        return 0
    mask = (actions["period"] == period) & (actions["actionType"] == "foul") & (actions["teamId"] == team_id)
    return int(mask.sum())


def _merge_players(player_stats: dict, snapshot_stats: Optional[dict]) -> dict:
    if not snapshot_stats:
        return player_stats
    merged = dict(player_stats)
    for person_id, snap in snapshot_stats["playerStats"].items():
        base = merged.get(person_id) or snap
        line = {**base, **snap}
        line["minutes"] = base.get("minutes", snap.get("minutes"))
        line["plusMinusPoints"] = base.get("plusMinusPoints", snap.get("plusMinusPoints"))
        merged[person_id] = line
    return merged


def _merge_team_totals(base: dict, snapshot: Optional[dict], is_live_segment: bool) -> dict:
    if not snapshot:
        return base
    merged = {**base, **snapshot}
    if is_live_segment:
        merged["points"] = max(base.get("points") or 0, snapshot.get("points") or 0)
    return merged


def _player_rows(players: list, player_stats: dict, segment: str) -> list:
    rows = []
    for player in players:
        person_id = _coerce_id(player.get("personId"))
        stats = player_stats.get(person_id) or {}
        if segment == "all":
            row = {**player, **stats}
            official = _official_seconds(player.get("minutes"))
            seconds = official if official is not None else stats.get("minutes", 0)
            if player.get("plusMinusPoints") is not None:
                row["plusMinusPoints"] = player["plusMinusPoints"]
        else:
            row = {field: player.get(field) or "" for field in ROSTER_FIELDS}
            row.update(stats)
            seconds = stats.get("minutes", 0)
        row["personId"] = person_id
        row["minutes"] = format_minutes(seconds)
        if row["minutes"] != "00:00" or (row.get("points") or 0) > 0 or (row.get("reboundsTotal") or 0) > 0:
            rows.append(row)
    return rows


def _lineup_rows(units: dict) -> list:
    rows = []
    for key, unit in units.items():
        rows.append({**unit, "key": key, "minutes": format_minutes(unit["seconds"])})
    return sorted(rows, key=lambda row: row["seconds"], reverse=True)


def build_game_dashboard(
    game: dict,
    minutes_data: Optional[dict],
    segment: str = "all",
    snapshots: Optional[list] = None,
    advanced: Optional[dict] = None,
    lineup_strategy: str = "auto",
) -> dict:
    """
    Build the JSON-ready dashboard for one game segment.

    Args:
        game: Game resource (teams, box score, play-by-play actions)
        minutes_data: Minutes/stints resource, or None
        segment: Segment name
        snapshots: Snapshot entries (period ends, timeouts) for a live game
        advanced: Official team advanced stats, {home: {...}, away: {...}}
        lineup_strategy: Lineup attribution strategy

    Returns:
        Dashboard dict with header, per-team blocks, player rows and lineups

    Raises:
        ValueError: If the game lacks a home or away team id
    """
    home_team = game.get("homeTeam") or {}
    away_team = game.get("awayTeam") or {}
    home_id = _coerce_id(home_team.get("teamId"))
    away_id = _coerce_id(away_team.get("teamId"))
    if not home_id or not away_id:
        raise ValueError(f"Game {game.get('gameId')} is missing a home or away team id")

    box_score = game.get("boxScore") or {}
    home_players = (box_score.get("home") or {}).get("players") or []
    away_players = (box_score.get("away") or {}).get("players") or []
    base_players = away_players + home_players

    is_live = _safe_int(game.get("gameStatus")) == 2
    current_period = _safe_int(game.get("period")) or 1
    actions = normalize_actions(game.get("playByPlayActions"))

    stats = aggregate_segment_stats(
        actions,
        segment=segment,
        minutes_data=minutes_data,
        home_team=home_team,
        away_team=away_team,
        base_players=base_players,
        lineup_strategy=lineup_strategy,
        live_period=current_period if is_live else None,
        live_clock=game.get("gameClock") if is_live else None,
    )

    snapshot_stats = None
    bounds = None
    if is_live:
        bounds = segment_snapshot_bounds(segment, snapshots, build_snapshot(box_score), current_period)
        if bounds and bounds["start"] is not None and bounds["end"]:
            snapshot_stats = diff_snapshots(bounds["start"], bounds["end"], base_players)

    player_stats = _merge_players(stats["playerStats"], snapshot_stats)
    base_totals = {
        "home": stats["teamTotals"].get(home_id) or {},
        "away": stats["teamTotals"].get(away_id) or {},
    }
    is_live_segment = segment != "all" and bool(bounds and bounds["endIsLive"])
    snapshot_totals = (snapshot_stats or {}).get("teamTotals") or {}
    display_totals = {
        "home": _merge_team_totals(base_totals["home"], snapshot_totals.get(home_id), is_live_segment),
        "away": _merge_team_totals(base_totals["away"], snapshot_totals.get(away_id), is_live_segment),
    }

    advanced = advanced or {}
    possessions = team_possessions(base_totals["home"], base_totals["away"], segment, advanced)
    ratings = team_ratings(base_totals["home"], base_totals["away"], segment, advanced)
    seconds = segment_seconds(
        segment,
        normalize_stints(minutes_data),
        period=game.get("period"),
        game_clock=game.get("gameClock"),
        is_live=is_live,
    )
    if seconds == 0:
        kills = {"homeKills": 0, "awayKills": 0}
    else:
        kills = compute_kills(actions, segment, home_id, away_id)

    teams = {}
    for side, opponent_side, team in (("home", "away", home_team), ("away", "home", away_team)):
        totals = base_totals[side]
        official = advanced.get(side) or {}
        side_possessions = max(possessions[side], 1)
        fouls = team_fouls(actions, current_period, _coerce_id(team.get("teamId")))
        teams[side] = {
            "teamId": _coerce_id(team.get("teamId")),
            "totals": display_totals[side],
            "possessions": side_possessions,
            "offensiveRating": ratings[side]["offensiveRating"],
            "netRating": ratings[side]["netRating"],
            "fourFactors": four_factors(totals, base_totals[opponent_side]),
            "shotProfile": shot_profile(totals),
            "transition": transition_stats(totals, side_possessions),
            "creating": creating_stats(totals),
            "disruptions": disruptions(totals, official.get("deflections", 0) if segment == "all" else 0),
            "kills": kills[f"{side}Kills"],
            "fouls": min(fouls, FOUL_BONUS_LIMIT),
            "bonus": fouls >= FOUL_BONUS_LIMIT,
        }

    if segment == "all":
        home_score = home_team.get("score") or 0
        away_score = away_team.get("score") or 0
    else:
        home_score = display_totals["home"].get("points") or 0
        away_score = display_totals["away"].get("points") or 0

    return {
        "gameId": str(game.get("gameId") or ""),
        "segment": segment,
        "status": game_status_label(game),
        "clock": normalize_clock(game.get("gameClock")),
        "period": current_period,
        "isLive": is_live,
        "officials": [_official_row(o) for o in game.get("officials") or []],
        "callsAgainst": calls_against(
            actions,
            segment,
            {home_id: home_team.get("teamTricode") or "", away_id: away_team.get("teamTricode") or ""},
        ),
        "homeTeam": {**home_team, "teamId": home_id, "score": home_score},
        "awayTeam": {**away_team, "teamId": away_id, "score": away_score},
        "segmentSeconds": seconds,
        "pace": pace(teams["home"]["possessions"], teams["away"]["possessions"], seconds),
        "teams": teams,
        "players": {
            "home": _player_rows(home_players, player_stats, segment),
            "away": _player_rows(away_players, player_stats, segment),
        },
        "lineups": _lineup_rows(stats["lineups"]),
        "lineupStrategies": {str(period): used for period, used in stats["lineupStrategies"].items()},
        "snapshotLabel": snapshot_label(bounds["startMeta"]) if bounds else None,
    }
