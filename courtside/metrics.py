"""Derived metrics computed from aggregated team totals and the action log."""

import math
from typing import Optional

import pandas as pd

from .events import is_made, normalize_actions
from .segments import filter_actions

SECONDS_PER_GAME = 2880
KILL_STREAK = 3


def _val(totals: Optional[dict], key: str) -> float:
    """Zero-defaulting lookup for optional stat fields."""
    if not totals:
        return 0
    value = totals.get(key)
    if value is None:
        return 0
    try:
        if pd.isna(value):
            return 0
    except (TypeError, ValueError):
        return 0
    return value


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_possessions(totals: Optional[dict]) -> float:
    """Standard possession estimate: FGA + 0.44*FTA + TOV - OREB."""
    return (
        _val(totals, "fieldGoalsAttempted")
        + 0.44 * _val(totals, "freeThrowsAttempted")
        + _val(totals, "turnovers")
        - _val(totals, "reboundsOffensive")
    )


def _official(team_stats: Optional[dict], side: str, key: str):
    return ((team_stats or {}).get(side) or {}).get(key)


def team_possessions(
    home_totals: Optional[dict],
    away_totals: Optional[dict],
    segment: str = "all",
    team_stats: Optional[dict] = None,
) -> dict:
    """
    Possessions for both teams.

    Official counts override the estimate for the whole-game segment when
    the upstream source supplies them for both teams.

    Returns:
        Dict with "home", "away" and "official" (whether official counts were used)
    """
    official_home = _official(team_stats, "home", "possessions")
    official_away = _official(team_stats, "away", "possessions")
    if segment == "all" and official_home and official_away:
        return {"home": float(official_home), "away": float(official_away), "official": True}
    return {
        "home": estimate_possessions(home_totals),
        "away": estimate_possessions(away_totals),
        "official": False,
    }


def offensive_rating(points: float, possessions: float) -> int:
    """Points per 100 possessions, rounded; possessions floor at 1."""
    return round_half_up(points / max(possessions, 1) * 100)


def team_ratings(
    home_totals: Optional[dict],
    away_totals: Optional[dict],
    segment: str = "all",
    team_stats: Optional[dict] = None,
) -> dict:
    """
    Offensive and net ratings for both teams.

    Estimates use the possession formula on the segment totals. For the
    whole-game segment, official ratings replace them when present and
    non-zero for both teams.
    """
    official_home = _official(team_stats, "home", "offensiveRating")
    official_away = _official(team_stats, "away", "offensiveRating")
    if segment == "all" and official_home and official_away:
        return {
            "home": {
                "offensiveRating": round_half_up(official_home),
                "netRating": round_half_up(_official(team_stats, "home", "netRating") or 0),
            },
            "away": {
                "offensiveRating": round_half_up(official_away),
                "netRating": round_half_up(_official(team_stats, "away", "netRating") or 0),
            },
        }

    ortg_home = offensive_rating(_val(home_totals, "points"), estimate_possessions(home_totals))
    ortg_away = offensive_rating(_val(away_totals, "points"), estimate_possessions(away_totals))
    return {
        "home": {"offensiveRating": ortg_home, "netRating": ortg_home - ortg_away},
        "away": {"offensiveRating": ortg_away, "netRating": ortg_away - ortg_home},
    }


def effective_fg_pct(fgm: float, fga: float, fg3m: float) -> float:
    return (fgm + 0.5 * fg3m) / fga * 100 if fga else 0.0


def turnover_pct(tov: float, fga: float, fta: float) -> float:
    denominator = fga + 0.44 * fta + tov
    return tov / denominator * 100 if denominator else 0.0


def offensive_rebound_pct(orb: float, opponent_drb: float) -> float:
    return orb / (orb + opponent_drb) * 100 if (orb + opponent_drb) else 0.0


def free_throw_rate(fta: float, fga: float) -> float:
    return fta / fga * 100 if fga else 0.0


def defensive_rebounds(totals: Optional[dict]) -> float:
    return _val(totals, "reboundsTotal") - _val(totals, "reboundsOffensive")


def four_factors(totals: Optional[dict], opponent_totals: Optional[dict]) -> dict:
    """eFG%, TOV%, ORB% and FTR for one team against its opponent."""
    fga = _val(totals, "fieldGoalsAttempted")
    fta = _val(totals, "freeThrowsAttempted")
    return {
        "efgPct": effective_fg_pct(_val(totals, "fieldGoalsMade"), fga, _val(totals, "threePointersMade")),
        "tovPct": turnover_pct(_val(totals, "turnovers"), fga, fta),
        "orbPct": offensive_rebound_pct(_val(totals, "reboundsOffensive"), defensive_rebounds(opponent_totals)),
        "ftr": free_throw_rate(fta, fga),
    }


def pace(home_possessions: float, away_possessions: float, segment_seconds: float) -> float:
    """Average possessions scaled to a 48-minute game."""
    if not segment_seconds:
        return 0.0
    return (home_possessions + away_possessions) / 2 * SECONDS_PER_GAME / segment_seconds


def _rate(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def shot_profile(totals: Optional[dict]) -> dict:
    """Share of attempts and FG% at the rim, from midrange and from three."""
    fga = _val(totals, "fieldGoalsAttempted")
    profile = {}
    for label, made_key, attempted_key in (
        ("rim", "rimFieldGoalsMade", "rimFieldGoalsAttempted"),
        ("mid", "midFieldGoalsMade", "midFieldGoalsAttempted"),
        ("three", "threePointersMade", "threePointersAttempted"),
    ):
        made = _val(totals, made_key)
        attempted = _val(totals, attempted_key)
        profile[label] = {
            "made": made,
            "attempted": attempted,
            "rate": _rate(attempted, fga),
            "fgPct": _rate(made, attempted),
        }
    return profile


def transition_stats(totals: Optional[dict], possessions: float) -> dict:
    """Transition and misc block for one team."""
    return {
        "transitionRate": _rate(_val(totals, "transitionPossessions"), max(possessions, 1)),
        "transitionPoints": _val(totals, "transitionPoints"),
        "transitionTurnovers": _val(totals, "transitionTurnovers"),
        "secondChancePoints": _val(totals, "secondChancePoints"),
        "pointsOffTurnovers": _val(totals, "pointsOffTurnovers"),
        "paintPoints": _val(totals, "paintPoints"),
        "threePointORebPercent": _rate(_val(totals, "threePointOReb"), _val(totals, "reboundsOffensive")),
    }


CREATING_FIELDS = [
    "drivingFGMade",
    "drivingFGAttempted",
    "cuttingFGMade",
    "cuttingFGAttempted",
    "catchAndShoot3FGMade",
    "catchAndShoot3FGAttempted",
    "secondChance3FGMade",
    "secondChance3FGAttempted",
    "offensiveFoulsDrawn",
]


def creating_stats(totals: Optional[dict]) -> dict:
    """Shot-creation counters, zero when the segment has no totals."""
    return {field: _val(totals, field) for field in CREATING_FIELDS}


def disruptions(totals: Optional[dict], deflections: float = 0) -> float:
    """Steals + blocks + offensive fouls drawn + deflections."""
    return (
        _val(totals, "steals")
        + _val(totals, "blocks")
        + _val(totals, "offensiveFoulsDrawn")
        + (deflections or 0)
    )


def compute_kills(actions, segment: str, home_team_id, away_team_id) -> dict:
    """
    Count kills: every third consecutive unscored possession by one team
    credits a kill to the other team.

    Possessions are runs of actions sharing the same possession value. A
    possession is scored when it contains a made field goal, or a made free
    throw by the team in possession. A scored possession resets that
    team's streak.

    Args:
        actions: Raw action dicts or a normalized DataFrame
        segment: Segment name
        home_team_id: Home team id
        away_team_id: Away team id

    Returns:
        Dict with "homeKills" and "awayKills"
    """
    if not isinstance(actions, pd.DataFrame):
        actions = normalize_actions(actions)
    home_id = str(home_team_id)
    away_id = str(away_team_id)
    streaks = {home_id: 0, away_id: 0}
    kills = {home_id: 0, away_id: 0}

    current = {"team": None, "scored": False}

    def finish_possession() -> None:
        team_id = current["team"]
        if team_id not in streaks:
            return
        if current["scored"]:
            streaks[team_id] = 0
            return
        streaks[team_id] += 1
        if streaks[team_id] % KILL_STREAK == 0:
            opponent = away_id if team_id == home_id else home_id
            kills[opponent] += 1

    for _, action in filter_actions(actions, segment).iterrows():
        possession = action["possession"]
        if possession and possession != current["team"]:
            finish_possession()
            current["team"] = possession
            current["scored"] = False

        if current["team"] is None:
            continue
        if action["actionType"] in ("2pt", "3pt") and is_made(action):
            current["scored"] = True
        if action["actionType"] == "freethrow" and is_made(action) and action["teamId"] == current["team"]:
            current["scored"] = True

    finish_possession()
    return {"homeKills": kills[home_id], "awayKills": kills[away_id]}
