"""Lineup attribution: on-court seconds, plus-minus and five-man units."""

from typing import Optional

import pandas as pd

from .events import action_points, parse_clock, period_length_secs
from .segments import segment_periods

LINEUP_STRATEGIES = ("none", "stints", "replay", "auto")

# Slack allowed between stint coverage and elapsed period time.
_COVERAGE_TOLERANCE_SECS = 1.0


def _new_line() -> dict:
    return {
        "seconds": 0.0,
        "plusMinus": 0,
        "pointsFor": 0,
        "pointsAgainst": 0,
        "possessionsFor": 0,
        "possessionsAgainst": 0,
        "stints": 0,
    }


def unit_key(team_id: str, players) -> str:
    """Stable key for a five-man unit: team id plus sorted member ids."""
    return f"{team_id}:" + "-".join(sorted(players))


def _credit(
    lines: dict,
    units: dict,
    team_id: str,
    players,
    seconds: float,
    points_for: int,
    points_against: int,
    possessions_for: int = 0,
    possessions_against: int = 0,
    plus_minus: Optional[int] = None,
) -> None:
    """Add one window's totals to every player on court and to their unit."""
    if plus_minus is None:
        plus_minus = points_for - points_against
    targets = [lines.setdefault(pid, _new_line()) for pid in players]
    if players:
        key = unit_key(team_id, players)
        unit = units.setdefault(key, {"teamId": team_id, "players": sorted(players), **_new_line()})
        targets.append(unit)
    for line in targets:
        line["seconds"] += seconds
        line["plusMinus"] += plus_minus
        line["pointsFor"] += points_for
        line["pointsAgainst"] += points_against
        line["possessionsFor"] += possessions_for
        line["possessionsAgainst"] += possessions_against
        line["stints"] += 1


def starting_lineups(stints: pd.DataFrame) -> dict:
    """
    Derive each period's starting five for both teams.

    The starters are the lineups of the stint with the largest starting
    clock in the period.

    Returns:
        Dict of period -> (home player ids, away player ids)
    """
    lineups = {}
    if stints.empty:
        return lineups
    for period, group in stints.groupby("period"):
        first = group.loc[group["startSeconds"].astype(float).idxmax()]
        lineups[int(period)] = (tuple(first["playersHome"]), tuple(first["playersAway"]))
    return lineups


def attribute_stints(
    period_stints: pd.DataFrame,
    home_team_id: str,
    away_team_id: str,
    lines: dict,
    units: dict,
) -> None:
    """
    Credit seconds and plus-minus from discrete stint records.

    Stint plus-minus is from the home team's perspective, so away players
    receive the negated value.
    """
    for _, stint in period_stints.iterrows():
        duration = max(0.0, float(stint["startSeconds"]) - float(stint["endSeconds"]))
        plus_minus = int(stint["plusMinus"])
        _credit(lines, units, home_team_id, stint["playersHome"], duration, 0, 0, plus_minus=plus_minus)
        _credit(lines, units, away_team_id, stint["playersAway"], duration, 0, 0, plus_minus=-plus_minus)


def attribute_replay(
    period_actions: pd.DataFrame,
    lineup: tuple,
    home_team_id: str,
    away_team_id: str,
    lines: dict,
    units: dict,
    start_seconds: float,
    end_seconds: float = 0.0,
) -> None:
    """
    Replay one period's actions against live lineup sets.

    Substitutions close the current scoring window; every substitution that
    shares a clock with the one that opened the block is applied to the
    same boundary. Windows with no elapsed time, no points and no
    possession change are dropped.

    Args:
        period_actions: The period's actions in replay order
        lineup: (home starters, away starters)
        home_team_id: Home team id
        away_team_id: Away team id
        lines: Per-player accumulator, updated in place
        units: Per-unit accumulator, updated in place
        start_seconds: Clock at which the replay starts
        end_seconds: Clock at which the last window closes (live clock for a
            period still in progress, else 0)
    """
    on_court = {home_team_id: list(lineup[0]), away_team_id: list(lineup[1])}
    window = {"start": start_seconds, "home": 0, "away": 0, "homePoss": 0, "awayPoss": 0}

    def close_window(at: float) -> None:
        duration = max(0.0, window["start"] - at)
        scored = window["home"] or window["away"]
        possessions = window["homePoss"] or window["awayPoss"]
        if duration > 0 or scored or possessions:
            _credit(
                lines, units, home_team_id, tuple(on_court[home_team_id]), duration,
                window["home"], window["away"], window["homePoss"], window["awayPoss"],
            )
            _credit(
                lines, units, away_team_id, tuple(on_court[away_team_id]), duration,
                window["away"], window["home"], window["awayPoss"], window["homePoss"],
            )
        window.update(start=at, home=0, away=0, homePoss=0, awayPoss=0)

    last_possession = None
    sub_block_clock = None

    for _, action in period_actions.iterrows():
        clock = float(action["clockSeconds"])
        team_id = action["teamId"]

        if action["actionType"] == "substitution":
            if sub_block_clock != clock:
                close_window(clock)
                sub_block_clock = clock
            players = on_court.get(team_id)
            person_id = action["personId"]
            sub_type = str(action["subType"]).lower()
            if players is not None and person_id:
                if sub_type == "out" and person_id in players:
                    players.remove(person_id)
                elif sub_type == "in" and person_id not in players:
                    players.append(person_id)
        elif sub_block_clock is not None and clock != sub_block_clock:
            sub_block_clock = None

        possession = action["possession"]
        if possession and possession != last_possession:
            last_possession = possession
            if possession == home_team_id:
                window["homePoss"] += 1
            elif possession == away_team_id:
                window["awayPoss"] += 1

        points = action_points(action)
        if points:
            if team_id == home_team_id:
                window["home"] += points
            elif team_id == away_team_id:
                window["away"] += points

    close_window(end_seconds)


def _stints_cover(period_stints: pd.DataFrame, expected_seconds: float) -> bool:
    if period_stints.empty:
        return False
    covered = float((period_stints["startSeconds"] - period_stints["endSeconds"]).sum())
    return covered + _COVERAGE_TOLERANCE_SECS >= expected_seconds


def attribute_lineups(
    actions: pd.DataFrame,
    stints: pd.DataFrame,
    segment: Optional[str],
    home_team_id: str,
    away_team_id: str,
    strategy: str = "auto",
    live_period: Optional[int] = None,
    live_clock=None,
) -> dict:
    """
    Attribute on-court seconds, plus-minus and window totals to players and units.

    Args:
        actions: Normalized actions in replay order (any segment)
        stints: Normalized stint DataFrame (may be empty)
        segment: Segment name
        home_team_id: Home team id
        away_team_id: Away team id
        strategy: "none", "stints", "replay" or "auto" (per period: stints
            when they cover the period's elapsed time, else replay)
        live_period: Period in progress when the game is live, else None
        live_clock: Game clock of the live period

    Returns:
        Dict with "players" (id -> line), "units" (unit key -> line) and
        "strategies" (period -> strategy used, or "skipped")
    """
    lines: dict = {}
    units: dict = {}
    strategies: dict = {}
    if strategy == "none":
        return {"players": lines, "units": units, "strategies": strategies}

    predicate = segment_periods(segment)
    periods = set()
    if not stints.empty:
        periods.update(int(p) for p in stints["period"].unique())
    if not actions.empty:
        periods.update(int(p) for p in actions["period"].unique())
    periods = sorted(p for p in periods if p >= 1 and predicate(p))
    if live_period:
        periods = [p for p in periods if p <= live_period]

    starters = starting_lineups(stints)

    for period in periods:
        is_live_period = bool(live_period) and period == live_period and live_clock not in (None, "")
        end_seconds = parse_clock(live_clock) if is_live_period else 0.0
        expected = period_length_secs(period) - end_seconds
        period_stints = stints[stints["period"] == period] if not stints.empty else stints

        use_stints = strategy == "stints" or (
            strategy == "auto" and _stints_cover(period_stints, expected)
        )
        if use_stints:
            if period_stints.empty:
                strategies[period] = "skipped"
                continue
            attribute_stints(period_stints, home_team_id, away_team_id, lines, units)
            strategies[period] = "stints"
            continue

        lineup = starters.get(period)
        if lineup is None:
            strategies[period] = "skipped"
            continue
        period_actions = actions[actions["period"] == period] if not actions.empty else actions
        attribute_replay(
            period_actions, lineup, home_team_id, away_team_id, lines, units,
            start_seconds=float(period_length_secs(period)), end_seconds=end_seconds,
        )
        strategies[period] = "replay"

    return {"players": lines, "units": units, "strategies": strategies}
