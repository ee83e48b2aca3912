"""Build the minutes/stints resource from GameRotation rows and the action log."""

from typing import Optional

import pandas as pd

from .events import (
    _coerce_id,
    _safe_int,
    action_points,
    format_clock,
    normalize_actions,
    period_label,
    period_length_secs,
)


def _period_boundary_decisecs(period: int) -> int:
    """Return the ending decisecond timestamp for a given period.

    Regulation periods (1-4) are each 7200 deciseconds (720 seconds).
    OT periods (5+) are each 3000 deciseconds (300 seconds).
    """
    if period <= 4:
        return period * 7200
    return 4 * 7200 + (period - 4) * 3000


def _decisecs_to_period(decisecs: int) -> int:
    """Determine which period a decisecond timestamp falls in."""
    if decisecs < 4 * 7200:
        return decisecs // 7200 + 1
    return 5 + (decisecs - 4 * 7200) // 3000


def split_rotation_stint(in_time_real, out_time_real) -> list[tuple[int, float, float]]:
    """
    Split a rotation row that may cross period boundaries into per-period pieces.

    The GameRotation endpoint reports IN_TIME_REAL/OUT_TIME_REAL in
    deciseconds elapsed from tip-off. A player who stays on through a
    period break comes back as one row spanning both periods.

    Returns:
        List of (period, in_remaining_secs, out_remaining_secs) in countdown
        clock terms, one per period the row covers
    """
    current = _safe_int(in_time_real)
    out_time = _safe_int(out_time_real)
    pieces = []
    while current < out_time:
        period = _decisecs_to_period(current)
        period_end = _period_boundary_decisecs(period)
        period_start = period_end - period_length_secs(period) * 10
        piece_end = min(out_time, period_end)

        in_remaining = max(0.0, period_length_secs(period) - (current - period_start) / 10)
        out_remaining = max(0.0, period_length_secs(period) - (piece_end - period_start) / 10)
        pieces.append((period, in_remaining, out_remaining))
        current = piece_end
    return pieces


def _name_initial(first, last) -> str:
    first = "" if pd.isna(first) else str(first).strip()
    last = "" if pd.isna(last) else str(last).strip()
    if first and last:
        return f"{first[0]}. {last}"
    return last or first


def _rotation_pieces(rotation_df: Optional[pd.DataFrame]) -> list[dict]:
    pieces = []
    if rotation_df is None or rotation_df.empty:
        return pieces
    for _, row in rotation_df.iterrows():
        ref = {
            "personId": _coerce_id(row.get("PERSON_ID")),
            "nameI": _name_initial(row.get("PLAYER_FIRST"), row.get("PLAYER_LAST")),
        }
        if not ref["personId"]:
            continue
        for period, in_remaining, out_remaining in split_rotation_stint(
            row.get("IN_TIME_REAL"), row.get("OUT_TIME_REAL")
        ):
            pieces.append({"period": period, "in": in_remaining, "out": out_remaining, "player": ref})
    return pieces


def _on_court(pieces: list[dict], period: int, start: float, end: float) -> list[dict]:
    return [
        p["player"] for p in pieces
        if p["period"] == period and p["in"] >= start and p["out"] <= end
    ]


def _substitution_orders(period_actions: pd.DataFrame) -> dict:
    """First substitution orderNumber at each clock of the period."""
    orders = {}
    if period_actions.empty:
        return orders
    subs = period_actions[period_actions["actionType"] == "substitution"]
    for clock, group in subs.groupby("clockSeconds"):
        orders[float(clock)] = int(group["orderNumber"].min())
    return orders


def _in_stint_window(action, start: float, end: float, sub_orders: dict) -> bool:
    """
    Whether an action belongs to the stint running from start down to end.

    Actions at a substitution clock go to the outgoing stint when logged
    before the substitution and to the incoming stint after it. Elsewhere
    the window is [end, start).
    """
    clock = float(action["clockSeconds"])
    if end < clock < start:
        return True
    if clock == end:
        return end not in sub_orders or action["orderNumber"] < sub_orders[end]
    if clock == start:
        return start in sub_orders and action["orderNumber"] > sub_orders[start]
    return False


def build_minutes_resource(
    rotation_data: dict,
    actions,
    home_team: dict,
    away_team: dict,
) -> dict:
    """
    Cut each period into lineup stints.

    Every in/out time of either team is a stint boundary. Each stint lists
    the players on court for both teams and its plus-minus from the home
    team's perspective, summed from the scoring actions inside the stint
    (see _in_stint_window).

    Args:
        rotation_data: Dict with 'home_team' and 'away_team' GameRotation DataFrames
        actions: Raw action dicts or a normalized DataFrame
        home_team: Dict with "teamId" (and display fields passed through)
        away_team: Dict with "teamId"

    Returns:
        Minutes resource: {homeTeam, awayTeam, periods: [{period, periodLabel, stints}]}
    """
    if not isinstance(actions, pd.DataFrame):
        actions = normalize_actions(actions)
    home_id = _coerce_id(home_team.get("teamId"))
    away_id = _coerce_id(away_team.get("teamId"))
    home_pieces = _rotation_pieces(rotation_data.get("home_team"))
    away_pieces = _rotation_pieces(rotation_data.get("away_team"))

    periods = sorted({p["period"] for p in home_pieces + away_pieces})
    period_entries = []
    for period in periods:
        boundaries = {float(period_length_secs(period)), 0.0}
        for piece in home_pieces + away_pieces:
            if piece["period"] == period:
                boundaries.update((piece["in"], piece["out"]))
        ordered = sorted(boundaries, reverse=True)

        period_actions = actions[actions["period"] == period] if not actions.empty else actions
        sub_orders = _substitution_orders(period_actions)
        stints = []
        for start, end in zip(ordered, ordered[1:]):
            players_home = _on_court(home_pieces, period, start, end)
            players_away = _on_court(away_pieces, period, start, end)
            if not players_home and not players_away:
                continue
            plus_minus = 0
            for _, action in period_actions.iterrows():
                if not _in_stint_window(action, start, end, sub_orders):
                    continue
                points = action_points(action)
                if action["teamId"] == home_id:
                    plus_minus += points
                elif action["teamId"] == away_id:
                    plus_minus -= points
            stints.append({
                "startClock": format_clock(start),
                "endClock": format_clock(end),
                "playersHome": players_home,
                "playersAway": players_away,
                "plusMinus": plus_minus,
            })

        for previous, stint in zip(stints, stints[1:]):
            stint["prevPlayersHome"] = previous["playersHome"]
            stint["prevPlayersAway"] = previous["playersAway"]

        period_entries.append({"period": period, "periodLabel": period_label(period), "stints": stints})

    return {"homeTeam": home_team, "awayTeam": away_team, "periods": period_entries}
