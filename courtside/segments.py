"""Segment filter: named game segments and their period predicates."""

from typing import Callable, Optional

import pandas as pd

from .events import parse_clock, period_length_secs

SEGMENTS = ("all", "q1", "q2", "q3", "q4", "q1-q3", "first-half", "second-half")

DEFAULT_SEGMENT_SECONDS = {
    "q1": 12 * 60,
    "q2": 12 * 60,
    "q3": 12 * 60,
    "q4": 12 * 60,
    "q1-q3": 36 * 60,
    "first-half": 24 * 60,
    "second-half": 24 * 60,
    "all": 48 * 60,
}

_SEGMENT_PERIODS = {
    "q1": {1},
    "q2": {2},
    "q3": {3},
    "q4": {4},
    "q1-q3": {1, 2, 3},
    "first-half": {1, 2},
    "second-half": {3, 4},
}


def segment_periods(segment: Optional[str]) -> Callable[[int], bool]:
    """
    Map a segment name to a period-membership predicate.

    "all" and any unknown name match every period, overtime included.
    """
    periods = _SEGMENT_PERIODS.get(segment or "all")
    if periods is None:
        return lambda period: True
    return lambda period: period in periods


def filter_actions(actions: pd.DataFrame, segment: Optional[str]) -> pd.DataFrame:
    """Keep only the actions whose period belongs to the segment."""
    if actions.empty:
        return actions
    predicate = segment_periods(segment)
    return actions[actions["period"].apply(predicate)].reset_index(drop=True)


def stint_seconds(stints: pd.DataFrame, segment: Optional[str]) -> float:
    """Total stint duration inside the segment, in seconds."""
    if stints.empty:
        return 0.0
    predicate = segment_periods(segment)
    in_segment = stints[stints["period"].apply(predicate)]
    return float((in_segment["startSeconds"] - in_segment["endSeconds"]).sum())


def elapsed_segment_seconds(segment: Optional[str], period, game_clock) -> Optional[float]:
    """
    Seconds of the segment already played according to the game clock.

    Completed periods count their full length (12 minutes regulation,
    5 minutes overtime); the current period counts what has run off.

    Returns:
        Elapsed seconds, or None when nothing in the segment has been played
    """
    try:
        current = int(period or 0)
    except (ValueError, TypeError):
        current = 0
    if current < 1 or game_clock in (None, ""):
        return None

    predicate = segment_periods(segment)
    total = 0.0
    for p in range(1, current):
        if predicate(p):
            total += period_length_secs(p)
    if predicate(current):
        remaining = parse_clock(game_clock)
        total += max(0.0, period_length_secs(current) - remaining)
    return total or None


def segment_seconds(
    segment: Optional[str],
    stints: pd.DataFrame,
    period=None,
    game_clock=None,
    is_live: bool = False,
) -> float:
    """
    Duration of a segment in seconds, used as the pace denominator.

    Stint data wins when it covers any time (capped by the elapsed clock
    while the game is live); otherwise the game clock decides; otherwise
    the fixed per-segment default table.

    Args:
        segment: Segment name
        stints: Normalized stint DataFrame (may be empty)
        period: Current game period
        game_clock: Current game clock (ISO-8601 duration)
        is_live: Whether the game is in progress

    Returns:
        Segment duration in seconds
    """
    total = stint_seconds(stints, segment)
    elapsed = elapsed_segment_seconds(segment, period, game_clock)
    if total > 0:
        if is_live and elapsed:
            return min(total, elapsed)
        return total
    if elapsed:
        return elapsed
    return float(DEFAULT_SEGMENT_SECONDS.get(segment or "all", 48 * 60))
