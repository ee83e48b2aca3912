"""Event model: normalized play-by-play actions and lineup stints."""

import re
from typing import Optional

import pandas as pd

_ISO_CLOCK_PATTERN = re.compile(r"^PT(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?$")

ID_COLUMNS = ["teamId", "personId", "assistPersonId", "blockPersonId", "possession", "officialId"]
TEXT_COLUMNS = ["clock", "actionType", "subType", "shotResult", "description", "descriptor", "timeActual"]
ACTION_COLUMNS = [
    "actionNumber",
    "orderNumber",
    "period",
    "clock",
    "clockSeconds",
    "actionType",
    "subType",
    "teamId",
    "personId",
    "assistPersonId",
    "blockPersonId",
    "shotResult",
    "shotDistance",
    "description",
    "descriptor",
    "qualifiers",
    "possession",
    "shotActionNumber",
    "officialId",
    "timeActual",
]
STINT_COLUMNS = ["period", "startSeconds", "endSeconds", "playersHome", "playersAway", "plusMinus"]


def _is_missing(val) -> bool:
    """True for None/NaN scalars; containers are never missing."""
    if isinstance(val, (list, tuple, set, dict)):
        return False
    return val is None or bool(pd.isna(val))


def _safe_int(val) -> int:
    """Safely convert a value to int, handling NaN and string types."""
    if _is_missing(val):
        return 0
    try:
        return int(float(val))
    except (ValueError, TypeError):
        return 0


def _safe_float(val) -> float:
    if _is_missing(val):
        return 0.0
    try:
        return float(val)
    except (ValueError, TypeError):
        return 0.0


def _coerce_id(val) -> str:
    """Coerce an ID value to string for safe comparison.

    The live feed uses 0 for "no player"/"no team" (team rebounds, period
    markers), so 0 coerces to "" like a missing value.
    """
    if _is_missing(val) or val == "":
        return ""
    if isinstance(val, float):
        val = int(val)
    s = str(val).strip()
    return "" if s == "0" else s


def _coerce_text(val) -> str:
    if _is_missing(val):
        return ""
    return str(val)


def _coerce_qualifiers(val) -> tuple:
    if isinstance(val, (list, tuple, set)):
        return tuple(str(q).lower() for q in val)
    return ()


def parse_clock(clock) -> float:
    """
    Parse a game clock into seconds remaining.

    Accepts the live feed's ISO-8601 durations ("PT11M32.00S") and the
    minutes feed's "M:SS" strings. Anything else parses to 0.

    Args:
        clock: Clock value (string, number, or None)

    Returns:
        Seconds remaining as a float
    """
    if _is_missing(clock):
        return 0.0
    if isinstance(clock, (int, float)):
        return float(clock)
    s = str(clock).strip()
    if not s:
        return 0.0
    match = _ISO_CLOCK_PATTERN.match(s)
    if match:
        minutes = int(match.group(1) or 0)
        seconds = float(match.group(2) or 0)
        return minutes * 60 + seconds
    parts = s.split(":")
    if len(parts) != 2:
        return 0.0
    try:
        return int(parts[0]) * 60 + float(parts[1])
    except ValueError:
        return 0.0


def format_clock(seconds) -> str:
    """Convert seconds to M:SS clock format."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_minutes(seconds) -> str:
    """Convert seconds played to a zero-padded MM:SS string."""
    safe = max(0, int(round(_safe_float(seconds))))
    return f"{safe // 60:02d}:{safe % 60:02d}"


def period_length_secs(period: int) -> int:
    """Return the duration of a period in seconds (720 for regulation, 300 for OT)."""
    return 300 if period > 4 else 720


def period_label(period: int) -> str:
    if period <= 4:
        return f"Q{period}"
    return f"OT{period - 4}"


def normalize_actions(actions: Optional[list]) -> pd.DataFrame:
    """
    Normalize raw play-by-play actions into an ordered DataFrame.

    Every column in ACTION_COLUMNS is present afterwards. IDs are coerced to
    strings, missing numbers to 0 and missing text to "". orderNumber falls
    back to actionNumber so the replay order is always defined, and rows
    are sorted by (orderNumber, actionNumber) regardless of input order.

    Args:
        actions: List of action dicts from the live play-by-play feed

    Returns:
        DataFrame with one row per action in replay order
    """
    df = pd.DataFrame(list(actions or []))
    if df.empty:
        return pd.DataFrame({col: pd.Series(dtype=object) for col in ACTION_COLUMNS})

    for col in ACTION_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df = df.astype(object)

    for col in ID_COLUMNS:
        df[col] = df[col].apply(_coerce_id)
    for col in TEXT_COLUMNS:
        df[col] = df[col].apply(_coerce_text)

    df["actionType"] = df["actionType"].str.lower()
    df["actionNumber"] = df["actionNumber"].apply(_safe_int)
    df["orderNumber"] = [
        _safe_int(order) if not _is_missing(order) else number
        for order, number in zip(df["orderNumber"], df["actionNumber"])
    ]
    df["period"] = df["period"].apply(_safe_int)
    df["shotDistance"] = df["shotDistance"].apply(_safe_float)
    df["shotActionNumber"] = df["shotActionNumber"].apply(_safe_int)
    df["qualifiers"] = df["qualifiers"].apply(_coerce_qualifiers)
    df["clockSeconds"] = df["clock"].apply(parse_clock)

    df = df.sort_values(["orderNumber", "actionNumber"], kind="mergesort")
    return df[ACTION_COLUMNS].reset_index(drop=True)


def _player_ids(players) -> tuple:
    if not isinstance(players, (list, tuple)):
        return ()
    ids = []
    for player in players:
        pid = _coerce_id(player.get("personId")) if isinstance(player, dict) else _coerce_id(player)
        if pid:
            ids.append(pid)
    return tuple(ids)


def normalize_stints(minutes_data: Optional[dict]) -> pd.DataFrame:
    """
    Flatten a minutes resource into one row per stint.

    Args:
        minutes_data: Minutes resource ({periods: [{period, stints}]}) or None

    Returns:
        DataFrame with STINT_COLUMNS; empty when no stint data exists
    """
    rows = []
    for period in (minutes_data or {}).get("periods") or []:
        period_num = _safe_int(period.get("period"))
        for stint in period.get("stints") or []:
            rows.append({
                "period": period_num,
                "startSeconds": parse_clock(stint.get("startClock")),
                "endSeconds": parse_clock(stint.get("endClock")),
                "playersHome": _player_ids(stint.get("playersHome")),
                "playersAway": _player_ids(stint.get("playersAway")),
                "plusMinus": _safe_int(stint.get("plusMinus")),
            })
    if not rows:
        return pd.DataFrame({col: pd.Series(dtype=object) for col in STINT_COLUMNS})
    return pd.DataFrame(rows, columns=STINT_COLUMNS)


def is_made(action) -> bool:
    return action["shotResult"] == "Made"


def action_points(action) -> int:
    """Points produced by an action (0 for anything but a make)."""
    if not is_made(action):
        return 0
    action_type = action["actionType"]
    if action_type == "3pt":
        return 3
    if action_type == "2pt":
        return 2
    if action_type == "freethrow":
        return 1
    return 0
