"""Write module for outputting dashboards and snapshot records to JSON files."""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional


def write_dashboard(game_id: str, segment: str, dashboard: dict, data_dir: str = "data") -> None:
    """
    Write data/games/{gameId}/{segment}.json.

    Args:
        game_id: Game ID string
        segment: Segment name
        dashboard: Dashboard dict
        data_dir: Base data directory (default "data")
    """
    game_dir = Path(data_dir) / "games" / game_id
    _write_json_atomic(game_dir / f"{segment}.json", dashboard)


def write_minutes(game_id: str, minutes_data: dict, data_dir: str = "data") -> None:
    """Write data/games/{gameId}/minutes.json."""
    game_dir = Path(data_dir) / "games" / game_id
    _write_json_atomic(game_dir / "minutes.json", minutes_data)


def _snapshot_path(game_id: str, data_dir: str) -> Path:
    return Path(data_dir) / "snapshots" / f"{game_id}.json"


def load_period_snapshots(game_id: str, data_dir: str = "data") -> list[dict]:
    """
    Read stored period snapshot records for a game.

    Returns:
        List of {gameId, period, teamId, totals, updatedAt}, ordered by
        period then teamId; empty when nothing is stored
    """
    path = _snapshot_path(game_id, data_dir)
    if not path.exists():
        return []
    with open(path) as f:
        return json.load(f).get("records", [])


def upsert_period_snapshots(records: list[dict], data_dir: str = "data", updated_at: Optional[str] = None) -> int:
    """
    Merge period snapshot records into data/snapshots/{gameId}.json.

    Records are keyed by (gameId, period, teamId); a newer record replaces
    the stored one. Each game's file is rewritten atomically.

    Args:
        records: List of {gameId, period, teamId, totals}
        data_dir: Base data directory (default "data")
        updated_at: Timestamp stamped on the written records

    Returns:
        Number of records written
    """
    by_game: dict[str, list[dict]] = {}
    for record in records:
        by_game.setdefault(str(record["gameId"]), []).append(record)

    for game_id, game_records in by_game.items():
        existing = {
            (r["period"], str(r["teamId"])): r for r in load_period_snapshots(game_id, data_dir)
        }
        for record in game_records:
            entry = dict(record)
            if updated_at:
                entry["updatedAt"] = updated_at
            existing[(record["period"], str(record["teamId"]))] = entry

        ordered = [existing[key] for key in sorted(existing)]
        _write_json_atomic(_snapshot_path(game_id, data_dir), {"gameId": game_id, "records": ordered})

    return len(records)


def _write_json_atomic(file_path: Path, data: dict | list) -> None:
    """
    Write JSON to file atomically using temp file + rename.

    Args:
        file_path: Target file path
        data: Data to write
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path = tempfile.mkstemp(
        dir=file_path.parent, prefix=".tmp_", suffix=".json"
    )

    try:
        with os.fdopen(temp_fd, "w") as f:
            json.dump(data, f, indent=2)

        os.replace(temp_path, file_path)
    except (OSError, IOError):
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
