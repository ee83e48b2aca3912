"""Courtside live dashboard pipeline entry point."""

import argparse
import os
import traceback
from datetime import datetime, timezone

from .dashboard import build_game_dashboard
from .fetch import (
    fetch_game,
    fetch_game_rotation,
    fetch_scoreboard,
    fetch_team_advanced,
    fetch_team_hustle,
)
from .lineups import LINEUP_STRATEGIES
from .rotation import build_minutes_resource
from .segments import SEGMENTS
from .snapshots import (
    build_snapshot,
    collect_snapshot_entries,
    period_snapshot_records,
    snapshot_entries_from_records,
)
from .write import load_period_snapshots, upsert_period_snapshots, write_dashboard, write_minutes


def _default_window_minutes() -> float:
    try:
        return float(os.environ.get("SNAPSHOT_WINDOW_MINUTES", 3))
    except ValueError:
        return 3.0


def _merge_official(advanced: dict | None, hustle: dict | None) -> dict | None:
    """Combine advanced ratings and hustle deflections per side."""
    if not advanced and not hustle:
        return None
    return {
        side: {**((advanced or {}).get(side) or {}), **((hustle or {}).get(side) or {})}
        for side in ("home", "away")
    }


def _snapshot_entries(game: dict, data_dir: str) -> list:
    """
    Stored period-end entries plus the boundary the live game sits at.

    Only the current period's boundary is taken from the live box score;
    older boundaries come from stored records or not at all.
    """
    stored = snapshot_entries_from_records(load_period_snapshots(game["gameId"], data_dir))
    collected = collect_snapshot_entries(
        game.get("playByPlayActions"),
        build_snapshot(game.get("boxScore")),
        existing=stored,
    )
    current = [e for e in collected if e["period"] == game.get("period")]
    return stored + current


def main(
    game_ids: list[str] | None = None,
    segments: list[str] | None = None,
    data_dir: str = "data",
    capture: bool = True,
    window_minutes: float | None = None,
    lineup_strategy: str = "auto",
) -> None:
    """
    Run one refresh cycle of the dashboard pipeline.

    Args:
        game_ids: Games to process (defaults to every game on the live scoreboard)
        segments: Segments to build (defaults to ["all"])
        data_dir: Base data directory (default "data")
        capture: Whether to persist period-end snapshots for live games
        window_minutes: Period-end capture window (defaults to
            SNAPSHOT_WINDOW_MINUTES or 3)
        lineup_strategy: Lineup attribution strategy (default "auto")
    """
    segments = segments or ["all"]
    if window_minutes is None:
        window_minutes = _default_window_minutes()

    if not game_ids:
        print("Fetching live scoreboard...")
        games = fetch_scoreboard()
        if games is None:
            print("No scoreboard data")
            return
        game_ids = [str(g.get("gameId")) for g in games if g.get("gameId")]

    if not game_ids:
        print("No games found")
        return

    print(f"Found {len(game_ids)} games")

    skipped_games = 0
    successful_games = 0

    for game_id in game_ids:
        print(f"Processing game {game_id}...")

        game = fetch_game(game_id)
        if game is None:
            print(f"Skipping game {game_id}: incomplete data")
            skipped_games += 1
            continue

        is_live = game.get("gameStatus") == 2

        try:
            minutes_data = None
            rotation_raw = fetch_game_rotation(game_id)
            if rotation_raw is not None:
                minutes_data = build_minutes_resource(
                    rotation_raw, game["playByPlayActions"], game["homeTeam"], game["awayTeam"]
                )
                write_minutes(game_id, minutes_data, data_dir)

            advanced = fetch_team_advanced(game_id, game["homeTeam"]["teamId"])
            hustle = fetch_team_hustle(game_id, game["homeTeam"]["teamId"])
            advanced = _merge_official(advanced, hustle)

            snapshots = None
            if is_live:
                if capture:
                    now = datetime.now(timezone.utc)
                    records = period_snapshot_records(game, window_minutes=window_minutes, now=now)
                    if records:
                        written = upsert_period_snapshots(records, data_dir, updated_at=now.isoformat())
                        print(f"  Captured {written} period snapshot records")
                snapshots = _snapshot_entries(game, data_dir)

            for segment in segments:
                dashboard = build_game_dashboard(
                    game,
                    minutes_data,
                    segment,
                    snapshots=snapshots,
                    advanced=advanced,
                    lineup_strategy=lineup_strategy,
                )
                write_dashboard(game_id, segment, dashboard, data_dir)
            print(f"Wrote {len(segments)} dashboards for {game_id}")
            successful_games += 1
        except Exception as e:
            print(f"Error processing game {game_id}: {e}")
            traceback.print_exc()
            skipped_games += 1

    print(f"Refresh complete. Processed {successful_games} games. Skipped {skipped_games} games due to errors.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Courtside live dashboard pipeline")
    parser.add_argument(
        "--game-id",
        dest="game_ids",
        action="append",
        default=None,
        help="Game ID to process; repeat for several (default: all games on the live scoreboard)",
    )
    parser.add_argument(
        "--segment",
        dest="segments",
        action="append",
        choices=SEGMENTS,
        default=None,
        help="Segment to build; repeat for several (default: all)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Base data directory (default: data)",
    )
    parser.add_argument(
        "--no-capture",
        action="store_true",
        help="Do not persist period-end snapshots for live games",
    )
    parser.add_argument(
        "--window-minutes",
        type=float,
        default=None,
        help="Period-end capture window in minutes (default: SNAPSHOT_WINDOW_MINUTES or 3)",
    )
    parser.add_argument(
        "--lineup-strategy",
        choices=LINEUP_STRATEGIES,
        default="auto",
        help="Lineup attribution strategy (default: auto)",
    )
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    main(
        game_ids=args.game_ids,
        segments=args.segments,
        data_dir=args.data_dir,
        capture=not args.no_capture,
        window_minutes=args.window_minutes,
        lineup_strategy=args.lineup_strategy,
    )
