"""NBA API fetch module with rate limiting."""

import sys
import time
from datetime import datetime
from typing import Optional

import pandas as pd
import requests
from nba_api.live.nba.endpoints import boxscore, playbyplay, scoreboard
from nba_api.stats.endpoints.boxscoreadvancedv3 import BoxScoreAdvancedV3
from nba_api.stats.endpoints.boxscorehustlev2 import BoxScoreHustleV2
from nba_api.stats.endpoints.gamerotation import GameRotation

PLAYER_ROSTER_FIELDS = ("personId", "firstName", "familyName", "jerseyNum", "position", "starter")
TEAM_FIELDS = ("teamId", "teamTricode", "teamName", "teamCity", "score")


def _log_error(msg: str) -> None:
    """Log timestamped error to stderr."""
    timestamp = datetime.now().isoformat()
    print(f"[{timestamp}] {msg}", file=sys.stderr, flush=True)


def fetch_scoreboard(delay: float = 1.5) -> Optional[list[dict]]:
    """
    Fetch today's games from the live scoreboard with retry logic.

    Args:
        delay: Delay in seconds before making the API call (default 1.5)

    Returns:
        List of scoreboard game dicts, or None on failure
    """
    max_retries = 1
    for attempt in range(max_retries + 1):
        try:
            time.sleep(delay)
            response = scoreboard.ScoreBoard()
            return response.get_dict().get("scoreboard", {}).get("games", [])
        except requests.exceptions.RequestException as e:
            _log_error(f"Error fetching live scoreboard: {e}")

            if attempt < max_retries:
                time.sleep(5)
            else:
                return None
        except Exception as e:
            _log_error(f"Unexpected error fetching live scoreboard: {e}")
            return None


def _flatten_player(player: dict) -> dict:
    """Lift a live box score player's statistics to the top level."""
    flat = dict(player.get("statistics") or {})
    for field in PLAYER_ROSTER_FIELDS:
        flat[field] = player.get(field)
    flat["personId"] = str(player.get("personId") or "")
    return flat


def _map_team(team: dict) -> dict:
    mapped = {field: team.get(field) for field in TEAM_FIELDS}
    mapped["teamId"] = str(team.get("teamId") or "")
    mapped["score"] = team.get("score") or 0
    return mapped


def _map_box_side(team: dict) -> dict:
    return {
        "teamId": str(team.get("teamId") or ""),
        "players": [_flatten_player(p) for p in team.get("players") or []],
        "totals": dict(team.get("statistics") or {}),
    }


def map_live_game(box_data: dict, pbp_data: dict) -> dict:
    """
    Combine live box score and play-by-play payloads into one game resource.

    Args:
        box_data: BoxScore(...).get_dict() payload
        pbp_data: PlayByPlay(...).get_dict() payload

    Returns:
        Game resource dict with header fields, boxScore and playByPlayActions
    """
    game = box_data.get("game") or {}
    home = game.get("homeTeam") or {}
    away = game.get("awayTeam") or {}
    return {
        "gameId": str(game.get("gameId") or ""),
        "gameStatus": game.get("gameStatus"),
        "gameStatusText": game.get("gameStatusText") or "",
        "period": game.get("period") or 0,
        "gameClock": game.get("gameClock") or "",
        "homeTeam": _map_team(home),
        "awayTeam": _map_team(away),
        "boxScore": {"home": _map_box_side(home), "away": _map_box_side(away)},
        "playByPlayActions": (pbp_data.get("game") or {}).get("actions") or [],
        "officials": game.get("officials") or [],
    }


def fetch_game(game_id: str, delay: float = 1.5) -> Optional[dict]:
    """
    Fetch the live box score and play-by-play for a game with retry logic.

    Args:
        game_id: Game ID string
        delay: Delay in seconds before each API call (default 1.5)

    Returns:
        Game resource dict (see map_live_game), or None on failure
    """
    max_retries = 1
    for attempt in range(max_retries + 1):
        try:
            time.sleep(delay)
            box_data = boxscore.BoxScore(game_id=game_id).get_dict()
            time.sleep(delay)
            pbp_data = playbyplay.PlayByPlay(game_id=game_id).get_dict()
            return map_live_game(box_data, pbp_data)
        except requests.exceptions.RequestException as e:
            _log_error(f"Error fetching live game {game_id}: {e}")

            if attempt < max_retries:
                time.sleep(5)
            else:
                return None
        except Exception as e:
            _log_error(f"Unexpected error fetching live game {game_id}: {e}")
            return None


def fetch_game_rotation(game_id: str, delay: float = 1.5) -> Optional[dict]:
    """
    Fetch game rotation data for a given game with retry logic.

    Args:
        game_id: Game ID string
        delay: Delay in seconds before making the API call (default 1.5)

    Returns:
        Dict with 'away_team' and 'home_team' DataFrames, or None on failure
    """
    max_retries = 1
    for attempt in range(max_retries + 1):
        try:
            time.sleep(delay)
            response = GameRotation(game_id=game_id, league_id="00")
            away_df = response.away_team.get_data_frame()
            home_df = response.home_team.get_data_frame()
            if away_df.empty and home_df.empty:
                return None
            return {"away_team": away_df, "home_team": home_df}
        except requests.exceptions.RequestException as e:
            _log_error(f"Error fetching game rotation for {game_id}: {e}")

            if attempt < max_retries:
                time.sleep(5)
            else:
                return None
        except Exception as e:
            _log_error(f"Unexpected error fetching game rotation for {game_id}: {e}")
            return None


def _safe_count(val) -> int:
    if val is None or pd.isna(val):
        return 0
    return int(val)


def _advanced_row(row: pd.Series) -> dict:
    return {
        "teamId": str(int(row.get("teamId", 0))),
        "offensiveRating": float(row.get("offensiveRating") or 0),
        "netRating": float(row.get("netRating") or 0),
        "possessions": float(row.get("possessions") or 0),
    }


def fetch_team_advanced(game_id: str, home_team_id: str, delay: float = 1.5) -> Optional[dict]:
    """
    Fetch official team ratings and possessions with retry logic.

    Args:
        game_id: Game ID string
        home_team_id: Home team id, used to split the two team rows
        delay: Delay in seconds before making the API call (default 1.5)

    Returns:
        Dict with 'home' and 'away' rating dicts, or None on failure or
        when the endpoint has no team rows yet
    """
    max_retries = 1
    for attempt in range(max_retries + 1):
        try:
            time.sleep(delay)
            response = BoxScoreAdvancedV3(game_id=game_id)
            team_df = response.team_stats.get_data_frame()
            if team_df.empty or len(team_df) < 2:
                return None

            team_ids = team_df["teamId"].astype(str)
            home_rows = team_df[team_ids == str(home_team_id)]
            away_rows = team_df[team_ids != str(home_team_id)]
            if home_rows.empty or away_rows.empty:
                return None
            return {
                "home": _advanced_row(home_rows.iloc[0]),
                "away": _advanced_row(away_rows.iloc[0]),
            }
        except requests.exceptions.RequestException as e:
            _log_error(f"Error fetching advanced box score for {game_id}: {e}")

            if attempt < max_retries:
                time.sleep(5)
            else:
                return None
        except Exception as e:
            _log_error(f"Unexpected error fetching advanced box score for {game_id}: {e}")
            return None


def fetch_team_hustle(game_id: str, home_team_id: str, delay: float = 1.5) -> Optional[dict]:
    """
    Fetch team deflections from the hustle box score with retry logic.

    Args:
        game_id: Game ID string
        home_team_id: Home team id, used to split the two team rows
        delay: Delay in seconds before making the API call (default 1.5)

    Returns:
        Dict with 'home' and 'away' {"deflections": n} dicts, or None on
        failure or when hustle tracking is not available for the game
    """
    max_retries = 1
    for attempt in range(max_retries + 1):
        try:
            time.sleep(delay)
            response = BoxScoreHustleV2(game_id=game_id)
            team_df = response.team_stats.get_data_frame()
            if team_df.empty or len(team_df) < 2:
                return None

            team_ids = team_df["TEAM_ID"].astype(str)
            home_rows = team_df[team_ids == str(home_team_id)]
            away_rows = team_df[team_ids != str(home_team_id)]
            if home_rows.empty or away_rows.empty:
                return None
            return {
                "home": {"deflections": _safe_count(home_rows.iloc[0].get("DEFLECTIONS"))},
                "away": {"deflections": _safe_count(away_rows.iloc[0].get("DEFLECTIONS"))},
            }
        except requests.exceptions.RequestException as e:
            _log_error(f"Error fetching hustle box score for {game_id}: {e}")

            if attempt < max_retries:
                time.sleep(5)
            else:
                return None
        except Exception as e:
            _log_error(f"Unexpected error fetching hustle box score for {game_id}: {e}")
            return None
