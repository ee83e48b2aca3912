"""Box aggregator: replays a segment's actions into player and team totals."""

import re
from typing import Optional

import pandas as pd

from .events import _coerce_id, is_made, normalize_actions, normalize_stints
from .lineups import attribute_lineups
from .segments import filter_actions, stint_seconds

# Shots at or inside this distance (feet) count as rim attempts.
RIM_DISTANCE_FT = 4.9
DRIVING_DISTANCE_FT = 7
DRIVING_KEYWORDS = ("driving layup", "driving dunk", "driving float", "driving hook")
_PULLUP_PATTERN = re.compile(r"pull.?up")
_STEPBACK_PATTERN = re.compile(r"step.?back")

PLAYER_STAT_FIELDS = [
    "minutes",
    "plusMinusPoints",
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

TEAM_STAT_FIELDS = [
    "points",
    "reboundsTotal",
    "reboundsOffensive",
    "assists",
    "blocks",
    "steals",
    "turnovers",
    "foulsPersonal",
    "transitionPoints",
    "transitionTurnovers",
    "transitionPossessions",
    "secondChancePoints",
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
    "drivingFGMade",
    "drivingFGAttempted",
    "cuttingFGMade",
    "cuttingFGAttempted",
    "catchAndShoot3FGMade",
    "catchAndShoot3FGAttempted",
    "secondChance3FGMade",
    "secondChance3FGAttempted",
    "pointsOffTurnovers",
    "paintPoints",
    "threePointOReb",
    "offensiveFoulsDrawn",
]

_SHOT_BUCKET_FIELDS = {
    "three": ("threePointersMade", "threePointersAttempted"),
    "rim": ("rimFieldGoalsMade", "rimFieldGoalsAttempted"),
    "mid": ("midFieldGoalsMade", "midFieldGoalsAttempted"),
}


def new_player_line(person_id: str, base: Optional[dict] = None) -> dict:
    """Zeroed PlayerStatLine carrying the roster fields from the base player."""
    base = base or {}
    line = {
        "personId": person_id,
        "firstName": base.get("firstName") or "",
        "familyName": base.get("familyName") or "",
        "jerseyNum": base.get("jerseyNum") or "",
        "position": base.get("position") or "",
    }
    line.update({field: 0 for field in PLAYER_STAT_FIELDS})
    return line


def new_team_totals() -> dict:
    return {field: 0 for field in TEAM_STAT_FIELDS}


def classify_shot(action) -> str:
    """Bucket a field goal attempt as "three", "rim" or "mid"."""
    if action["actionType"] == "3pt":
        return "three"
    if float(action["shotDistance"] or 0) <= RIM_DISTANCE_FT:
        return "rim"
    return "mid"


def is_personal_foul(action) -> bool:
    """Technical fouls do not count toward personal fouls."""
    return "technical" not in str(action["subType"]).lower()


def _shot_creation(action) -> dict:
    """Driving/cutting/catch-and-shoot/second-chance-three flags for a shot."""
    text = f"{action['description']} {action['descriptor']}".lower()
    is_three = action["actionType"] == "3pt"
    qualifiers = action["qualifiers"]
    return {
        "driving": (
            action["actionType"] == "2pt"
            and float(action["shotDistance"] or 0) <= DRIVING_DISTANCE_FT
            and any(keyword in text for keyword in DRIVING_KEYWORDS)
        ),
        "cutting": "cutting" in text,
        "catchAndShoot3": (
            is_three and not _PULLUP_PATTERN.search(text) and not _STEPBACK_PATTERN.search(text)
        ),
        "secondChance3": is_three and ("2ndchance" in qualifiers or "secondchance" in qualifiers),
    }


_CREATION_FIELDS = {
    "driving": ("drivingFGMade", "drivingFGAttempted"),
    "cutting": ("cuttingFGMade", "cuttingFGAttempted"),
    "catchAndShoot3": ("catchAndShoot3FGMade", "catchAndShoot3FGAttempted"),
    "secondChance3": ("secondChance3FGMade", "secondChance3FGAttempted"),
}


def _empty_result() -> dict:
    return {"playerStats": {}, "teamTotals": {}, "lineups": {}, "lineupStrategies": {}}


def aggregate_segment_stats(
    actions,
    segment: str = "all",
    minutes_data: Optional[dict] = None,
    home_team: Optional[dict] = None,
    away_team: Optional[dict] = None,
    base_players: Optional[list] = None,
    lineup_strategy: str = "auto",
    live_period: Optional[int] = None,
    live_clock=None,
) -> dict:
    """
    Reconstruct box-score statistics for one segment of a game.

    Filters the action log to the segment, replays it in (orderNumber,
    actionNumber) order and folds every action into per-player and per-team
    counting totals, then attributes on-court minutes and plus-minus from
    the lineup data. Nothing is shared between calls.

    Args:
        actions: Raw action dicts or an already normalized DataFrame
        segment: Segment name (unknown names behave like "all")
        minutes_data: Minutes/stints resource, or None
        home_team: Dict with at least "teamId"
        away_team: Dict with at least "teamId"
        base_players: Box score players whose roster fields seed player lines
        lineup_strategy: "none", "stints", "replay" or "auto"
        live_period: Period in progress when the game is live
        live_clock: Game clock of the live period

    Returns:
        Dict with "playerStats" (personId -> line), "teamTotals"
        (teamId -> totals), "lineups" (unit key -> line) and
        "lineupStrategies" (period -> strategy)
    """
    if not isinstance(actions, pd.DataFrame):
        actions = normalize_actions(actions)
    stints = normalize_stints(minutes_data)
    segment_actions = filter_actions(actions, segment)

    if segment != "all" and segment_actions.empty:
        if minutes_data is None or stint_seconds(stints, segment) == 0:
            return _empty_result()

    home_id = _coerce_id((home_team or {}).get("teamId"))
    away_id = _coerce_id((away_team or {}).get("teamId"))
    opponents = {home_id: away_id, away_id: home_id}

    base_map = {_coerce_id(p.get("personId")): p for p in base_players or []}
    player_stats: dict = {}
    team_totals = {away_id: new_team_totals(), home_id: new_team_totals()}
    credited_blocks: set = set()
    credited_transition_turnovers: set = set()
    last_missed_shot: dict = {}
    action_by_number = {
        int(number): row for number, row in zip(segment_actions["actionNumber"], segment_actions.to_dict("records"))
    }

    def player(person_id: str) -> dict:
        if person_id not in player_stats:
            player_stats[person_id] = new_player_line(person_id, base_map.get(person_id))
        return player_stats[person_id]

    def credit_block(blocker_id: str, team_id: str, period, clock) -> None:
        if not blocker_id or team_id not in team_totals:
            return
        key = (blocker_id, period, clock)
        if key in credited_blocks:
            return
        credited_blocks.add(key)
        player(blocker_id)["blocks"] += 1
        team_totals[team_id]["blocks"] += 1

    last_possession = None
    possession_number = 0

    for _, action in segment_actions.iterrows():
        action_type = action["actionType"]
        team_id = action["teamId"]
        person_id = action["personId"]
        team = team_totals.get(team_id) if team_id else None
        opponent_id = opponents.get(team_id) if team_id else None
        qualifiers = action["qualifiers"]

        # The feed's possession field names the team in possession; number
        # each change so one possession maps to one key.
        if action["possession"] and action["possession"] != last_possession:
            last_possession = action["possession"]
            possession_number += 1
        if action["possession"]:
            possession_key = possession_number
        else:
            possession_key = f"action-{action['actionNumber']}"

        if action_type in ("2pt", "3pt"):
            bucket = classify_shot(action)
            made_field, attempted_field = _SHOT_BUCKET_FIELDS[bucket]
            creation = _shot_creation(action)
            made = is_made(action)
            points = 3 if action_type == "3pt" else 2

            if team is not None:
                team["fieldGoalsAttempted"] += 1
                team[attempted_field] += 1
                for flag, (flag_made, flag_attempted) in _CREATION_FIELDS.items():
                    if creation[flag]:
                        team[flag_attempted] += 1
                        if made:
                            team[flag_made] += 1
                if made:
                    team["points"] += points
                    team["fieldGoalsMade"] += 1
                    team[made_field] += 1
                    if "fastbreak" in qualifiers:
                        team["transitionPoints"] += points
                        team["transitionPossessions"] += 1
                    if "2ndchance" in qualifiers or "secondchance" in qualifiers:
                        team["secondChancePoints"] += points
                    if "pointsinthepaint" in qualifiers:
                        team["paintPoints"] += points
                    if "fromturnover" in qualifiers:
                        team["pointsOffTurnovers"] += points
                        if opponent_id in team_totals:
                            credit_key = (opponent_id, possession_key)
                            if credit_key not in credited_transition_turnovers:
                                credited_transition_turnovers.add(credit_key)
                                team_totals[opponent_id]["transitionTurnovers"] += 1

            if not made and team_id:
                last_missed_shot[team_id] = action

            if person_id:
                shooter = player(person_id)
                shooter["fieldGoalsAttempted"] += 1
                shooter[attempted_field] += 1
                if made:
                    shooter["points"] += points
                    shooter["fieldGoalsMade"] += 1
                    shooter[made_field] += 1

            if action["assistPersonId"]:
                player(action["assistPersonId"])["assists"] += 1
                if team is not None:
                    team["assists"] += 1

            if action["blockPersonId"]:
                credit_block(action["blockPersonId"], opponent_id, action["period"], action["clock"])

        elif action_type == "freethrow":
            made = is_made(action)
            if team is not None:
                team["freeThrowsAttempted"] += 1
                if made:
                    team["freeThrowsMade"] += 1
                    team["points"] += 1
            if person_id:
                shooter = player(person_id)
                shooter["freeThrowsAttempted"] += 1
                if made:
                    shooter["freeThrowsMade"] += 1
                    shooter["points"] += 1

        elif action_type == "rebound":
            is_offensive = str(action["subType"]).lower() == "offensive"
            if team is not None:
                team["reboundsTotal"] += 1
                if is_offensive:
                    team["reboundsOffensive"] += 1
            if person_id:
                rebounder = player(person_id)
                rebounder["reboundsTotal"] += 1
                if is_offensive:
                    rebounder["reboundsOffensive"] += 1

            if is_offensive:
                shot = action_by_number.get(int(action["shotActionNumber"])) if action["shotActionNumber"] else None
                if shot is None:
                    shot = last_missed_shot.get(team_id)
                if shot is not None and shot["actionType"] == "3pt" and team is not None:
                    team["threePointOReb"] += 1
                last_missed_shot.pop(team_id, None)
            elif opponent_id:
                last_missed_shot.pop(opponent_id, None)

        elif action_type == "steal":
            if person_id:
                player(person_id)["steals"] += 1
                if team is not None:
                    team["steals"] += 1

        elif action_type == "block":
            credit_block(person_id, team_id, action["period"], action["clock"])

        elif action_type == "turnover":
            if person_id:
                player(person_id)["turnovers"] += 1
            if team is not None:
                team["turnovers"] += 1
                if "fromturnover" in qualifiers or "fastbreak" in qualifiers:
                    team["transitionTurnovers"] += 1
                    team["transitionPossessions"] += 1

        elif action_type == "foul":
            if is_personal_foul(action):
                if person_id:
                    player(person_id)["foulsPersonal"] += 1
                if team is not None:
                    team["foulsPersonal"] += 1
            if str(action["subType"]).lower() == "offensive" and opponent_id in team_totals:
                team_totals[opponent_id]["offensiveFoulsDrawn"] += 1

    attribution = attribute_lineups(
        actions,
        stints,
        segment,
        home_id,
        away_id,
        strategy=lineup_strategy,
        live_period=live_period,
        live_clock=live_clock,
    )
    for person_id, line in attribution["players"].items():
        entry = player(person_id)
        entry["minutes"] += line["seconds"]
        entry["plusMinusPoints"] += line["plusMinus"]

    return {
        "playerStats": player_stats,
        "teamTotals": team_totals,
        "lineups": attribution["units"],
        "lineupStrategies": attribution["strategies"],
    }
