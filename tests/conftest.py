"""Shared test fixtures for game resources, minutes data and mocked NBA API payloads."""

import pandas as pd
import pytest

HOME_ID = "1610612765"
AWAY_ID = "1610612751"


def _action(number, period, clock, action_type, team_id=None, person_id=0, **fields) -> dict:
    """Live play-by-play action as the feed sends it (numeric ids, 0 for none)."""
    action = {
        "actionNumber": number,
        "orderNumber": number * 10000,
        "period": period,
        "clock": clock,
        "actionType": action_type,
        "teamId": int(team_id) if team_id else 0,
        "personId": person_id,
    }
    action.update(fields)
    return action


def _player(person_id, first, last, minutes, points=0, rebounds=0, plus_minus=0, **stats) -> dict:
    player = {
        "personId": person_id,
        "firstName": first,
        "familyName": last,
        "jerseyNum": "",
        "position": "",
        "minutes": minutes,
        "points": points,
        "reboundsTotal": rebounds,
        "plusMinusPoints": plus_minus,
    }
    player.update(stats)
    return player


def _lineup(*person_ids) -> list:
    return [{"personId": pid, "nameI": f"P. {pid}"} for pid in person_ids]


@pytest.fixture
def home_team() -> dict:
    return {"teamId": HOME_ID, "teamTricode": "DET", "teamName": "Pistons", "score": 3}


@pytest.fixture
def away_team() -> dict:
    return {"teamId": AWAY_ID, "teamTricode": "BOS", "teamName": "Celtics", "score": 7}


@pytest.fixture
def make_action():
    """Factory for actions with increasing action numbers."""
    counter = {"n": 0}

    def _make(action_type, team_id=None, person_id=0, period=1, clock="PT11M00.00S", **fields):
        counter["n"] += 1
        return _action(counter["n"], period, clock, action_type, team_id, person_id, **fields)

    return _make


@pytest.fixture
def sample_actions() -> list[dict]:
    """Two quarters of play: DET scores 3, BOS scores 7."""
    return [
        _action(1, 1, "PT11M30.00S", "2pt", HOME_ID, 101, shotResult="Made", shotDistance=2,
                qualifiers=["pointsinthepaint"], assistPersonId=102, possession=int(HOME_ID),
                description="Cunningham 2' Driving Layup"),
        _action(2, 1, "PT11M10.00S", "3pt", AWAY_ID, 201, shotResult="Missed", shotDistance=25,
                possession=int(AWAY_ID), description="MISS Brown 25' 3PT Pullup"),
        _action(3, 1, "PT11M08.00S", "rebound", HOME_ID, 102, subType="defensive",
                shotActionNumber=2, possession=int(HOME_ID)),
        _action(4, 1, "PT10M50.00S", "foul", AWAY_ID, 202, subType="personal", possession=int(HOME_ID)),
        _action(5, 1, "PT10M50.00S", "freethrow", HOME_ID, 102, subType="1 of 2", shotResult="Made",
                possession=int(HOME_ID)),
        _action(6, 1, "PT10M50.00S", "freethrow", HOME_ID, 102, subType="2 of 2", shotResult="Missed",
                possession=int(HOME_ID)),
        _action(7, 1, "PT10M48.00S", "rebound", AWAY_ID, 201, subType="defensive",
                shotActionNumber=6, possession=int(AWAY_ID)),
        _action(8, 1, "PT10M30.00S", "3pt", AWAY_ID, 201, shotResult="Made", shotDistance=24,
                possession=int(AWAY_ID), description="Brown 24' 3PT"),
        _action(9, 1, "PT10M00.00S", "substitution", HOME_ID, 105, subType="out"),
        _action(10, 1, "PT10M00.00S", "substitution", HOME_ID, 106, subType="in"),
        _action(11, 2, "PT11M40.00S", "2pt", AWAY_ID, 202, shotResult="Made", shotDistance=12,
                possession=int(AWAY_ID), description="Tatum 12' Jump Shot"),
        _action(12, 2, "PT11M20.00S", "turnover", HOME_ID, 101, subType="bad pass", possession=int(HOME_ID)),
        _action(13, 2, "PT11M20.00S", "steal", AWAY_ID, 201, possession=int(HOME_ID)),
        _action(14, 2, "PT11M10.00S", "2pt", AWAY_ID, 201, shotResult="Made", shotDistance=1,
                qualifiers=["fastbreak", "fromturnover"], possession=int(AWAY_ID),
                description="Brown 1' Dunk"),
    ]


@pytest.fixture
def sample_box_score() -> dict:
    """Box score in the flattened game-resource shape."""
    return {
        "home": {
            "teamId": HOME_ID,
            "players": [
                _player("101", "Cade", "Cunningham", "PT20M00.00S", points=2, plus_minus=-4),
                _player("102", "Ausar", "Thompson", "PT24M00.00S", points=1, rebounds=1, plus_minus=-4),
                _player("105", "Jalen", "Duren", "PT00M00.00S"),
                _player("107", "Bobi", "Klintman", ""),
            ],
            "totals": {"points": 3, "reboundsTotal": 1, "assists": 1},
        },
        "away": {
            "teamId": AWAY_ID,
            "players": [
                _player("201", "Jaylen", "Brown", "PT24M00.00S", points=5, rebounds=1, plus_minus=4),
                _player("202", "Jayson", "Tatum", "PT22M00.00S", points=2, plus_minus=4),
            ],
            "totals": {"points": 7, "reboundsTotal": 1, "assists": 0},
        },
    }


@pytest.fixture
def sample_game(home_team, away_team, sample_actions, sample_box_score) -> dict:
    """Final game resource (status 3) with the sample actions."""
    return {
        "gameId": "0022500001",
        "gameStatus": 3,
        "gameStatusText": "Final",
        "period": 4,
        "gameClock": "PT00M00.00S",
        "homeTeam": home_team,
        "awayTeam": away_team,
        "boxScore": sample_box_score,
        "playByPlayActions": sample_actions,
        "officials": [],
    }


@pytest.fixture
def sample_minutes_data() -> dict:
    """Minutes resource whose stints cover Q1 and Q2 completely."""
    return {
        "homeTeam": {"teamId": HOME_ID},
        "awayTeam": {"teamId": AWAY_ID},
        "periods": [
            {
                "period": 1,
                "periodLabel": "Q1",
                "stints": [
                    {
                        "startClock": "12:00",
                        "endClock": "10:00",
                        "playersHome": _lineup("101", "102", "103", "104", "105"),
                        "playersAway": _lineup("201", "202", "203", "204", "205"),
                        "plusMinus": 0,
                    },
                    {
                        "startClock": "10:00",
                        "endClock": "0:00",
                        "playersHome": _lineup("101", "102", "103", "104", "106"),
                        "playersAway": _lineup("201", "202", "203", "204", "205"),
                        "plusMinus": 0,
                    },
                ],
            },
            {
                "period": 2,
                "periodLabel": "Q2",
                "stints": [
                    {
                        "startClock": "12:00",
                        "endClock": "0:00",
                        "playersHome": _lineup("101", "102", "103", "104", "106"),
                        "playersAway": _lineup("201", "202", "203", "204", "205"),
                        "plusMinus": -4,
                    },
                ],
            },
        ],
    }


@pytest.fixture
def sample_rotation_data() -> dict:
    """Sample GameRotation response with away_team and home_team DataFrames."""
    # Rotation API uses deciseconds (1/10 second) from tip-off
    # 1200 decisecs = 120 seconds = 10:00 left in Q1
    # 7200 decisecs = end of Q1, 14400 = end of Q2
    home_team = pd.DataFrame({
        "GAME_ID": ["0022500001"] * 6,
        "PERSON_ID": [101, 102, 103, 104, 105, 106],
        "PLAYER_FIRST": ["Cade", "Ausar", "Tobias", "Isaiah", "Jalen", "Malik"],
        "PLAYER_LAST": ["Cunningham", "Thompson", "Harris", "Stewart", "Duren", "Beasley"],
        "IN_TIME_REAL": [0, 0, 0, 0, 0, 1200],
        "OUT_TIME_REAL": [7200, 7200, 7200, 7200, 1200, 7200],
        "PT_DIFF": [0, 0, 0, 0, 0, 0],
    })

    away_team = pd.DataFrame({
        "GAME_ID": ["0022500001"] * 5,
        "PERSON_ID": [201, 202, 203, 204, 205],
        "PLAYER_FIRST": ["Jaylen", "Jayson", "Derrick", "Jrue", "Kristaps"],
        "PLAYER_LAST": ["Brown", "Tatum", "White", "Holiday", "Porzingis"],
        "IN_TIME_REAL": [0, 0, 0, 0, 0],
        "OUT_TIME_REAL": [14400, 14400, 14400, 14400, 14400],
        "PT_DIFF": [-4, -4, -4, -4, -4],
    })

    return {"away_team": away_team, "home_team": home_team}


@pytest.fixture
def sample_live_boxscore_payload() -> dict:
    """nba_api live BoxScore(...).get_dict() payload."""
    return {
        "game": {
            "gameId": "0022500001",
            "gameStatus": 2,
            "gameStatusText": "Q2 5:00",
            "period": 2,
            "gameClock": "PT05M00.00S",
            "officials": [{"personId": 1, "name": "Scott Foster"}],
            "homeTeam": {
                "teamId": int(HOME_ID),
                "teamName": "Pistons",
                "teamCity": "Detroit",
                "teamTricode": "DET",
                "score": 40,
                "players": [
                    {
                        "personId": 101,
                        "firstName": "Cade",
                        "familyName": "Cunningham",
                        "jerseyNum": "2",
                        "position": "PG",
                        "starter": "1",
                        "statistics": {"minutes": "PT15M12.00S", "points": 14, "plusMinusPoints": 6},
                    }
                ],
                "statistics": {"points": 40, "reboundsTotal": 20},
            },
            "awayTeam": {
                "teamId": int(AWAY_ID),
                "teamName": "Celtics",
                "teamCity": "Boston",
                "teamTricode": "BOS",
                "score": 34,
                "players": [],
                "statistics": {"points": 34, "reboundsTotal": 18},
            },
        }
    }


@pytest.fixture
def sample_live_pbp_payload(sample_actions) -> dict:
    """nba_api live PlayByPlay(...).get_dict() payload."""
    return {"game": {"gameId": "0022500001", "actions": sample_actions}}
