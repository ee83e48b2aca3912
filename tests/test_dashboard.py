"""Tests for the game dashboard composer."""

import json

import pytest

from courtside.dashboard import build_game_dashboard, game_status_label, normalize_clock, team_fouls
from courtside.events import normalize_actions

HOME_ID = "1610612765"
AWAY_ID = "1610612751"


class TestGameStatusLabel:
    """Tests for game_status_label function."""

    @pytest.mark.parametrize(
        "game,expected",
        [
            ({"gameStatus": 3, "period": 4}, "F"),
            ({"gameStatus": 3, "period": 5}, "F/OT"),
            ({"gameStatus": 3, "period": 6}, "F/OT2"),
            ({"gameStatus": 2, "period": 2, "gameStatusText": "Halftime"}, "HT"),
            ({"gameStatus": 2, "period": 1, "gameStatusText": "End Q1"}, "End Q1"),
            ({"gameStatus": 2, "period": 3, "gameClock": "PT05M00.00S"}, "Q3"),
            ({"gameStatus": 2, "period": 5, "gameClock": "PT03M00.00S"}, "OT"),
            ({"gameStatus": 2, "period": 6, "gameClock": "PT03M00.00S"}, "2OT"),
            ({"gameStatus": 2, "period": 2, "gameClock": "PT00M00.00S"}, "HT"),
            ({"gameStatus": 2, "period": 3, "gameClock": "PT0S"}, "End Q3"),
            ({"gameStatus": 1, "period": 0, "gameStatusText": "7:00 pm ET"}, None),
        ],
    )
    def test_labels(self, game, expected):
        assert game_status_label(game) == expected


def test_normalize_clock():
    assert normalize_clock("PT04M30.00S") == "4:30"
    assert normalize_clock("PT00M07.90S") == "0:07"
    assert normalize_clock("") == ""
    assert normalize_clock("5:00") == "5:00"


def test_team_fouls(sample_actions):
    actions = normalize_actions(sample_actions)
    assert team_fouls(actions, 1, AWAY_ID) == 1
    assert team_fouls(actions, 2, AWAY_ID) == 0
    assert team_fouls(normalize_actions([]), 1, AWAY_ID) == 0


class TestBuildGameDashboard:
    """Tests for build_game_dashboard function."""

    def test_whole_game(self, sample_game):
        dashboard = build_game_dashboard(sample_game, None, "all")

        assert dashboard["status"] == "F"
        assert dashboard["homeTeam"]["score"] == 3
        assert dashboard["awayTeam"]["score"] == 7
        assert dashboard["segmentSeconds"] == 2880
        assert dashboard["teams"]["home"]["totals"]["points"] == 3
        assert dashboard["teams"]["home"]["offensiveRating"] == 104
        assert dashboard["teams"]["away"]["offensiveRating"] == 175
        assert dashboard["teams"]["home"]["netRating"] == -71
        assert dashboard["pace"] == pytest.approx((2.88 + 4) / 2)

    def test_official_minutes_and_plus_minus_for_whole_game(self, sample_game):
        dashboard = build_game_dashboard(sample_game, None, "all")
        home_rows = {row["personId"]: row for row in dashboard["players"]["home"]}

        assert home_rows["101"]["minutes"] == "20:00"
        assert home_rows["101"]["plusMinusPoints"] == -4
        assert home_rows["101"]["turnovers"] == 1
        # no minutes, points or rebounds
        assert "105" not in home_rows
        assert "107" not in home_rows

    def test_quarter_uses_replayed_stats(self, sample_game, sample_minutes_data):
        dashboard = build_game_dashboard(sample_game, sample_minutes_data, "q2")
        home_rows = {row["personId"]: row for row in dashboard["players"]["home"]}
        away_rows = {row["personId"]: row for row in dashboard["players"]["away"]}

        assert dashboard["homeTeam"]["score"] == 0
        assert dashboard["awayTeam"]["score"] == 4
        assert home_rows["101"]["minutes"] == "12:00"
        assert home_rows["101"]["plusMinusPoints"] == -4
        assert away_rows["201"]["points"] == 2
        assert dashboard["lineupStrategies"] == {"2": "stints"}
        assert dashboard["lineups"][0]["minutes"] == "12:00"
        assert dashboard["teams"]["away"]["transition"]["transitionPoints"] == 2
        assert dashboard["teams"]["away"]["disruptions"] == 1

    def test_segment_not_started(self, sample_game):
        dashboard = build_game_dashboard(sample_game, None, "q4")
        assert dashboard["homeTeam"]["score"] == 0
        assert dashboard["players"]["home"] == []
        assert dashboard["teams"]["home"]["kills"] == 0

    def test_official_ratings(self, sample_game):
        advanced = {
            "home": {"offensiveRating": 101.3, "netRating": -9.2, "possessions": 3.0},
            "away": {"offensiveRating": 110.5, "netRating": 9.2, "possessions": 3.0},
        }
        dashboard = build_game_dashboard(sample_game, None, "all", advanced=advanced)
        assert dashboard["teams"]["home"]["offensiveRating"] == 101
        assert dashboard["teams"]["home"]["possessions"] == 3.0

    def test_fouls_and_bonus(self, sample_game, make_action):
        sample_game["period"] = 1
        sample_game["playByPlayActions"] = [
            make_action("foul", AWAY_ID, 201, subType="personal") for _ in range(6)
        ]
        dashboard = build_game_dashboard(sample_game, None, "all")
        assert dashboard["teams"]["away"]["fouls"] == 5
        assert dashboard["teams"]["away"]["bonus"] is True
        assert dashboard["teams"]["home"]["bonus"] is False

    def test_live_segment_merges_snapshot_diff(self, sample_game):
        sample_game["gameStatus"] = 2
        sample_game["gameStatusText"] = "Q2 11:00"
        sample_game["period"] = 2
        sample_game["gameClock"] = "PT11M00.00S"
        snapshots = [
            {"key": "period-end-1", "type": "period-end", "period": 1, "clock": "PT00M00.00S",
             "snapshot": {"teams": {HOME_ID: {"points": 3}, AWAY_ID: {"points": 3}}, "players": None}},
        ]
        dashboard = build_game_dashboard(sample_game, None, "q2", snapshots=snapshots)

        assert dashboard["status"] == "Q2"
        assert dashboard["isLive"] is True
        assert dashboard["awayTeam"]["score"] == 4
        assert dashboard["homeTeam"]["score"] == 0
        assert dashboard["snapshotLabel"] == "Period end (Q1 PT00M00.00S)"

    def test_live_segment_keeps_larger_points(self, sample_game):
        sample_game["gameStatus"] = 2
        sample_game["period"] = 2
        sample_game["gameClock"] = "PT11M00.00S"
        snapshots = [
            {"key": "period-end-1", "type": "period-end", "period": 1, "clock": "PT00M00.00S",
             "snapshot": {"teams": {HOME_ID: {"points": 3}, AWAY_ID: {"points": 6}}, "players": None}},
        ]
        dashboard = build_game_dashboard(sample_game, None, "q2", snapshots=snapshots)
        assert dashboard["awayTeam"]["score"] == 4

    def test_json_ready(self, sample_game, sample_minutes_data):
        dashboard = build_game_dashboard(sample_game, sample_minutes_data, "first-half")
        assert json.loads(json.dumps(dashboard))["gameId"] == "0022500001"

    def test_missing_team_id_raises(self, sample_game):
        sample_game["homeTeam"] = {"teamTricode": "DET"}
        with pytest.raises(ValueError):
            build_game_dashboard(sample_game, None, "all")

    def test_officials_and_calls_against(self, sample_game):
        sample_game["officials"] = [
            {"personId": 202003, "name": "Scott Foster", "firstName": "Scott", "familyName": "Foster",
             "jerseyNum": 48, "assignment": "OFFICIAL1"},
        ]
        sample_game["playByPlayActions"] = sample_game["playByPlayActions"] + [
            {"actionNumber": 15, "orderNumber": 150000, "period": 1, "clock": "PT09M00.00S",
             "actionType": "foul", "subType": "personal", "teamId": int(AWAY_ID), "personId": 202,
             "officialId": 202003},
            {"actionNumber": 16, "orderNumber": 160000, "period": 2, "clock": "PT05M00.00S",
             "actionType": "foul", "subType": "personal", "teamId": int(HOME_ID), "personId": 101,
             "officialId": 202003},
        ]

        whole_game = build_game_dashboard(sample_game, None, "all")
        first_quarter = build_game_dashboard(sample_game, None, "q1")

        assert whole_game["officials"] == [{
            "personId": "202003",
            "name": "Scott Foster",
            "firstName": "Scott",
            "familyName": "Foster",
            "jerseyNum": "48",
            "assignment": "OFFICIAL1",
        }]
        assert whole_game["callsAgainst"] == {"202003": {"BOS": 1, "DET": 1}}
        assert first_quarter["callsAgainst"] == {"202003": {"BOS": 1}}
