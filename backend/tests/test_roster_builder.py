"""Tests for building rosters from slotlist and player extractions."""

import json

import pytest

from ranger_standings.models.roster import InvalidRosterError, Player, Roster, Team
from ranger_standings.services.roster_builder import (
    build_roster,
    encode_roster_csv,
    extract_teams_and_players,
    parse_json_object,
)
from ranger_standings.services.vision_client import StaticExtractionClient


@pytest.fixture
def slotlist():
    return {
        "teams": [
            {"slot": 3, "name": "TEAM TSM ENT"},
            {"slot": "04", "name": "TEAM TX4G"},
            {"slot": 5, "name": "Godlike Esports"},
            {"slot": 6, "name": ""},
            {"slot": 7, "name": "Empty Team"},
        ]
    }


@pytest.fixture
def fragments():
    return [
        {"name": "Ninja", "slot": 3},
        {"name": "Zgod", "team": "TSM Entity"},
        {"name": "Jonathan", "team": "godlike", "role": "IGL"},
        {"name": "Wolf", "team": "Godlyke Warriors"},
        {"name": "Mystery", "team": "Unknown Squad"},
    ] + [{"name": f"a{i}", "slot": "04"} for i in range(1, 6)]


class TestBuildRoster:
    def test_teams_in_slotlist_order(self, slotlist):
        build = build_roster(slotlist, [])
        assert [(t.slot, t.name) for t in build.roster.teams] == [
            (3, "TEAM TSM ENT"),
            (4, "TEAM TX4G"),
            (5, "Godlike Esports"),
            (7, "Empty Team"),
        ]

    def test_binds_by_slot(self, slotlist, fragments):
        roster = build_roster(slotlist, fragments).roster
        assert roster.teams[0].players[0] == Player("Ninja")

    def test_binds_by_team_name_containment(self, slotlist, fragments):
        godlike = build_roster(slotlist, fragments).roster.teams[2]
        assert godlike.players[0] == Player("Jonathan", "IGL")

    def test_binds_by_cleaned_name(self, slotlist, fragments):
        tsm = build_roster(slotlist, fragments).roster.teams[0]
        assert [p.name for p in tsm.players] == ["Ninja", "Zgod"]

    def test_binds_by_similar_word(self, slotlist, fragments):
        godlike = build_roster(slotlist, fragments).roster.teams[2]
        assert [p.name for p in godlike.players] == ["Jonathan", "Wolf"]

    def test_team_capped_at_four_players(self, slotlist, fragments):
        build = build_roster(slotlist, fragments)
        assert [p.name for p in build.roster.teams[1].players] == ["a1", "a2", "a3", "a4"]
        assert [f["name"] for f in build.full_team_overflow] == ["a5"]

    def test_unmatched_players_reported(self, slotlist, fragments):
        build = build_roster(slotlist, fragments)
        assert [f["name"] for f in build.unmatched_players] == ["Mystery"]

    def test_statistics(self, slotlist, fragments):
        assert build_roster(slotlist, fragments).statistics() == {
            "teamsFound": 4,
            "playersExtracted": 8,
            "teamsWithoutPlayers": 1,
            "unmatchedPlayers": 1,
        }

    def test_repeated_slot_keeps_first(self):
        build = build_roster({"teams": [{"slot": 1, "name": "A"}, {"slot": 1, "name": "B"}]}, [])
        assert [t.name for t in build.roster.teams] == ["A"]

    def test_no_slotlist(self):
        build = build_roster(None, [{"name": "x", "team": "y"}])
        assert build.roster.teams == ()
        assert len(build.unmatched_players) == 1


class TestEncodeRosterCsv:
    def test_every_cell_quoted(self):
        roster = Roster(teams=(
            Team(3, "TEAM TSM ENT", (Player("Ninja"), Player("Zgod", "IGL"))),
            Team(None, "Solo", ()),
        ))
        assert encode_roster_csv(roster).splitlines() == [
            '"Team","Slot","Player","Role"',
            '"TEAM TSM ENT","3","Ninja","Player"',
            '"TEAM TSM ENT","3","Zgod","IGL"',
            '"Solo","","","Player"',
        ]


class TestParseJsonObject:
    def test_fenced(self):
        assert parse_json_object('```json\n{"teams": []}\n```') == {"teams": []}

    def test_trailing_commas_repaired(self):
        assert parse_json_object('{"teams": [{"slot": 1, "name": "A"},]}') == {"teams": [{"slot": 1, "name": "A"}]}

    def test_unquoted_keys_repaired(self):
        assert parse_json_object('{teams: [{slot: 1, name: "A"}]}') == {"teams": [{"slot": 1, "name": "A"}]}

    @pytest.mark.parametrize("text", [None, "", "no json", "[1, 2]", "{broken"])
    def test_unusable(self, text):
        assert parse_json_object(text) is None


class TestRosterFromJson:
    def test_aliases_and_player_shapes(self):
        roster = Roster.from_json([
            {"teamName": "Alpha", "slotNumber": "01", "players": ["Ace", {"name": "Blaze", "role": "IGL"}, ""]},
        ])
        team = roster.teams[0]
        assert (team.slot, team.name) == (1, "Alpha")
        assert team.players == (Player("Ace"), Player("Blaze", "IGL"))

    def test_round_trips_through_dict(self):
        roster = Roster(teams=(Team(1, "Alpha", (Player("Ace"),)),))
        assert Roster.from_json(roster.to_dict()) == roster

    @pytest.mark.parametrize(
        "data",
        [
            {"teams": "nope"},
            "nope",
            [{"slot": 1}],
            [{"slot": 1, "name": "A"}, {"slot": 1, "name": "B"}],
            [{"name": "A", "players": ["a", "b", "c", "d", "e"]}],
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(InvalidRosterError):
            Roster.from_json(data)


@pytest.mark.anyio
async def test_extract_teams_and_players():
    client = StaticExtractionClient({
        "slots.png": [json.dumps({"teams": [{"slot": 1, "name": "Alpha"}, {"slot": 2, "name": "Bravo"}]})],
        "players1.png": ['```json\n{"players": [{"name": "Ace", "slot": 1}, {"name": "Echo", "team": "bravo"}]}\n```'],
        "players2.png": ["I cannot read this image"],
    })
    build = await extract_teams_and_players(client, "slots.png", ["players1.png", "players2.png", "missing.png"])

    assert [t.name for t in build.roster.teams] == ["Alpha", "Bravo"]
    assert build.roster.teams[0].players == (Player("Ace"),)
    assert build.roster.teams[1].players == (Player("Echo"),)
    assert client.calls[0] == "slots.png"
