"""Tests for folding merged results into standings."""

import pytest

from ranger_standings.models.results import MergedTeamResult
from ranger_standings.models.roster import Roster, Team
from ranger_standings.models.standings import StandingsRow
from ranger_standings.services.standings_aggregator import combine, rank_rows, seed_from_roster


def _merged(team_name, placement_point, finish_point, win=0, placement=2, slot_number=""):
    return MergedTeamResult(
        team_name=team_name,
        placement=placement,
        win=win,
        placement_point=placement_point,
        finish_point=finish_point,
        players=("a", "b", "c", "d"),
        match_found=True,
        slot_number=slot_number,
    )


@pytest.fixture
def alpha_row():
    return StandingsRow("Alpha", wins=1, matches_played=1, placement_points=10, kill_points=8, group_name="G1", slot_number="1")


class TestCombine:
    def test_accumulates_existing_team(self, alpha_row):
        """Alpha placed 3rd with 5 kills in the new round."""
        table = combine([alpha_row], [_merged("Alpha", 5, 5, placement=3)], 2, "G2")
        row = table.find("Alpha")
        assert row.wins == 1
        assert row.placement_points == 15
        assert row.kill_points == 13
        assert row.total_points == 28
        assert row.matches_played == 2
        assert row.group_name == "G2"
        assert row.has_new_result is True
        assert row.is_new_team is False

    def test_inserts_new_team(self, alpha_row):
        table = combine([alpha_row], [_merged("Bravo", 6, 4, slot_number="7")], 2, "G2")
        row = table.find("Bravo")
        assert (row.placement_points, row.kill_points, row.total_points) == (6, 4, 10)
        assert row.slot_number == "7"
        assert row.matches_played == 2
        assert row.is_new_team is True
        assert row.has_new_result is True

    def test_carries_absent_team_forward(self, alpha_row):
        table = combine([alpha_row], [_merged("Bravo", 6, 4)], 3, "G2")
        row = table.find("Alpha")
        assert (row.wins, row.placement_points, row.kill_points) == (1, 10, 8)
        assert row.matches_played == 3
        assert row.has_new_result is False

    def test_fills_missing_slot_number(self):
        table = combine([StandingsRow("Alpha")], [_merged("Alpha", 1, 0, slot_number="4")], 1, "G1")
        assert table.find("Alpha").slot_number == "4"

    def test_keeps_existing_slot_number(self, alpha_row):
        table = combine([alpha_row], [_merged("Alpha", 1, 0, slot_number="9")], 2, "G1")
        assert table.find("Alpha").slot_number == "1"

    def test_empty_existing_rows(self):
        table = combine([], [_merged("Alpha", 10, 3, win=1, placement=1)], 1, "G1")
        assert len(table) == 1
        assert table[0].wins == 1

    def test_repeated_existing_row_ignored(self, alpha_row):
        table = combine([alpha_row, alpha_row], [], 1, "G1")
        assert table.team_names == ["Alpha"]

    def test_inputs_not_modified(self, alpha_row):
        existing = [alpha_row]
        combine(existing, [_merged("Alpha", 5, 5)], 2, "G2")
        assert existing == [alpha_row]
        assert alpha_row.placement_points == 10

    def test_deterministic(self, alpha_row):
        existing = [alpha_row, StandingsRow("Bravo", placement_points=10, kill_points=8)]
        merged = [_merged("Charlie", 3, 15), _merged("Delta", 4, 14)]
        first = combine(existing, merged, 2, "G1")
        second = combine(existing, merged, 2, "G1")
        assert first == second
        assert first.team_names == second.team_names


class TestRanking:
    def test_sort_order_and_tiebreaks(self):
        rows = [
            StandingsRow("Zeta", placement_points=5, kill_points=5),    # 10, place 5
            StandingsRow("Echo", placement_points=6, kill_points=4),    # 10, place 6, kill 4
            StandingsRow("Delta", placement_points=6, kill_points=4),   # same as Echo, name asc
            StandingsRow("Alpha", placement_points=1, kill_points=20),  # 21
            StandingsRow("Bravo", placement_points=2, kill_points=0),   # 2
        ]
        assert [r.team_name for r in rank_rows(rows)] == ["Alpha", "Delta", "Echo", "Zeta", "Bravo"]

    def test_wins_do_not_break_ties(self):
        rows = [
            StandingsRow("A", placement_points=4, kill_points=6, wins=0),
            StandingsRow("B", placement_points=4, kill_points=6, wins=3),
        ]
        assert [r.team_name for r in rank_rows(rows)] == ["A", "B"]

    def test_every_row_total_is_the_sum(self, alpha_row):
        table = combine([alpha_row], [_merged("Alpha", 5, 5), _merged("Bravo", 6, 1)], 2, "G1")
        for row in table:
            assert row.total_points == row.placement_points + row.kill_points


def test_seed_from_roster_zero_rows():
    roster = Roster(teams=(Team(3, "Alpha"), Team(None, "Bravo"), Team(5, "Alpha")))
    rows = seed_from_roster(roster, 1, "G1")
    assert [(r.team_name, r.slot_number) for r in rows] == [("Alpha", "3"), ("Bravo", "")]
    assert all(r.total_points == 0 and r.matches_played == 1 and r.group_name == "G1" for r in rows)
