"""Tests for round scoring."""

import pytest

from ranger_standings.services.scoring import (
    MAX_PLACEMENT,
    PLACEMENT_POINTS,
    clamp_placement,
    placement_points_for,
    score,
)


class TestPlacementTable:
    @pytest.mark.parametrize(
        "placement,expected",
        [(1, 10), (2, 6), (3, 5), (4, 4), (5, 3), (6, 2), (7, 1), (8, 1), (9, 0), (17, 0), (25, 0)],
    )
    def test_placement_points(self, placement, expected):
        assert placement_points_for(placement) == expected

    def test_table_covers_top_eight_only(self):
        assert sorted(PLACEMENT_POINTS) == list(range(1, 9))


class TestClamping:
    @pytest.mark.parametrize("placement", [0, -3, 26, 99])
    def test_out_of_range_counts_as_last(self, placement):
        assert clamp_placement(placement) == MAX_PLACEMENT

    def test_in_range_untouched(self):
        assert clamp_placement(1) == 1
        assert clamp_placement(25) == 25

    def test_score_zero_and_ninety_nine_behave_as_twenty_five(self):
        """Clamped placements score exactly like 25th."""
        assert score(0, 7) == score(25, 7)
        assert score(99, 7) == score(25, 7)


class TestScore:
    def test_first_place_wins(self):
        result = score(1, 8)
        assert result.win == 1
        assert result.placement_points == 10
        assert result.kill_points == 8
        assert result.total_points == 18

    @pytest.mark.parametrize("placement", [0, 2, 8, 25, 40])
    def test_win_only_for_clamped_first(self, placement):
        assert score(placement, 3).win == 0

    def test_kills_floored_at_zero(self):
        result = score(3, -4)
        assert result.kill_points == 0
        assert result.total_points == 5

    def test_total_is_always_the_sum(self):
        for placement in range(-2, 30):
            for kills in (0, 1, 12):
                result = score(placement, kills)
                assert result.total_points == result.placement_points + result.kill_points
