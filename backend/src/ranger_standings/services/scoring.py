"""Placement and kill scoring for a single round."""

from dataclasses import dataclass

MIN_PLACEMENT = 1
MAX_PLACEMENT = 25

# Fixed placement table; 9th through 25th score nothing
PLACEMENT_POINTS: dict[int, int] = {
    1: 10,
    2: 6,
    3: 5,
    4: 4,
    5: 3,
    6: 2,
    7: 1,
    8: 1,
}


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points earned by one team in one round."""

    placement: int  # After clamping
    placement_points: int
    kill_points: int
    win: int

    @property
    def total_points(self) -> int:
        return self.placement_points + self.kill_points


def clamp_placement(placement: int) -> int:
    """Clamp into [1, 25]; anything outside counts as 25th."""
    if MIN_PLACEMENT <= placement <= MAX_PLACEMENT:
        return placement
    return MAX_PLACEMENT


def placement_points_for(placement: int) -> int:
    return PLACEMENT_POINTS.get(clamp_placement(placement), 0)


def score(placement: int, kills: int) -> ScoreBreakdown:
    """Score one team's round.

    Out-of-range placements are scored as 25th instead of being rejected,
    so one misread field does not drop a whole team. Kills score one point
    each and are floored at zero.
    """
    clamped = clamp_placement(placement)
    return ScoreBreakdown(
        placement=clamped,
        placement_points=PLACEMENT_POINTS.get(clamped, 0),
        kill_points=max(0, kills),
        win=1 if clamped == 1 else 0,
    )
