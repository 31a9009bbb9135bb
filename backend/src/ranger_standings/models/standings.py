"""Standings table models - the system of record."""

from dataclasses import dataclass, field, replace
from typing import Iterator


@dataclass(frozen=True)
class StandingsRow:
    """Accumulated score line for one team.

    `total_points` is derived from the two point columns and cannot be
    set independently. Provenance flags do not take part in equality.
    """

    team_name: str
    wins: int = 0
    matches_played: int = 0
    placement_points: int = 0
    kill_points: int = 0
    group_name: str = ""
    slot_number: str = ""
    # Provenance for the human-facing summary only
    has_new_result: bool = field(default=False, compare=False)
    is_new_team: bool = field(default=False, compare=False)

    @property
    def total_points(self) -> int:
        return self.placement_points + self.kill_points

    def with_provenance(self, has_new_result: bool = False, is_new_team: bool = False) -> "StandingsRow":
        return replace(self, has_new_result=has_new_result, is_new_team=is_new_team)

    def to_dict(self) -> dict:
        return {
            "teamName": self.team_name,
            "wins": self.wins,
            "matchesPlayed": self.matches_played,
            "placementPoints": self.placement_points,
            "killPoints": self.kill_points,
            "totalPoints": self.total_points,
            "groupName": self.group_name,
            "slotNumber": self.slot_number,
            "hasNewResult": self.has_new_result,
            "isNewTeam": self.is_new_team,
        }


@dataclass(frozen=True)
class StandingsTable:
    """Ordered standings rows."""

    rows: tuple[StandingsRow, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[StandingsRow]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> StandingsRow:
        return self.rows[index]

    @property
    def leader(self) -> StandingsRow | None:
        return self.rows[0] if self.rows else None

    def find(self, team_name: str) -> StandingsRow | None:
        for row in self.rows:
            if row.team_name == team_name:
                return row
        return None

    @property
    def team_names(self) -> list[str]:
        return [row.team_name for row in self.rows]

    def to_list(self) -> list[dict]:
        return [row.to_dict() for row in self.rows]
