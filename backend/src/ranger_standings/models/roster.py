"""Roster models: teams, players and slot assignments."""

from dataclasses import dataclass, field
from typing import Any, Optional

MAX_PLAYERS_PER_TEAM = 4


class InvalidRosterError(ValueError):
    """Roster input does not describe a usable team list."""


@dataclass(frozen=True)
class Player:
    """A player assigned to a team on the slotlist."""

    name: str
    role: str = "Player"


@dataclass(frozen=True)
class Team:
    """A team occupying one slot of the tournament lobby."""

    slot: Optional[int]
    name: str
    players: tuple[Player, ...] = ()

    def __post_init__(self):
        if len(self.players) > MAX_PLAYERS_PER_TEAM:
            raise InvalidRosterError(
                f"Team '{self.name}' has {len(self.players)} players "
                f"(max {MAX_PLAYERS_PER_TEAM})"
            )

    @property
    def slot_label(self) -> str:
        """Slot number as written to the standings CSV."""
        return "" if self.slot is None else str(self.slot)


@dataclass(frozen=True)
class Roster:
    """Immutable team list produced once per slotlist run.

    Teams are kept in input order; that order breaks ties when
    several teams match the same fuzzy token.
    """

    teams: tuple[Team, ...] = field(default_factory=tuple)

    def __post_init__(self):
        seen: set[int] = set()
        for team in self.teams:
            if team.slot is None:
                continue
            if team.slot in seen:
                raise InvalidRosterError(f"Slot {team.slot} is assigned to more than one team")
            seen.add(team.slot)

    def by_slot(self) -> dict[int, Team]:
        return {team.slot: team for team in self.teams if team.slot is not None}

    @property
    def player_count(self) -> int:
        return sum(len(team.players) for team in self.teams)

    @classmethod
    def from_json(cls, data: Any) -> "Roster":
        """Build a roster from `{teams: [{slot, name, players}]}` or a bare team list.

        Accepts the `teamName`/`slotNumber` aliases the slotlist step
        emits and players given either as strings or `{name, role}` objects.
        """
        teams_data = data.get("teams") if isinstance(data, dict) else data
        if not isinstance(teams_data, list):
            raise InvalidRosterError("Invalid roster structure. Expected teams array.")

        teams = []
        for index, item in enumerate(teams_data):
            if not isinstance(item, dict):
                raise InvalidRosterError(f"Roster entry {index + 1} is not an object")
            name = str(item.get("name") or item.get("teamName") or "").strip()
            if not name:
                raise InvalidRosterError(f"Roster entry {index + 1} has no team name")

            players = []
            for raw_player in item.get("players") or []:
                if isinstance(raw_player, str):
                    player_name, role = raw_player.strip(), "Player"
                elif isinstance(raw_player, dict):
                    player_name = str(raw_player.get("name") or "").strip()
                    role = str(raw_player.get("role") or "Player")
                else:
                    continue
                if player_name:
                    players.append(Player(name=player_name, role=role))

            teams.append(
                Team(
                    slot=parse_slot(item.get("slot", item.get("slotNumber"))),
                    name=name,
                    players=tuple(players),
                )
            )
        return cls(teams=tuple(teams))

    def to_dict(self) -> dict:
        return {
            "teams": [
                {
                    "slot": team.slot,
                    "name": team.name,
                    "players": [{"name": p.name, "role": p.role} for p in team.players],
                }
                for team in self.teams
            ]
        }


def parse_slot(value: Any) -> Optional[int]:
    """Parse a slot number from an int or a zero-padded string like "03"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    return None
