"""Binds extracted result records to team identities.

Identity is resolved in tiers, highest confidence first:

1. Slot number carried by the record
2. Player names against the roster (exact, case-insensitive, substring)
3. Substring containment between a record token (team token, then each
   player name) and a known team name

When nothing matches, a team is synthesized from the first player name so
a misread screenshot still contributes its points.

In combine mode the previous standings table stands in for the roster.
Standings rows carry no players, so tier 3 compares extracted *player*
names with previous *team* names and can merge two teams whose names
contain one another.

TODO: persist per-round player lists with each stored match and match
combine-mode results against those instead of team names.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from ranger_standings.models.results import MergedTeamResult, RawResultRecord, UnidentifiedTeam
from ranger_standings.models.roster import Roster, parse_slot
from ranger_standings.models.standings import StandingsTable
from ranger_standings.services.scoring import score
from ranger_standings.utils.name_matching import first_overlap, fold

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamIdentity:
    """A resolved team plus the tier that resolved it."""

    name: str
    slot_number: str
    tier: str  # slot, player, player_casefold, player_partial, team_name


class IdentityIndex(Protocol):
    def identify(self, record: RawResultRecord) -> Optional[TeamIdentity]:
        ...


class RosterIdentityIndex:
    """Lookup tables over a roster."""

    def __init__(self, roster: Roster):
        self._by_slot = roster.by_slot()
        self._teams = [(team.name, team) for team in roster.teams]
        self._players_exact: dict[str, TeamIdentity] = {}
        self._players_folded: dict[str, TeamIdentity] = {}
        self._players_ordered: list[tuple[str, TeamIdentity]] = []

        for team in roster.teams:
            for player in team.players:
                identity = TeamIdentity(team.name, team.slot_label, "player")
                # First team listing a player keeps it
                self._players_exact.setdefault(player.name, identity)
                self._players_folded.setdefault(
                    fold(player.name), TeamIdentity(team.name, team.slot_label, "player_casefold")
                )
                self._players_ordered.append(
                    (player.name, TeamIdentity(team.name, team.slot_label, "player_partial"))
                )

    def identify(self, record: RawResultRecord) -> Optional[TeamIdentity]:
        if record.slot is not None and record.slot in self._by_slot:
            team = self._by_slot[record.slot]
            return TeamIdentity(team.name, team.slot_label, "slot")

        for player in record.players:
            if player in self._players_exact:
                return self._players_exact[player]

        for player in record.players:
            folded = fold(player)
            if folded and folded in self._players_folded:
                return self._players_folded[folded]

        for player in record.players:
            found = first_overlap(player, self._players_ordered)
            if found is not None:
                logger.info(f"Fuzzy player match: '{player}' -> {found.name}")
                return found

        for token in _name_tokens(record):
            team = first_overlap(token, self._teams)
            if team is not None:
                return TeamIdentity(team.name, team.slot_label, "team_name")

        return None


class StandingsIdentityIndex:
    """Lookup tables over a previously decoded standings table."""

    def __init__(self, table: StandingsTable):
        self._by_slot: dict[int, tuple[str, str]] = {}
        for row in table:
            slot = parse_slot(row.slot_number)
            if slot is not None:
                self._by_slot.setdefault(slot, (row.team_name, row.slot_number))
        self._teams = [(row.team_name, row) for row in table]

    def identify(self, record: RawResultRecord) -> Optional[TeamIdentity]:
        if record.slot is not None and record.slot in self._by_slot:
            name, slot_number = self._by_slot[record.slot]
            return TeamIdentity(name, slot_number, "slot")

        for token in _name_tokens(record):
            row = first_overlap(token, self._teams)
            if row is not None:
                return TeamIdentity(row.team_name, row.slot_number, "team_name")

        return None


@dataclass
class MergeAccumulator:
    """State of one merge pass, threaded explicitly through each step."""

    results: list[MergedTeamResult] = field(default_factory=list)
    unidentified_teams: list[UnidentifiedTeam] = field(default_factory=list)
    duplicates: list[tuple[str, int]] = field(default_factory=list)
    seen_keys: set[tuple[str, int]] = field(default_factory=set)

    @property
    def identified_count(self) -> int:
        return sum(1 for r in self.results if r.match_found)


def synthesize_team_name(record: RawResultRecord, position: int) -> str:
    """Placeholder identity: first listed player, else a positional name."""
    first = record.players[0].strip() if record.players else ""
    return first or f"Team_{position}"


def merge_record(
    acc: MergeAccumulator,
    record: RawResultRecord,
    position: int,
    index: IdentityIndex,
) -> MergeAccumulator:
    """Resolve, score and add one record; returns the accumulator."""
    identity = index.identify(record)
    if identity is not None:
        team_name, slot_number, match_found = identity.name, identity.slot_number, True
    else:
        team_name, slot_number, match_found = synthesize_team_name(record, position), "", False

    breakdown = score(record.placement, record.kills)
    key = (team_name, breakdown.placement)
    if key in acc.seen_keys:
        logger.warning(f"Duplicate team found: {team_name} at placement {breakdown.placement}")
        acc.duplicates.append(key)
        return acc
    acc.seen_keys.add(key)

    if not match_found:
        logger.warning(f"No team match for result at placement {record.placement}; using '{team_name}'")
        acc.unidentified_teams.append(
            UnidentifiedTeam(
                placement=record.placement,
                players=record.players,
                kills=record.kills,
                suggested_team_name=team_name,
            )
        )

    acc.results.append(
        MergedTeamResult(
            team_name=team_name,
            placement=breakdown.placement,
            win=breakdown.win,
            placement_point=breakdown.placement_points,
            finish_point=breakdown.kill_points,
            players=record.players,
            match_found=match_found,
            slot_number=slot_number,
        )
    )
    return acc


def merge_results(records: Sequence[RawResultRecord], index: IdentityIndex) -> MergeAccumulator:
    acc = MergeAccumulator()
    for position, record in enumerate(records, start=1):
        acc = merge_record(acc, record, position, index)
    return acc


def merge_with_roster(roster: Roster, records: Sequence[RawResultRecord]) -> MergeAccumulator:
    """Fresh run: bind records to roster teams."""
    return merge_results(records, RosterIdentityIndex(roster))


def merge_with_standings(table: StandingsTable, records: Sequence[RawResultRecord]) -> MergeAccumulator:
    """Combine run: bind records to teams of a previous standings table."""
    return merge_results(records, StandingsIdentityIndex(table))


def _name_tokens(record: RawResultRecord) -> list[str]:
    tokens = [record.team_name] if record.team_name else []
    tokens.extend(record.players)
    return tokens
