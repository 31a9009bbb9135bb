"""Accumulates merged round results into a ranked standings table."""

import logging
from dataclasses import replace
from typing import Iterable, Sequence

from ranger_standings.models.results import MergedTeamResult
from ranger_standings.models.roster import Roster
from ranger_standings.models.standings import StandingsRow, StandingsTable

logger = logging.getLogger(__name__)


def standings_sort_key(row: StandingsRow) -> tuple:
    """Total desc, placement points desc, kill points desc, team name asc."""
    return (-row.total_points, -row.placement_points, -row.kill_points, row.team_name)


def rank_rows(rows: Iterable[StandingsRow]) -> tuple[StandingsRow, ...]:
    return tuple(sorted(rows, key=standings_sort_key))


def seed_from_roster(roster: Roster, matches_played: int, group_name: str) -> list[StandingsRow]:
    """Zero rows for every roster team so absent teams still appear."""
    rows: list[StandingsRow] = []
    seen: set[str] = set()
    for team in roster.teams:
        if team.name in seen:
            continue
        seen.add(team.name)
        rows.append(
            StandingsRow(
                team_name=team.name,
                matches_played=matches_played,
                group_name=group_name,
                slot_number=team.slot_label,
            )
        )
    return rows


def combine(
    existing_rows: Sequence[StandingsRow],
    merged_results: Sequence[MergedTeamResult],
    matches_played_total: int,
    group_name: str,
) -> StandingsTable:
    """Fold one round of merged results into the running standings.

    Args:
        existing_rows: Rows from the previous aggregation (or roster seed); may be empty
        merged_results: Scored results of the new round
        matches_played_total: Rounds played so far across the series; written to every row
        group_name: Group label written to every row

    Returns:
        A new, ranked StandingsTable. Inputs are not modified.
    """
    rows: dict[str, StandingsRow] = {}

    for row in existing_rows:
        if row.team_name in rows:
            logger.warning(f"Ignoring repeated standings row for team '{row.team_name}'")
            continue
        rows[row.team_name] = replace(
            row.with_provenance(),
            matches_played=matches_played_total,
            group_name=group_name,
        )

    for result in merged_results:
        current = rows.get(result.team_name)
        if current is None:
            rows[result.team_name] = StandingsRow(
                team_name=result.team_name,
                wins=result.win,
                matches_played=matches_played_total,
                placement_points=result.placement_point,
                kill_points=result.finish_point,
                group_name=group_name,
                slot_number=result.slot_number,
                has_new_result=True,
                is_new_team=True,
            )
            continue

        rows[result.team_name] = replace(
            current,
            wins=current.wins + result.win,
            placement_points=current.placement_points + result.placement_point,
            kill_points=current.kill_points + result.finish_point,
            slot_number=current.slot_number or result.slot_number,
            has_new_result=True,
        )

    return StandingsTable(rows=rank_rows(rows.values()))
