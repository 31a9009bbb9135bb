"""Engine entry points: normalized extraction batch in, standings out.

Everything here is synchronous and pure: inputs are caller-owned and
never modified, and every call returns new values.
"""

import logging
from typing import Optional

from ranger_standings.models.results import ImageError
from ranger_standings.models.roster import Roster
from ranger_standings.models.standings import StandingsTable
from ranger_standings.models.summary import AccuracyMetrics, AggregationOutcome, AggregationSummary
from ranger_standings.services import csv_codec
from ranger_standings.services.result_normalizer import NormalizedBatch
from ranger_standings.services.roster_merger import (
    MergeAccumulator,
    merge_with_roster,
    merge_with_standings,
)
from ranger_standings.services.standings_aggregator import combine, seed_from_roster

logger = logging.getLogger(__name__)


class NothingToAggregateError(ValueError):
    """No usable result record was extracted from any image."""

    def __init__(self, errors: Optional[list[ImageError]] = None):
        self.errors = list(errors or [])
        super().__init__("No valid results could be extracted from the provided images")


def aggregate_roster(
    roster: Roster,
    batch: NormalizedBatch,
    matches_played: int = 1,
    group_name: str = "G1",
) -> AggregationOutcome:
    """First round: bind results to a roster and rank every roster team.

    Raises:
        NothingToAggregateError: If the batch holds no usable records
    """
    _require_records(batch)

    acc = merge_with_roster(roster, batch.records)
    seed = seed_from_roster(roster, matches_played, group_name)
    table = combine(seed, acc.results, matches_played, group_name)

    logger.info(
        f"Aggregated {len(acc.results)} results into {len(table)} teams "
        f"({len(acc.unidentified_teams)} unidentified)"
    )
    return _build_outcome(table, acc, batch, matches_played, group_name, previous_count=0)


def aggregate_combine(
    previous: StandingsTable,
    batch: NormalizedBatch,
    matches_played: int,
    group_name: str = "G2",
) -> AggregationOutcome:
    """Later round: fold results into a previous standings table.

    Raises:
        CsvDecodeError: If the previous table has no rows
        NothingToAggregateError: If the batch holds no usable records
    """
    if len(previous) == 0:
        raise csv_codec.CsvDecodeError("No valid data found in previous CSV")
    _require_records(batch)

    acc = merge_with_standings(previous, batch.records)
    table = combine(list(previous), acc.results, matches_played, group_name)

    logger.info(
        f"Combined {len(acc.results)} results with {len(previous)} previous teams; "
        f"{len(acc.duplicates)} duplicates dropped"
    )
    return _build_outcome(table, acc, batch, matches_played, group_name, previous_count=len(previous))


def aggregate_csv(
    previous_csv: str,
    batch: NormalizedBatch,
    matches_played: int,
    group_name: str = "G2",
) -> AggregationOutcome:
    """Decode a previous standings CSV, then combine."""
    return aggregate_combine(csv_codec.decode(previous_csv), batch, matches_played, group_name)


def _require_records(batch: NormalizedBatch) -> None:
    if not batch.records:
        logger.error(f"Nothing to aggregate: all {batch.total_images} images failed")
        raise NothingToAggregateError(batch.errors)


def _build_outcome(
    table: StandingsTable,
    acc: MergeAccumulator,
    batch: NormalizedBatch,
    matches_played: int,
    group_name: str,
    previous_count: int,
) -> AggregationOutcome:
    leader = table.leader
    summary = AggregationSummary(
        total_matches=matches_played,
        group_name=group_name,
        teams_processed=len(acc.results),
        total_teams=len(table),
        winner=leader.team_name if leader else "",
        winner_points=leader.total_points if leader else 0,
        unidentified_teams=list(acc.unidentified_teams),
        image_processing_errors=list(batch.errors),
        accuracy_metrics=AccuracyMetrics.compute(
            total_images=batch.total_images,
            image_errors=batch.errors,
            merged_count=len(acc.results),
            unidentified_count=len(acc.unidentified_teams),
        ),
        duplicates_dropped=len(acc.duplicates),
        previous_teams_count=previous_count,
        teams_with_new_results=sum(1 for row in table if row.has_new_result),
        new_teams_added=sum(1 for row in table if row.is_new_team),
    )
    return AggregationOutcome(
        table=table,
        csv_text=csv_codec.encode(table),
        summary=summary,
        merged_results=list(acc.results),
    )
