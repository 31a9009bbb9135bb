"""Data models for the standings aggregation engine."""

from ranger_standings.models.roster import (
    InvalidRosterError,
    Player,
    Roster,
    Team,
)
from ranger_standings.models.results import (
    ImageError,
    ImageExtraction,
    MergedTeamResult,
    ParseErr,
    ParseOk,
    ParseResult,
    RawResultRecord,
    RecordRejection,
    UnidentifiedTeam,
)
from ranger_standings.models.standings import StandingsRow, StandingsTable
from ranger_standings.models.summary import (
    AccuracyMetrics,
    AggregationOutcome,
    AggregationSummary,
)

__all__ = [
    "InvalidRosterError",
    "Player",
    "Roster",
    "Team",
    "ImageError",
    "ImageExtraction",
    "MergedTeamResult",
    "ParseErr",
    "ParseOk",
    "ParseResult",
    "RawResultRecord",
    "RecordRejection",
    "UnidentifiedTeam",
    "StandingsRow",
    "StandingsTable",
    "AccuracyMetrics",
    "AggregationOutcome",
    "AggregationSummary",
]
