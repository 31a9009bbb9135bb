"""Aggregation summary models returned alongside the standings CSV."""

from dataclasses import dataclass, field
from typing import Optional

from ranger_standings.models.results import ImageError, MergedTeamResult, UnidentifiedTeam
from ranger_standings.models.standings import StandingsTable


@dataclass(frozen=True)
class AccuracyMetrics:
    """How much of the submitted screenshot batch was usable."""

    images_processed: int
    total_images: int
    team_match_rate: str  # "87.5%" or "N/A"

    @classmethod
    def compute(
        cls,
        total_images: int,
        image_errors: list[ImageError],
        merged_count: int,
        unidentified_count: int,
    ) -> "AccuracyMetrics":
        failed_images = {e.image_index for e in image_errors if e.record_index is None}
        if merged_count > 0:
            rate = (merged_count - unidentified_count) / merged_count * 100
            match_rate = f"{rate:.1f}%"
        else:
            match_rate = "N/A"
        return cls(
            images_processed=total_images - len(failed_images),
            total_images=total_images,
            team_match_rate=match_rate,
        )

    def to_dict(self) -> dict:
        return {
            "imagesProcessed": self.images_processed,
            "totalImages": self.total_images,
            "teamMatchRate": self.team_match_rate,
        }


@dataclass(frozen=True)
class AggregationSummary:
    """Structured summary of one aggregation run."""

    total_matches: int
    group_name: str
    teams_processed: int
    total_teams: int
    winner: str
    winner_points: int
    unidentified_teams: list[UnidentifiedTeam] = field(default_factory=list)
    image_processing_errors: list[ImageError] = field(default_factory=list)
    accuracy_metrics: Optional[AccuracyMetrics] = None
    duplicates_dropped: int = 0
    # Combine-mode breakdown
    previous_teams_count: int = 0
    teams_with_new_results: int = 0
    new_teams_added: int = 0

    def to_dict(self) -> dict:
        return {
            "totalMatches": self.total_matches,
            "groupName": self.group_name,
            "teamsProcessed": self.teams_processed,
            "totalTeams": self.total_teams,
            "winner": self.winner,
            "winnerPoints": self.winner_points,
            "unidentifiedTeams": [t.to_dict() for t in self.unidentified_teams],
            "imageProcessingErrors": [e.to_dict() for e in self.image_processing_errors],
            "accuracyMetrics": self.accuracy_metrics.to_dict() if self.accuracy_metrics else None,
            "duplicatesDropped": self.duplicates_dropped,
            "previousTeamsCount": self.previous_teams_count,
            "newResultsCount": self.teams_processed,
            "teamsWithNewResults": self.teams_with_new_results,
            "newTeamsAdded": self.new_teams_added,
        }


@dataclass(frozen=True)
class AggregationOutcome:
    """Everything one aggregation produces: table, canonical CSV and summary."""

    table: StandingsTable
    csv_text: str
    summary: AggregationSummary
    merged_results: list[MergedTeamResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "csvData": self.csv_text,
            "processedResults": self.table.to_list(),
            "mergedResults": [r.to_dict() for r in self.merged_results],
            "summary": self.summary.to_dict(),
            "unidentifiedTeams": [t.to_dict() for t in self.summary.unidentified_teams],
            "imageProcessingErrors": [e.to_dict() for e in self.summary.image_processing_errors],
        }
