"""Business logic services."""

from ranger_standings.services.ranger_service import RangerService
from ranger_standings.services.standings_service import (
    NothingToAggregateError,
    aggregate_combine,
    aggregate_csv,
    aggregate_roster,
)
from ranger_standings.services.vision_client import (
    StaticExtractionClient,
    VisionExtractionClient,
    get_extraction_client,
)

__all__ = [
    "RangerService",
    "NothingToAggregateError",
    "aggregate_combine",
    "aggregate_csv",
    "aggregate_roster",
    "StaticExtractionClient",
    "VisionExtractionClient",
    "get_extraction_client",
]
