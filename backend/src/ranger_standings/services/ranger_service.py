"""Request-level orchestration around the pure standings engine.

Order matters: every check that can reject a request for free (empty
match id, duplicate match id, unreadable previous CSV) runs before the
fee is charged, and the fee is charged before any extraction call.
"""

import logging
from typing import Optional, Sequence

from ranger_standings.models.roster import Roster
from ranger_standings.models.summary import AggregationOutcome
from ranger_standings.repositories.match_result_repository import MatchResultRepository
from ranger_standings.services import csv_codec
from ranger_standings.services.fee_gate import FeeGate, charge_or_raise
from ranger_standings.services.identity_guard import MatchIdentityGuard, normalize_match_id
from ranger_standings.services.result_normalizer import NormalizedBatch, normalize_extractions
from ranger_standings.services.roster_builder import RosterBuild, extract_teams_and_players
from ranger_standings.services.standings_service import aggregate_combine, aggregate_roster
from ranger_standings.services.vision_client import ExtractionClient, gather_result_extractions

logger = logging.getLogger(__name__)


class RangerService:
    """Runs slotlist, match-result and combine requests for one user namespace."""

    def __init__(
        self,
        repository: MatchResultRepository,
        extraction_client: ExtractionClient,
        fee_gate: FeeGate,
        aggregation_fee: int = 3,
        max_attempts: int = 2,
    ):
        self.repository = repository
        self.guard = MatchIdentityGuard(repository)
        self.extraction_client = extraction_client
        self.fee_gate = fee_gate
        self.aggregation_fee = aggregation_fee
        self.max_attempts = max_attempts

    async def build_slotlist(self, slotlist_ref: Optional[str], player_refs: Sequence[str]) -> RosterBuild:
        """Roster from a slotlist image plus player screenshots."""
        if not slotlist_ref and not player_refs:
            raise ValueError("At least one slotlist or player image is required")
        return await extract_teams_and_players(self.extraction_client, slotlist_ref, player_refs)

    async def process_match_results(
        self,
        match_id: str,
        user_namespace: str,
        roster: Roster,
        image_refs: Sequence[str],
        matches_played: int = 1,
        group_name: str = "G1",
    ) -> AggregationOutcome:
        """First round against a roster.

        Raises:
            ValueError: Missing match id or images
            DuplicateMatchError: Match id already used in the namespace
            InsufficientFundsError: Fee refused
            NothingToAggregateError: No usable records in any image
        """
        match_id = normalize_match_id(match_id)
        _require_images(image_refs)
        self.guard.ensure_available(match_id, user_namespace)

        charge_or_raise(self.fee_gate, user_namespace, self.aggregation_fee)
        batch = await self._extract(image_refs)

        outcome = aggregate_roster(roster, batch, matches_played=matches_played, group_name=group_name)
        self.guard.commit(match_id, user_namespace, outcome)
        return outcome

    async def combine_results(
        self,
        match_id: str,
        user_namespace: str,
        image_refs: Sequence[str],
        matches_played: int,
        group_name: str = "G2",
        previous_csv: Optional[str] = None,
        source_match_id: Optional[str] = None,
    ) -> AggregationOutcome:
        """Later round folded into previous standings.

        The previous standings come from `previous_csv`, or from the stored
        match `source_match_id` in the same namespace.

        Raises:
            ValueError: Missing match id, images or previous standings
            DuplicateMatchError: Match id already used in the namespace
            MatchNotFoundError: `source_match_id` not stored in the namespace
            CsvDecodeError: Previous CSV unreadable or empty
            InsufficientFundsError: Fee refused
            NothingToAggregateError: No usable records in any image
        """
        match_id = normalize_match_id(match_id)
        _require_images(image_refs)
        self.guard.ensure_available(match_id, user_namespace)

        if previous_csv is None and source_match_id:
            source_match_id = normalize_match_id(source_match_id)
            previous_csv = self.guard.load_source(source_match_id, user_namespace).csv_data
        if previous_csv is None:
            raise ValueError("Previous CSV data or a source match id is required")

        previous = csv_codec.decode(previous_csv)
        if len(previous) == 0:
            raise csv_codec.CsvDecodeError("No valid data found in previous CSV")
        logger.info(f"Loaded {len(previous)} teams from previous standings")

        charge_or_raise(self.fee_gate, user_namespace, self.aggregation_fee)
        batch = await self._extract(image_refs)

        outcome = aggregate_combine(previous, batch, matches_played=matches_played, group_name=group_name)
        self.guard.commit(match_id, user_namespace, outcome, source_match_id=source_match_id)
        return outcome

    async def _extract(self, image_refs: Sequence[str]) -> NormalizedBatch:
        extractions = await gather_result_extractions(
            self.extraction_client, image_refs, max_attempts=self.max_attempts
        )
        batch = normalize_extractions(extractions)
        logger.info(
            f"Extracted {len(batch.records)} records from {batch.total_images} images "
            f"({len(batch.failed_images)} failed)"
        )
        return batch


def _require_images(image_refs: Sequence[str]) -> None:
    if not image_refs:
        raise ValueError("At least one match result image is required")
