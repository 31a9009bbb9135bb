"""One aggregation per match identifier per user namespace."""

import logging
from typing import Optional

from ranger_standings.models.summary import AggregationOutcome
from ranger_standings.repositories.match_result_repository import MatchResultRepository, StoredMatch

logger = logging.getLogger(__name__)


class DuplicateMatchError(ValueError):
    """A result already exists for this match identifier in the namespace."""

    def __init__(self, match_id: str, user_namespace: str):
        self.match_id = match_id
        self.user_namespace = user_namespace
        super().__init__(f'Match with ID "{match_id}" already exists. Please use a different Match ID.')


class MatchNotFoundError(LookupError):
    """A referenced match does not exist in the caller's namespace."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__(f'Match "{match_id}" not found or you do not have access to it')


def normalize_match_id(match_id: Optional[str]) -> str:
    """Trim a caller-supplied match identifier.

    Raises:
        ValueError: If the identifier is empty
    """
    cleaned = (match_id or "").strip()
    if not cleaned:
        raise ValueError("Match ID is required")
    return cleaned


class MatchIdentityGuard:
    """Fail-closed idempotency check layered over the match store.

    `ensure_available` is an early check so a doomed request never pays
    for extraction; `commit` relies on the store's uniqueness constraint,
    which also covers requests racing between the check and the write.
    """

    def __init__(self, repository: MatchResultRepository):
        self.repository = repository

    def ensure_available(self, match_id: str, user_namespace: str) -> None:
        if self.repository.exists(match_id, user_namespace):
            raise DuplicateMatchError(match_id, user_namespace)

    def load_source(self, match_id: str, user_namespace: str) -> StoredMatch:
        stored = self.repository.get_match(match_id, user_namespace)
        if stored is None:
            raise MatchNotFoundError(match_id)
        return stored

    def commit(
        self,
        match_id: str,
        user_namespace: str,
        outcome: AggregationOutcome,
        source_match_id: Optional[str] = None,
    ) -> None:
        status = self.repository.persist_aggregation(
            match_id=match_id,
            user_namespace=user_namespace,
            group_name=outcome.summary.group_name,
            matches_played=outcome.summary.total_matches,
            csv_data=outcome.csv_text,
            summary=outcome.summary.to_dict(),
            source_match_id=source_match_id,
        )
        if status == "duplicate":
            raise DuplicateMatchError(match_id, user_namespace)
