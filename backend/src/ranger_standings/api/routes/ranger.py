"""REST endpoints for slotlists, match results and combined standings."""

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ranger_standings.models.roster import Roster
from ranger_standings.models.summary import AggregationOutcome
from ranger_standings.services.fee_gate import InsufficientFundsError
from ranger_standings.services.identity_guard import DuplicateMatchError, MatchNotFoundError
from ranger_standings.services.ranger_service import RangerService
from ranger_standings.services.roster_builder import encode_roster_csv
from ranger_standings.services.standings_service import NothingToAggregateError

router = APIRouter(prefix="/api/ranger", tags=["ranger"])


class SlotlistRequest(BaseModel):
    """Slotlist image plus player screenshots, all as image URLs."""

    slotlist_image: str | None = None
    player_images: list[str] = Field(default_factory=list)


class MatchResultsRequest(BaseModel):
    """First-round aggregation against a roster."""

    match_id: str
    roster: Any
    images: list[str]
    matches_played: int = Field(default=1, ge=1)
    group_name: str | None = None


class CombineResultsRequest(BaseModel):
    """Later-round aggregation folded into previous standings."""

    match_id: str
    images: list[str]
    matches_played: int = Field(ge=1)
    group_name: str | None = None
    previous_csv: str | None = None
    source_match_id: str | None = None


class MatchInfo(BaseModel):
    match_id: str
    group_name: str
    matches_played: int
    source_match_id: str | None
    created_at: str
    winner: str | None
    total_teams: int


class MatchListResponse(BaseModel):
    matches: list[MatchInfo]


def _get_service(request: Request) -> RangerService:
    """Get or create the ranger service from app state."""
    state = request.app.state
    if not hasattr(state, "ranger_service"):
        state.ranger_service = RangerService(
            repository=state.repository,
            extraction_client=state.extraction_client,
            fee_gate=state.wallet,
            aggregation_fee=state.settings.aggregation_fee,
            max_attempts=state.settings.extraction_max_attempts,
        )
    return state.ranger_service


def _require_namespace(namespace: Optional[str]) -> str:
    if not namespace or not namespace.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return namespace.strip()


def _aggregation_error(e: Exception) -> HTTPException:
    """Map engine errors to HTTP errors."""
    if isinstance(e, DuplicateMatchError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, MatchNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InsufficientFundsError):
        return HTTPException(
            status_code=402,
            detail={"message": str(e), "required": e.required, "currentBalance": e.current},
        )
    if isinstance(e, NothingToAggregateError):
        return HTTPException(
            status_code=400,
            detail={"message": str(e), "imageProcessingErrors": [err.to_dict() for err in e.errors]},
        )
    return HTTPException(status_code=400, detail=str(e))


def _outcome_response(match_id: str, outcome: AggregationOutcome) -> dict:
    return {"success": True, "matchId": match_id.strip(), **outcome.to_dict()}


@router.post("/slotlist")
async def process_slotlist(request: Request, body: SlotlistRequest):
    """Build a roster from a slotlist image and player screenshots."""
    service = _get_service(request)
    try:
        build = await service.build_slotlist(body.slotlist_image, body.player_images)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "csvData": encode_roster_csv(build.roster),
        "roster": build.roster.to_dict(),
        "statistics": build.statistics(),
        "unmatchedPlayers": build.unmatched_players,
    }


@router.post("/match-results")
async def process_match_results(
    request: Request,
    body: MatchResultsRequest,
    x_user_namespace: Annotated[str | None, Header()] = None,
):
    """Score a first round of result screenshots against a roster."""
    namespace = _require_namespace(x_user_namespace)
    service = _get_service(request)
    settings = request.app.state.settings

    try:
        roster = Roster.from_json(body.roster)
        outcome = await service.process_match_results(
            match_id=body.match_id,
            user_namespace=namespace,
            roster=roster,
            image_refs=body.images,
            matches_played=body.matches_played,
            group_name=body.group_name or settings.default_group_name,
        )
    except (ValueError, LookupError) as e:
        raise _aggregation_error(e)

    return _outcome_response(body.match_id, outcome)


@router.post("/combine-results")
async def combine_results(
    request: Request,
    body: CombineResultsRequest,
    x_user_namespace: Annotated[str | None, Header()] = None,
):
    """Fold a new round of result screenshots into previous standings."""
    namespace = _require_namespace(x_user_namespace)
    service = _get_service(request)
    settings = request.app.state.settings

    try:
        outcome = await service.combine_results(
            match_id=body.match_id,
            user_namespace=namespace,
            image_refs=body.images,
            matches_played=body.matches_played,
            group_name=body.group_name or settings.default_combine_group_name,
            previous_csv=body.previous_csv,
            source_match_id=body.source_match_id,
        )
    except (ValueError, LookupError) as e:
        raise _aggregation_error(e)

    return _outcome_response(body.match_id, outcome)


@router.get("/matches", response_model=MatchListResponse)
def list_matches(
    request: Request,
    x_user_namespace: Annotated[str | None, Header()] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """List stored aggregations for the caller, newest first."""
    namespace = _require_namespace(x_user_namespace)
    repo = request.app.state.repository
    return MatchListResponse(matches=[MatchInfo(**m) for m in repo.list_matches(namespace, limit=limit)])


@router.get("/matches/{match_id}/csv")
def download_match_csv(
    request: Request,
    match_id: str,
    x_user_namespace: Annotated[str | None, Header()] = None,
):
    """Download the canonical standings CSV of a stored match."""
    namespace = _require_namespace(x_user_namespace)
    repo = request.app.state.repository
    stored = repo.get_match(match_id, namespace)
    if stored is None:
        raise HTTPException(404, f"Match not found: {match_id}")

    return Response(
        content=stored.csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{stored.match_id}.csv"'},
    )
