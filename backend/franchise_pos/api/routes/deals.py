"""Weekly deal suggestion routes."""

from fastapi import APIRouter, HTTPException, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, RequireManager
from franchise_pos.core.responses import list_response
from franchise_pos.core.tenancy import get_accessible_location
from franchise_pos.db.session import DbSession
from franchise_pos.schemas.deal import DealRegenerateRequest, DealStatusUpdate, DealSuggestionResponse
from franchise_pos.services.deal_suggestion_service import DealNotFound, DealSuggestionService

router = APIRouter()


def _as_list(suggestions) -> dict:
    return list_response([DealSuggestionResponse.model_validate(s).model_dump(mode="json") for s in suggestions])


@router.get("/suggestions")
@limiter.limit("30/minute")
def get_suggestions(request: Request, location_id: int, db: DbSession, current_user: CurrentUser):
    """This week's suggestions, generated on first request."""
    get_accessible_location(db, current_user, location_id)
    return _as_list(DealSuggestionService(db).current_week(location_id))


@router.post("/suggestions")
@limiter.limit("10/minute")
def regenerate_suggestions(
    request: Request,
    body: DealRegenerateRequest,
    db: DbSession,
    current_user: RequireManager,
):
    """Drop this week's pending suggestions and generate fresh ones."""
    get_accessible_location(db, current_user, body.location_id)
    return _as_list(DealSuggestionService(db).regenerate(body.location_id))


@router.patch("/suggestions/{suggestion_id}", response_model=DealSuggestionResponse)
@limiter.limit("30/minute")
def update_suggestion(
    request: Request,
    suggestion_id: int,
    body: DealStatusUpdate,
    db: DbSession,
    current_user: RequireManager,
):
    """Accept or dismiss a suggestion."""
    service = DealSuggestionService(db)
    try:
        suggestion = service.get(suggestion_id)
    except DealNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    get_accessible_location(db, current_user, suggestion.location_id)
    try:
        return service.set_status(suggestion, body.status)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
