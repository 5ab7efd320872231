"""Loyalty routes: points by phone, master accounts and the owner portal."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, RequireFranchisor
from franchise_pos.core.responses import list_response
from franchise_pos.core.tenancy import resolve_franchise_id
from franchise_pos.db.session import DbSession
from franchise_pos.schemas.loyalty import (
    LoyaltyMemberResponse,
    LoyaltyProgramResponse,
    LoyaltyProgramUpdate,
    MasterAccountCreate,
    MasterAccountResponse,
    OwnerLoyaltyAction,
    PointsRequest,
    PointsTransactionResponse,
)
from franchise_pos.services.loyalty_service import LoyaltyError, LoyaltyService, MemberNotFound

logger = logging.getLogger(__name__)

router = APIRouter()
owner_router = APIRouter()


def _loyalty_error(e: LoyaltyError) -> HTTPException:
    detail = {"message": str(e), **e.extra} if e.extra else str(e)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@router.post("/points")
@limiter.limit("60/minute")
def record_points(request: Request, body: PointsRequest, db: DbSession, current_user: CurrentUser):
    """Earn, redeem or adjust points; pooled when the phone has a master account."""
    franchise_id = current_user.franchise_id
    if body.franchise_id is not None:
        franchise_id = resolve_franchise_id(db, current_user, body.franchise_id)
    try:
        return LoyaltyService(db).record_points(
            phone=body.phone,
            point_type=body.type,
            points=body.points,
            description=body.description,
            transaction_id=body.transaction_id,
            franchise_id=franchise_id,
        )
    except MemberNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except LoyaltyError as e:
        raise _loyalty_error(e)


@router.get("/points")
@limiter.limit("60/minute")
def points_history(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    phone: str = Query(...),
    limit: int = Query(20, ge=1, le=100),
):
    """Balance and recent points history for a phone, newest first."""
    try:
        result = LoyaltyService(db).history(phone, limit)
    except LoyaltyError as e:
        raise _loyalty_error(e)
    return {
        "type": result["type"],
        "balance": result["balance"],
        "history": [PointsTransactionResponse.model_validate(p).model_dump(mode="json") for p in result["history"]],
    }


@router.post("/master-accounts", response_model=MasterAccountResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_master_account(request: Request, body: MasterAccountCreate, db: DbSession, current_user: CurrentUser):
    """Pool every membership of a phone number into one account."""
    try:
        return LoyaltyService(db).create_master_account(body.phone, body.name)
    except LoyaltyError as e:
        raise _loyalty_error(e)


# ==================== Owner portal ====================

@owner_router.get("/")
@limiter.limit("60/minute")
def owner_loyalty(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    type: Literal["search", "stats", "top-members"] = "stats",
    phone: Optional[str] = None,
    franchise_id: Optional[int] = None,
):
    """Member search, program stats or the top members by spend."""
    franchise_id = resolve_franchise_id(db, current_user, franchise_id)
    service = LoyaltyService(db)

    if type == "search":
        if not phone:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone required")
        members = service.search_members(phone, franchise_id)
        return list_response([LoyaltyMemberResponse.model_validate(m).model_dump(mode="json") for m in members])

    program = service.get_or_create_program(franchise_id)
    if type == "top-members":
        members = service.top_members(program)
        return list_response([LoyaltyMemberResponse.model_validate(m).model_dump(mode="json") for m in members])

    return {
        "program": LoyaltyProgramResponse.model_validate(program).model_dump(mode="json"),
        "stats": service.stats(program),
    }


@owner_router.post("/")
@limiter.limit("60/minute")
def owner_loyalty_action(request: Request, body: OwnerLoyaltyAction, db: DbSession, current_user: CurrentUser):
    """Enroll a customer, or earn/redeem points against a purchase."""
    franchise_id = resolve_franchise_id(db, current_user, body.franchise_id)
    service = LoyaltyService(db)
    program = service.get_or_create_program(franchise_id)
    try:
        if body.action == "enroll":
            member, created = service.enroll(program, body.phone, body.name, body.email)
            return {
                "success": True,
                "created": created,
                "member": LoyaltyMemberResponse.model_validate(member).model_dump(mode="json"),
            }
        if body.action == "earn":
            if body.amount is None:
                raise LoyaltyError("Phone and amount required")
            return service.earn_for_purchase(program, body.phone, body.amount, body.transaction_id)
        return service.redeem_for_discount(program, body.phone, body.points or 0, body.transaction_id)
    except MemberNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except LoyaltyError as e:
        raise _loyalty_error(e)


@owner_router.put("/program", response_model=LoyaltyProgramResponse)
@limiter.limit("30/minute")
def update_program(request: Request, body: LoyaltyProgramUpdate, db: DbSession, current_user: RequireFranchisor):
    """Change the program name, earn rate or redemption value."""
    franchise_id = resolve_franchise_id(db, current_user, body.franchise_id)
    program = LoyaltyService(db).update_program(
        franchise_id, **body.model_dump(exclude_unset=True, exclude={"franchise_id"})
    )
    logger.info(f"Loyalty program of franchise {franchise_id} updated by {current_user.email}")
    return program
