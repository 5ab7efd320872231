"""Lottery sales and payouts."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser
from franchise_pos.core.tenancy import get_accessible_location
from franchise_pos.db.base import utcnow
from franchise_pos.db.session import DbSession
from franchise_pos.schemas.transaction import LotteryCreate, LotteryResponse
from franchise_pos.services.shift_service import LotteryService

router = APIRouter()


def _location_for(db, current_user, location_id: Optional[int]):
    location_id = location_id or current_user.location_id
    if location_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="location_id is required")
    return get_accessible_location(db, current_user, location_id)


@router.post("/", response_model=LotteryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
def record_lottery(request: Request, body: LotteryCreate, db: DbSession, current_user: CurrentUser):
    location = _location_for(db, current_user, body.location_id)
    try:
        return LotteryService(db).record(
            franchise_id=location.franchise_id,
            location_id=location.id,
            employee_id=current_user.user_id,
            type_=body.type,
            amount=body.amount,
            ticket_number=body.ticket_number,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/")
@limiter.limit("60/minute")
def lottery_for_day(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    location_id: Optional[int] = None,
    date: Optional[date] = None,
):
    """Lottery movements of one day with sales, payouts and net."""
    location = _location_for(db, current_user, location_id)
    day = date or utcnow().date()
    result = LotteryService(db).for_day(location.id, day)
    return {
        "date": day.isoformat(),
        "location_id": location.id,
        "items": [LotteryResponse.model_validate(e).model_dump(mode="json") for e in result["entries"]],
        "sales": float(result["sales"]),
        "payouts": float(result["payouts"]),
        "net": float(result["net"]),
    }
