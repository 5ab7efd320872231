"""Terminal routes: bootstrap, checkout and the cash drawer shift."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser
from franchise_pos.core.station_auth import StationAuth
from franchise_pos.core.tenancy import accessible_franchise_ids, business_config_for_franchise
from franchise_pos.db.session import DbSession
from franchise_pos.models.location import Location, Station
from franchise_pos.models.tenant import Franchise
from franchise_pos.schemas.location import LocationResponse, StationResponse
from franchise_pos.schemas.tenant import BusinessConfigResponse, FranchiseResponse
from franchise_pos.schemas.transaction import (
    CheckoutRequest,
    ShiftActionRequest,
    ShiftResponse,
    TransactionDetailResponse,
)
from franchise_pos.services.checkout_service import CheckoutLine, CheckoutService
from franchise_pos.services.shift_service import ShiftNotFound, ShiftService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/bootstrap")
@limiter.limit("60/minute")
def bootstrap(request: Request, db: DbSession, station: StationAuth):
    """Everything a paired terminal needs to start selling."""
    station_row = db.query(Station).filter(Station.id == station.station_id).first()
    location = db.query(Location).filter(Location.id == station.location_id).first()
    franchise = db.query(Franchise).filter(Franchise.id == station.franchise_id).first()
    if location is None or franchise is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")

    config = business_config_for_franchise(db, franchise.id)
    return {
        "station": StationResponse.model_validate(station_row).model_dump(mode="json"),
        "location": LocationResponse.model_validate(location).model_dump(mode="json"),
        "franchise": FranchiseResponse.model_validate(franchise).model_dump(mode="json"),
        "business_config": (
            BusinessConfigResponse.model_validate(config).model_dump(mode="json") if config else None
        ),
    }


@router.post("/transactions", response_model=TransactionDetailResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("120/minute")
def create_transaction(
    request: Request,
    body: CheckoutRequest,
    db: DbSession,
    station: StationAuth,
    current_user: CurrentUser,
):
    """Ring up a sale. Location and franchise come from the station token."""
    ids = accessible_franchise_ids(db, current_user)
    if ids is not None and station.franchise_id not in ids:
        logger.warning(
            f"User {current_user.user_id} tried to sell on station {station.station_id} of another franchise"
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this terminal")

    lines = [
        CheckoutLine(
            type=line.type.value,
            item_id=line.item_id,
            description=line.description,
            price=line.price,
            quantity=line.quantity,
            discount=line.discount,
            staff_id=line.staff_id,
        )
        for line in body.items
    ]
    try:
        return CheckoutService(db).checkout(
            franchise_id=station.franchise_id,
            location_id=station.location_id,
            employee_id=current_user.user_id,
            lines=lines,
            payment_method=body.payment_method,
            tip=body.tip,
            client_id=body.client_id,
            station_id=station.station_id,
            gift_card_code=body.gift_card_code,
            notes=body.notes,
        )
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/shift")
@limiter.limit("60/minute")
def get_shift(request: Request, db: DbSession, current_user: CurrentUser):
    """The caller's open shift with cash sales and expected drawer cash."""
    result = ShiftService(db).current(
        current_user.user_id, current_user.location_id, current_user.franchise_id
    )
    current = result["current"]
    if current is not None:
        current = {
            "shift": ShiftResponse.model_validate(current["shift"]).model_dump(mode="json"),
            "cash_sales": float(current["cash_sales"]),
            "expected_cash": float(current["expected_cash"]),
        }
    return {"current": current, "shift_requirement": result["shift_requirement"]}


@router.post("/shift", response_model=ShiftResponse)
@limiter.limit("30/minute")
def shift_action(request: Request, body: ShiftActionRequest, db: DbSession, current_user: CurrentUser):
    """Open, close or record a cash drop on the caller's shift."""
    service = ShiftService(db)
    try:
        if body.action == "OPEN":
            return service.open(
                current_user.user_id,
                current_user.location_id,
                current_user.franchise_id,
                body.amount,
                body.notes,
            )
        if body.action == "CLOSE":
            return service.close(current_user.user_id, current_user.location_id, body.amount, body.notes)
        return service.drop(current_user.user_id, current_user.location_id, body.amount)
    except ShiftNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
