"""Inventory transfer routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, RequireManager, TokenData
from franchise_pos.core.tenancy import accessible_franchise_ids, get_accessible_location
from franchise_pos.db.session import DbSession
from franchise_pos.models.inventory import InventoryTransfer, TransferStatus
from franchise_pos.models.location import Location
from franchise_pos.schemas.inventory import (
    TransferCancelRequest,
    TransferCreate,
    TransferReceiveRequest,
    TransferResponse,
)
from franchise_pos.services.transfer_service import TransferLine, TransferNotFound, TransferService

router = APIRouter()


def _get_transfer(service: TransferService, db, current_user: TokenData, transfer_id: int) -> InventoryTransfer:
    try:
        transfer = service.get(transfer_id)
    except TransferNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    ids = accessible_franchise_ids(db, current_user)
    if ids is not None and transfer.franchise_id not in ids:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transfer not found")
    return transfer


def _run(action, *args, **kwargs):
    try:
        return action(*args, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/")
@limiter.limit("60/minute")
def list_transfers(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    status_filter: Optional[TransferStatus] = Query(None, alias="status"),
    location_id: Optional[int] = None,
    limit: int = Query(50, ge=1, le=200),
):
    """Transfers with counts grouped by status."""
    result = TransferService(db).list_transfers(
        accessible_franchise_ids(db, current_user),
        status=status_filter.value if status_filter else None,
        location_id=location_id,
        limit=limit,
    )
    return {
        "transfers": [TransferResponse.model_validate(t).model_dump(mode="json") for t in result["transfers"]],
        "counts": result["counts"],
    }


@router.post("/", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_transfer(request: Request, body: TransferCreate, db: DbSession, current_user: RequireManager):
    from_location = get_accessible_location(db, current_user, body.from_location_id)
    to_location = db.query(Location).filter(Location.id == body.to_location_id).first()
    if to_location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    lines = [TransferLine(item_id=line.item_id, quantity=line.quantity) for line in body.items]
    return _run(
        TransferService(db).create,
        from_location,
        to_location,
        lines,
        requested_by_id=current_user.user_id,
        reason=body.reason,
    )


@router.get("/{transfer_id}", response_model=TransferResponse)
@limiter.limit("60/minute")
def get_transfer(request: Request, transfer_id: int, db: DbSession, current_user: CurrentUser):
    return _get_transfer(TransferService(db), db, current_user, transfer_id)


@router.post("/{transfer_id}/approve", response_model=TransferResponse)
@limiter.limit("30/minute")
def approve_transfer(request: Request, transfer_id: int, db: DbSession, current_user: RequireManager):
    service = TransferService(db)
    transfer = _get_transfer(service, db, current_user, transfer_id)
    return _run(service.approve, transfer, current_user.user_id)


@router.post("/{transfer_id}/ship", response_model=TransferResponse)
@limiter.limit("30/minute")
def ship_transfer(request: Request, transfer_id: int, db: DbSession, current_user: RequireManager):
    service = TransferService(db)
    transfer = _get_transfer(service, db, current_user, transfer_id)
    return _run(service.ship, transfer, current_user.user_id)


@router.post("/{transfer_id}/receive", response_model=TransferResponse)
@limiter.limit("30/minute")
def receive_transfer(
    request: Request,
    transfer_id: int,
    db: DbSession,
    current_user: RequireManager,
    body: Optional[TransferReceiveRequest] = None,
):
    service = TransferService(db)
    transfer = _get_transfer(service, db, current_user, transfer_id)
    body = body or TransferReceiveRequest()
    return _run(service.receive, transfer, current_user.user_id, body.received, body.notes)


@router.post("/{transfer_id}/cancel", response_model=TransferResponse)
@limiter.limit("30/minute")
def cancel_transfer(
    request: Request,
    transfer_id: int,
    db: DbSession,
    current_user: RequireManager,
    body: Optional[TransferCancelRequest] = None,
):
    service = TransferService(db)
    transfer = _get_transfer(service, db, current_user, transfer_id)
    return _run(service.cancel, transfer, body.notes if body else None)
