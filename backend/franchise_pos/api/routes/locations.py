"""Location routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy import or_

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, RequireFranchisee, RequireManager, UserRole
from franchise_pos.core.responses import cursor_response
from franchise_pos.core.tenancy import (
    accessible_franchise_ids,
    franchisor_id_for_franchise,
    get_accessible_location,
)
from franchise_pos.db.session import DbSession
from franchise_pos.models.location import Location
from franchise_pos.models.tenant import Franchise, Franchisor
from franchise_pos.schemas.location import LocationCreate, LocationResponse, LocationUpdate
from franchise_pos.services.location_service import (
    RANGE_PRESETS,
    Location360Service,
    LocationLimitReached,
    check_location_limit,
    create_location as create_location_record,
    ensure_default_store,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _resolve_franchise(db, current_user, requested: Optional[int]) -> Franchise:
    if current_user.role == UserRole.PROVIDER:
        if requested is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please select a franchise")
        franchise = db.query(Franchise).filter(Franchise.id == requested).first()
        if franchise is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Franchise not found")
        return franchise

    if current_user.role == UserRole.FRANCHISOR:
        franchises = db.query(Franchise).filter(
            Franchise.franchisor_id == current_user.franchisor_id
        ).order_by(Franchise.id).all()
        if requested is not None:
            match = next((f for f in franchises if f.id == requested), None)
            if match is None:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Franchise does not belong to your organization",
                )
            return match
        if len(franchises) == 1:
            return franchises[0]
        if not franchises:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No franchise found. Please create a franchise first.",
            )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please select a franchise")

    # Franchisee: always their own franchise
    if requested is not None and requested != current_user.franchise_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this franchise")
    franchise = db.query(Franchise).filter(Franchise.id == current_user.franchise_id).first()
    if franchise is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No franchise found for this account")
    return franchise


@router.get("/")
@limiter.limit("60/minute")
def list_locations(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    search: Optional[str] = None,
    cursor: Optional[int] = None,
    limit: int = Query(50, ge=1, le=200),
):
    """Locations of the caller's franchisor (or all, for the provider)."""
    if current_user.role not in (UserRole.PROVIDER, UserRole.FRANCHISOR):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    if current_user.role == UserRole.FRANCHISOR and current_user.franchisor_id:
        franchisor = db.query(Franchisor).filter(Franchisor.id == current_user.franchisor_id).first()
        if franchisor is not None:
            ensure_default_store(db, franchisor)

    query = db.query(Location)
    ids = accessible_franchise_ids(db, current_user)
    if ids is not None:
        query = query.filter(Location.franchise_id.in_(ids))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Location.name.ilike(pattern), Location.address.ilike(pattern)))
    total = query.count()
    if cursor is not None:
        query = query.filter(Location.id > cursor)
    rows = query.order_by(Location.id).limit(limit).all()

    items = [LocationResponse.model_validate(loc).model_dump(mode="json") for loc in rows]
    return cursor_response(items, total, limit, lambda item: item["id"])


@router.post("/", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_location(request: Request, body: LocationCreate, db: DbSession, current_user: RequireFranchisee):
    """Create a location, within the franchisor's plan limit."""
    if not body.name.strip() or not body.address.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name and address are required")

    franchise = _resolve_franchise(db, current_user, body.franchise_id)
    franchisor_id = franchisor_id_for_franchise(db, franchise.id)
    try:
        check_location_limit(db, franchisor_id)
    except LocationLimitReached as e:
        logger.info(f"Location limit reached for franchisor {franchisor_id}: {e.current}/{e.limit}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "LIMIT_REACHED",
                "message": str(e),
                "current": e.current,
                "limit": e.limit,
                "subscription_tier": e.tier,
            },
        )

    return create_location_record(
        db,
        franchise.id,
        body.name.strip(),
        body.address.strip(),
        city=body.city,
        state=body.state,
        zip_code=body.zip_code,
        phone=body.phone,
        timezone=body.timezone,
    )


@router.get("/{location_id}", response_model=LocationResponse)
@limiter.limit("60/minute")
def get_location(request: Request, location_id: int, db: DbSession, current_user: CurrentUser):
    """Get a specific location."""
    return get_accessible_location(db, current_user, location_id)


@router.patch("/{location_id}", response_model=LocationResponse)
@limiter.limit("30/minute")
def update_location(
    request: Request,
    location_id: int,
    body: LocationUpdate,
    db: DbSession,
    current_user: RequireManager,
):
    """Update location details."""
    location = get_accessible_location(db, current_user, location_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(location, field, value)
    db.commit()
    db.refresh(location)
    return location


@router.get("/{location_id}/360")
@limiter.limit("30/minute")
def location_360(
    request: Request,
    location_id: int,
    db: DbSession,
    current_user: CurrentUser,
    range: str = Query("TODAY"),
):
    """Everything about one location on a single screen."""
    preset = range.upper()
    if preset not in RANGE_PRESETS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="range must be TODAY, WEEK or MONTH")
    location = get_accessible_location(db, current_user, location_id)
    return Location360Service(db).build(location, preset)
