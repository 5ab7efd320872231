"""Tenant scoping helpers.

Every query over franchise-owned data goes through these helpers so that a
franchisor only ever sees its own franchises, a franchisee only its own
franchise, and store staff only their franchise.
"""

from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from franchise_pos.core.rbac import TokenData, UserRole
from franchise_pos.models.location import Location
from franchise_pos.models.tenant import BusinessConfig, Franchise, Franchisor


def accessible_franchise_ids(db: Session, user: TokenData) -> Optional[List[int]]:
    """Franchise ids visible to the user; ``None`` means unrestricted."""
    if user.role == UserRole.PROVIDER:
        return None
    if user.role == UserRole.FRANCHISOR:
        if not user.franchisor_id:
            return []
        rows = db.query(Franchise.id).filter(Franchise.franchisor_id == user.franchisor_id).all()
        return [r.id for r in rows]
    return [user.franchise_id] if user.franchise_id else []


def scope_to_franchises(query, column, db: Session, user: TokenData):
    """Filter ``query`` so ``column`` (a franchise_id column) is in the user's scope."""
    ids = accessible_franchise_ids(db, user)
    if ids is None:
        return query
    return query.filter(column.in_(ids))


def resolve_franchise_id(db: Session, user: TokenData, requested: Optional[int] = None) -> int:
    """Pick the franchise an operation applies to.

    Uses ``requested`` when given (after an access check), the user's own
    franchise otherwise, and a franchisor's first franchise as a last resort.
    """
    ids = accessible_franchise_ids(db, user)
    if requested is not None:
        if ids is not None and requested not in ids:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this franchise")
        return requested
    if user.franchise_id:
        return user.franchise_id
    if ids:
        return ids[0]
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No franchise found for this account")


def get_accessible_location(db: Session, user: TokenData, location_id: int) -> Location:
    """Load a location, 404 if unknown and 403 if it belongs to another tenant."""
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")

    ids = accessible_franchise_ids(db, user)
    if ids is not None and location.franchise_id not in ids:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    # Store staff are pinned to their own location
    if user.role in (UserRole.MANAGER, UserRole.EMPLOYEE) and user.location_id \
            and user.location_id != location.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return location


def franchisor_id_for_franchise(db: Session, franchise_id: int) -> Optional[int]:
    row = db.query(Franchise.franchisor_id).filter(Franchise.id == franchise_id).first()
    return row.franchisor_id if row else None


def get_or_create_business_config(db: Session, franchisor_id: int) -> BusinessConfig:
    """Return the franchisor's config, creating one with defaults if missing."""
    config = db.query(BusinessConfig).filter(BusinessConfig.franchisor_id == franchisor_id).first()
    if config is None:
        config = BusinessConfig(franchisor_id=franchisor_id)
        db.add(config)
        db.commit()
        db.refresh(config)
    return config


def business_config_for_franchise(db: Session, franchise_id: int) -> Optional[BusinessConfig]:
    franchisor_id = franchisor_id_for_franchise(db, franchise_id)
    if franchisor_id is None:
        return None
    return get_or_create_business_config(db, franchisor_id)


def require_franchisor_access(db: Session, user: TokenData, franchisor_id: int) -> Franchisor:
    """PROVIDER may access any franchisor; a FRANCHISOR only its own."""
    franchisor = db.query(Franchisor).filter(Franchisor.id == franchisor_id).first()
    if not franchisor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Franchisor not found")
    if user.role == UserRole.PROVIDER:
        return franchisor
    if user.role == UserRole.FRANCHISOR and user.franchisor_id == franchisor_id:
        return franchisor
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
