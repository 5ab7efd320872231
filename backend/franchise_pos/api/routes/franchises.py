"""Franchise and franchisee routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, RequireFranchisor, UserRole
from franchise_pos.core.responses import list_response
from franchise_pos.core.security import get_password_hash
from franchise_pos.core.tenancy import scope_to_franchises
from franchise_pos.db.session import DbSession
from franchise_pos.models.tenant import Franchise, Franchisor
from franchise_pos.models.user import User
from franchise_pos.schemas.tenant import FranchiseCreate, FranchiseResponse
from franchise_pos.services.franchise_health_service import FranchiseHealthService
from franchise_pos.services.location_service import unique_slug

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/franchises")
@limiter.limit("60/minute")
def list_franchises(request: Request, db: DbSession, current_user: CurrentUser):
    """Franchises visible to the caller."""
    query = scope_to_franchises(db.query(Franchise), Franchise.id, db, current_user)
    rows = query.order_by(Franchise.id).all()
    return list_response([FranchiseResponse.model_validate(f).model_dump(mode="json") for f in rows])


@router.post("/franchises", response_model=FranchiseResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_franchise(request: Request, body: FranchiseCreate, db: DbSession, current_user: RequireFranchisor):
    """Create a franchise under the caller's franchisor, optionally with its owner."""
    if current_user.role == UserRole.PROVIDER:
        franchisor_id = body.franchisor_id
        if franchisor_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="franchisor_id is required")
    else:
        franchisor_id = current_user.franchisor_id
        if not franchisor_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No franchisor found for this account")
        if body.franchisor_id is not None and body.franchisor_id != franchisor_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    if not db.query(Franchisor.id).filter(Franchisor.id == franchisor_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Franchisor not found")
    if body.owner and db.query(User).filter(User.email == body.owner.email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    franchise = Franchise(
        franchisor_id=franchisor_id,
        name=body.name,
        slug=unique_slug(db, Franchise, body.name),
    )
    db.add(franchise)
    db.flush()

    if body.owner:
        db.add(User(
            email=body.owner.email,
            password_hash=get_password_hash(body.owner.password),
            name=body.owner.name,
            role=UserRole.FRANCHISEE,
            franchise_id=franchise.id,
        ))
    db.commit()
    db.refresh(franchise)
    logger.info(f"Created franchise {franchise.id} ({franchise.slug}) for franchisor {franchisor_id}")
    return franchise


@router.get("/franchisees")
@limiter.limit("30/minute")
def list_franchisees(request: Request, db: DbSession, current_user: RequireFranchisor):
    """Franchise health scores, best first."""
    franchisor_id = None if current_user.role == UserRole.PROVIDER else current_user.franchisor_id
    if current_user.role != UserRole.PROVIDER and not franchisor_id:
        return list_response([])
    return list_response(FranchiseHealthService(db).list_scores(franchisor_id))
