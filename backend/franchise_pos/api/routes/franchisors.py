"""Franchisor and business configuration routes."""

import logging

from fastapi import APIRouter, HTTPException, Query, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import RequireFranchisor, RequireProvider, UserRole
from franchise_pos.core.responses import paginated_response
from franchise_pos.core.security import get_password_hash
from franchise_pos.core.tenancy import get_or_create_business_config, require_franchisor_access
from franchise_pos.db.session import DbSession
from franchise_pos.models.tenant import BusinessConfig, Franchisor
from franchise_pos.models.user import User
from franchise_pos.schemas.tenant import (
    PLAN_FIELDS,
    BusinessConfigResponse,
    BusinessConfigUpdate,
    FranchisorCreate,
    FranchisorResponse,
)
from franchise_pos.services.audit_service import log_entity_change

logger = logging.getLogger(__name__)

router = APIRouter()
config_router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_franchisors(
    request: Request,
    db: DbSession,
    current_user: RequireProvider,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """List all franchisors (provider only)."""
    query = db.query(Franchisor)
    total = query.count()
    rows = query.order_by(Franchisor.id).offset(skip).limit(limit).all()
    items = [FranchisorResponse.model_validate(f).model_dump(mode="json") for f in rows]
    return paginated_response(items, total, skip, limit)


@router.post("/", response_model=FranchisorResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_franchisor(request: Request, body: FranchisorCreate, db: DbSession, current_user: RequireProvider):
    """Create a franchisor together with its owner login and default config."""
    if db.query(User).filter(User.email == body.owner.email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    franchisor = Franchisor(
        name=body.name,
        company_name=body.company_name,
        industry_type=body.industry_type,
        contact_email=body.contact_email or body.owner.email,
    )
    db.add(franchisor)
    db.flush()

    db.add(User(
        email=body.owner.email,
        password_hash=get_password_hash(body.owner.password),
        name=body.owner.name,
        role=UserRole.FRANCHISOR,
        franchisor_id=franchisor.id,
    ))
    db.add(BusinessConfig(franchisor_id=franchisor.id))
    db.commit()
    db.refresh(franchisor)
    logger.info(f"Created franchisor {franchisor.id} ({franchisor.name}) by {current_user.email}")
    return franchisor


@router.get("/{franchisor_id}", response_model=FranchisorResponse)
@limiter.limit("60/minute")
def get_franchisor(request: Request, franchisor_id: int, db: DbSession, current_user: RequireFranchisor):
    """Get a franchisor (provider, or the franchisor itself)."""
    return require_franchisor_access(db, current_user, franchisor_id)


@config_router.get("/{franchisor_id}", response_model=BusinessConfigResponse)
@limiter.limit("60/minute")
def get_business_config(request: Request, franchisor_id: int, db: DbSession, current_user: RequireFranchisor):
    """Get the business config, creating the defaults on first access."""
    require_franchisor_access(db, current_user, franchisor_id)
    return get_or_create_business_config(db, franchisor_id)


@config_router.patch("/{franchisor_id}", response_model=BusinessConfigResponse)
@limiter.limit("30/minute")
def update_business_config(
    request: Request,
    franchisor_id: int,
    body: BusinessConfigUpdate,
    db: DbSession,
    current_user: RequireFranchisor,
):
    """Partially update the business config. Plan fields are provider only."""
    require_franchisor_access(db, current_user, franchisor_id)
    changes = body.model_dump(exclude_unset=True)

    plan_changes = [f for f in PLAN_FIELDS if f in changes]
    if plan_changes and current_user.role != UserRole.PROVIDER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only the provider can change {', '.join(plan_changes)}",
        )

    config = get_or_create_business_config(db, franchisor_id)
    old = {field: getattr(config, field) for field in changes}
    for field, value in changes.items():
        if value is not None:
            setattr(config, field, value)
    db.commit()
    db.refresh(config)

    log_entity_change(
        action="update",
        entity_type="business_config",
        entity_id=str(config.id),
        user_id=current_user.user_id,
        user_name=current_user.email,
        old_value=old,
        new_value=changes,
    )
    logger.info(f"Business config of franchisor {franchisor_id} updated: {sorted(changes)}")
    return config
