"""Audit log routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy import or_, select

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, UserRole
from franchise_pos.core.responses import paginated_response
from franchise_pos.core.tenancy import accessible_franchise_ids
from franchise_pos.db.session import DbSession
from franchise_pos.models.operations import AuditLogEntry
from franchise_pos.models.user import User
from franchise_pos.schemas.audit import AuditLogResponse

router = APIRouter()


@router.get("/")
@limiter.limit("30/minute")
def list_audit_logs(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    user_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """Audit trail, newest first."""
    if current_user.role not in (UserRole.PROVIDER, UserRole.FRANCHISOR):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    query = db.query(AuditLogEntry)
    if current_user.role == UserRole.FRANCHISOR:
        franchise_ids = accessible_franchise_ids(db, current_user)
        tenant_users = select(User.id).where(or_(
            User.franchisor_id == current_user.franchisor_id,
            User.franchise_id.in_(franchise_ids),
        ))
        query = query.filter(AuditLogEntry.user_id.in_(tenant_users))
    if action:
        query = query.filter(AuditLogEntry.action == action)
    if entity_type:
        query = query.filter(AuditLogEntry.entity_type == entity_type)
    if user_id is not None:
        query = query.filter(AuditLogEntry.user_id == user_id)

    total = query.count()
    rows = query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc()).offset(skip).limit(limit).all()
    items = [AuditLogResponse.model_validate(r).model_dump(mode="json") for r in rows]
    return paginated_response(items, total, skip, limit)
