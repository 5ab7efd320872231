"""Employee management routes for franchise owners."""

import logging
import re
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import or_

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, TokenData, UserRole
from franchise_pos.core.responses import list_response
from franchise_pos.core.security import get_password_hash
from franchise_pos.core.tenancy import get_accessible_location, scope_to_franchises
from franchise_pos.db.session import DbSession
from franchise_pos.models.user import PERMISSION_FLAGS, CompensationPlan, User
from franchise_pos.schemas.user import EmployeeCreate, EmployeeResponse, EmployeeUpdate
from franchise_pos.services.audit_service import log_entity_change

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_employee_manager(current_user: TokenData) -> None:
    if current_user.role in (UserRole.PROVIDER, UserRole.FRANCHISOR, UserRole.FRANCHISEE):
        return
    if current_user.permissions.get("can_manage_employees"):
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage employees")


def _digits(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    return re.sub(r"\D", "", phone) or None


def _compensation_type(requested: str) -> str:
    return "BOOTH_RENTER" if requested.upper() == "CHAIR_RENTAL" else "W2_EMPLOYEE"


def _get_employee(db, current_user: TokenData, employee_id: int) -> User:
    query = db.query(User).filter(User.id == employee_id, User.role == UserRole.EMPLOYEE)
    employee = scope_to_franchises(query, User.franchise_id, db, current_user).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


@router.get("/")
@limiter.limit("60/minute")
def list_employees(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    search: Optional[str] = None,
    location_id: Optional[int] = None,
):
    """Employees of the caller's franchisor or franchise."""
    query = db.query(User).filter(User.role == UserRole.EMPLOYEE)
    query = scope_to_franchises(query, User.franchise_id, db, current_user)
    if location_id is not None:
        query = query.filter(User.location_id == location_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.name.ilike(pattern),
            User.email.ilike(pattern),
            User.phone.ilike(pattern),
        ))
    rows = query.order_by(User.name).all()
    return list_response([EmployeeResponse.model_validate(u).model_dump(mode="json") for u in rows])


@router.post("/", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_employee(request: Request, body: EmployeeCreate, db: DbSession, current_user: CurrentUser):
    """Add an employee with permission flags and an optional pay plan."""
    _require_employee_manager(current_user)

    location_id = body.location_id or current_user.location_id
    if location_id is None:
        if current_user.role in (UserRole.PROVIDER, UserRole.FRANCHISOR):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location is required")
        franchise_id = current_user.franchise_id
    else:
        location = get_accessible_location(db, current_user, location_id)
        franchise_id = location.franchise_id
    if franchise_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No franchise found for this account")

    if db.query(User.id).filter(User.email == body.email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    employee = User(
        email=body.email,
        password_hash=get_password_hash(body.password),
        name=body.name,
        phone=_digits(body.phone),
        role=UserRole.EMPLOYEE,
        franchise_id=franchise_id,
        location_id=location_id,
        **{flag: getattr(body, flag) for flag in PERMISSION_FLAGS},
    )
    db.add(employee)
    db.flush()

    if body.compensation:
        comp = body.compensation
        db.add(CompensationPlan(
            user_id=employee.id,
            compensation_type=_compensation_type(comp.type),
            commission_split=comp.commission_split,
            hourly_rate=comp.hourly_rate,
            chair_rent_amount=comp.chair_rent_amount,
            chair_rent_period=comp.chair_rent_period,
        ))
    db.commit()
    db.refresh(employee)
    logger.info(f"Employee {employee.id} created in franchise {franchise_id} by {current_user.email}")
    return employee


@router.patch("/{employee_id}", response_model=EmployeeResponse)
@limiter.limit("30/minute")
def update_employee(
    request: Request,
    employee_id: int,
    body: EmployeeUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Update an employee's details, permissions or active state."""
    _require_employee_manager(current_user)
    employee = _get_employee(db, current_user, employee_id)

    changes = body.model_dump(exclude_unset=True)
    if changes.get("location_id") is not None:
        location = get_accessible_location(db, current_user, changes["location_id"])
        if location.franchise_id != employee.franchise_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location belongs to another franchise")
    if "phone" in changes:
        changes["phone"] = _digits(changes["phone"])

    old = {field: getattr(employee, field) for field in changes}
    for field, value in changes.items():
        if value is not None or field == "phone":
            setattr(employee, field, value)
    db.commit()
    db.refresh(employee)

    log_entity_change(
        action="update",
        entity_type="employee",
        entity_id=str(employee.id),
        user_id=current_user.user_id,
        user_name=current_user.email,
        old_value=old,
        new_value=changes,
    )
    return employee
