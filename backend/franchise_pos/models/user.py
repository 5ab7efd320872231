"""User and compensation models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise_pos.core.rbac import UserRole
from franchise_pos.db.base import Base, TimestampMixin, as_utc, utcnow

PERMISSION_FLAGS = (
    "can_add_services",
    "can_add_products",
    "can_manage_inventory",
    "can_view_reports",
    "can_process_refunds",
    "can_manage_schedule",
    "can_manage_employees",
)


class User(Base, TimestampMixin):
    """User account for authentication and RBAC."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.EMPLOYEE,
        nullable=False,
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    pin_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Tenant scope
    franchisor_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("franchisors.id"), nullable=True, index=True
    )
    franchise_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=True, index=True
    )
    location_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("locations.id"), nullable=True, index=True
    )

    # PIN lockout
    failed_login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    locked_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Employee permissions
    can_add_services: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_add_products: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_manage_inventory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_view_reports: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_process_refunds: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_manage_schedule: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_manage_employees: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    franchise: Mapped[Optional["Franchise"]] = relationship("Franchise")
    location: Mapped[Optional["Location"]] = relationship("Location")
    compensation_plans: Mapped[list["CompensationPlan"]] = relationship(
        "CompensationPlan", back_populates="user", order_by="CompensationPlan.id"
    )

    def permission_flags(self) -> dict:
        return {flag: bool(getattr(self, flag)) for flag in PERMISSION_FLAGS}

    def is_locked(self) -> bool:
        locked_until = as_utc(self.locked_until)
        return locked_until is not None and locked_until > utcnow()


class CompensationPlan(Base, TimestampMixin):
    """How an employee is paid (W-2 commission/hourly or booth rental)."""

    __tablename__ = "compensation_plans"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    compensation_type: Mapped[str] = mapped_column(String(30), nullable=False)  # W2_EMPLOYEE, BOOTH_RENTER
    commission_split: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    hourly_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    chair_rent_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    chair_rent_period: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    effective_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="compensation_plans")


# Forward references
from franchise_pos.models.tenant import Franchise
from franchise_pos.models.location import Location
