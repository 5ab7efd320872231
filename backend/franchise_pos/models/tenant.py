"""Tenant models: franchisors, franchises and per-franchisor business configuration."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise_pos.db.base import ActiveMixin, Base, TimestampMixin


class TipHandling(str, PyEnum):
    BARBER_KEEPS = "BARBER_KEEPS"
    SPLIT = "SPLIT"
    OWNER_KEEPS = "OWNER_KEEPS"


class ShiftRequirement(str, PyEnum):
    """Which actions must happen before a register can sell."""

    NONE = "NONE"
    CLOCK_IN = "CLOCK_IN"
    CASH_COUNT = "CASH_COUNT"
    BOTH = "BOTH"


class SubscriptionTier(str, PyEnum):
    STARTER = "STARTER"
    GROWTH = "GROWTH"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class Franchisor(Base, TimestampMixin, ActiveMixin):
    """Brand owner; the top-level tenant."""

    __tablename__ = "franchisors"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    industry_type: Mapped[str] = mapped_column(String(50), default="SERVICE", nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    franchises: Mapped[list["Franchise"]] = relationship(
        "Franchise", back_populates="franchisor", order_by="Franchise.id"
    )
    business_config: Mapped[Optional["BusinessConfig"]] = relationship(
        "BusinessConfig", back_populates="franchisor", uselist=False
    )


class Franchise(Base, TimestampMixin, ActiveMixin):
    """A franchisee's business unit under a franchisor."""

    __tablename__ = "franchises"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchisor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchisors.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)

    franchisor: Mapped["Franchisor"] = relationship("Franchisor", back_populates="franchises")
    locations: Mapped[list["Location"]] = relationship(
        "Location", back_populates="franchise", order_by="Location.id"
    )


class BusinessConfig(Base, TimestampMixin):
    """Feature flags, plan limits and tax/commission settings of a franchisor."""

    __tablename__ = "business_configs"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchisor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchisors.id"), unique=True, nullable=False
    )

    # Feature flags
    uses_commissions: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_inventory: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_appointments: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_scheduling: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_loyalty: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_gift_cards: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_memberships: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uses_referrals: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uses_tipping: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_discounts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_retail_products: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_services: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_email_marketing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uses_sms_marketing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uses_review_management: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uses_multi_location: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uses_time_tracking: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uses_payroll: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Cash discount / dual pricing
    cash_discount_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cash_discount_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), default=Decimal("3.99"), nullable=False
    )

    review_request_timing: Mapped[str] = mapped_column(String(30), default="AFTER_PAYMENT", nullable=False)
    commission_calculation: Mapped[str] = mapped_column(String(30), default="AUTOMATIC", nullable=False)
    commission_visibility: Mapped[str] = mapped_column(String(30), default="ALWAYS", nullable=False)

    # Money settings
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=Decimal("0"), nullable=False)
    commission_split: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("40"), nullable=False)
    tip_handling: Mapped[TipHandling] = mapped_column(
        Enum(TipHandling, native_enum=False, length=20),
        default=TipHandling.BARBER_KEEPS,
        nullable=False,
    )

    # Plan
    max_locations: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    subscription_tier: Mapped[SubscriptionTier] = mapped_column(
        Enum(SubscriptionTier, native_enum=False, length=20),
        default=SubscriptionTier.STARTER,
        nullable=False,
    )
    shift_requirement: Mapped[ShiftRequirement] = mapped_column(
        Enum(ShiftRequirement, native_enum=False, length=20),
        default=ShiftRequirement.BOTH,
        nullable=False,
    )

    franchisor: Mapped["Franchisor"] = relationship("Franchisor", back_populates="business_config")


# Forward references
from franchise_pos.models.location import Location
