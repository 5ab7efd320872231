"""Loyalty models: per-franchise programs and members, and phone-pooled master accounts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise_pos.db.base import ActiveMixin, Base, Money, TimestampMixin, utcnow


class LoyaltyProgram(Base, TimestampMixin, ActiveMixin):
    """Points program of a franchise."""

    __tablename__ = "loyalty_programs"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), default="Rewards", nullable=False)
    points_per_dollar: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("1"), nullable=False)
    redemption_ratio: Mapped[Decimal] = mapped_column(Numeric(8, 4), default=Decimal("0.01"), nullable=False)

    members: Mapped[list["LoyaltyMember"]] = relationship("LoyaltyMember", back_populates="program")


class LoyaltyMasterAccount(Base, TimestampMixin):
    """One balance shared by every membership with the same phone number."""

    __tablename__ = "loyalty_master_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    phone: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    pooled_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lifetime_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    members: Mapped[list["LoyaltyMember"]] = relationship("LoyaltyMember", back_populates="master_account")


class LoyaltyMember(Base, TimestampMixin):
    """Enrollment of a customer in a franchise's program."""

    __tablename__ = "loyalty_members"
    __table_args__ = (UniqueConstraint("program_id", "phone", name="uq_loyalty_member_program_phone"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    program_id: Mapped[int] = mapped_column(Integer, ForeignKey("loyalty_programs.id"), nullable=False, index=True)
    franchise_id: Mapped[int] = mapped_column(Integer, ForeignKey("franchises.id"), nullable=False, index=True)
    master_account_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("loyalty_master_accounts.id"), nullable=True, index=True
    )
    client_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("clients.id"), nullable=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    points_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lifetime_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lifetime_spend: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_activity: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    program: Mapped["LoyaltyProgram"] = relationship("LoyaltyProgram", back_populates="members")
    master_account: Mapped[Optional["LoyaltyMasterAccount"]] = relationship(
        "LoyaltyMasterAccount", back_populates="members"
    )


class PointsTransaction(Base):
    """Ledger row for every points change, on a member or a master account."""

    __tablename__ = "points_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("loyalty_members.id"), nullable=True, index=True)
    master_account_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("loyalty_master_accounts.id"), nullable=True, index=True
    )
    franchise_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("franchises.id"), nullable=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # EARN, REDEEM, ADJUST
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    transaction_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("transactions.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
