"""Gift card models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise_pos.db.base import Base, Money, TimestampMixin, utcnow


class GiftCard(Base, TimestampMixin):
    """Stored-value card issued by a franchise."""

    __tablename__ = "gift_cards"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(19), unique=True, nullable=False, index=True)
    initial_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    current_balance: Mapped[Decimal] = mapped_column(Money, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    purchaser_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    recipient_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    recipient_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    issued_by_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    transactions: Mapped[list["GiftCardTransaction"]] = relationship(
        "GiftCardTransaction", back_populates="gift_card", order_by="GiftCardTransaction.id"
    )


class GiftCardTransaction(Base):
    """Issue or redemption against a gift card."""

    __tablename__ = "gift_card_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    gift_card_id: Mapped[int] = mapped_column(Integer, ForeignKey("gift_cards.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # ISSUE, REDEEM
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Money, nullable=False)
    employee_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    gift_card: Mapped["GiftCard"] = relationship("GiftCard", back_populates="transactions")
