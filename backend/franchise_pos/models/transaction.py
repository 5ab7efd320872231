"""Sales transactions, cash drawer sessions and lottery movements."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise_pos.db.base import Base, Money, TimestampMixin, utcnow


class TransactionStatus(str, PyEnum):
    COMPLETED = "COMPLETED"
    APPROVED = "APPROVED"
    PARTIAL_REFUND = "PARTIAL_REFUND"
    REFUNDED = "REFUNDED"
    VOIDED = "VOIDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, PyEnum):
    CASH = "CASH"
    CARD = "CARD"
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    EBT = "EBT"
    GIFT_CARD = "GIFT_CARD"
    SPLIT = "SPLIT"


class LineItemType(str, PyEnum):
    SERVICE = "SERVICE"
    PRODUCT = "PRODUCT"


class LineItemStatus(str, PyEnum):
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    VOIDED = "VOIDED"


class DrawerStatus(str, PyEnum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class LotteryType(str, PyEnum):
    SALE = "SALE"
    PAYOUT = "PAYOUT"


class CashDrawerSession(Base, TimestampMixin):
    """A shift on a register: opened with a float, closed with a count."""

    __tablename__ = "cash_drawer_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("locations.id"), nullable=False, index=True
    )
    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    starting_cash: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    ending_cash: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    cash_drops: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    status: Mapped[DrawerStatus] = mapped_column(
        Enum(DrawerStatus, native_enum=False, length=10),
        default=DrawerStatus.OPEN,
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Transaction(Base, TimestampMixin):
    """A completed sale, or the reversal of one."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=False, index=True
    )
    location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("locations.id"), nullable=False, index=True
    )
    station_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("stations.id"), nullable=True)
    employee_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    client_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("clients.id"), nullable=True, index=True)
    cash_drawer_session_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("cash_drawer_sessions.id"), nullable=True
    )
    original_transaction_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("transactions.id"), nullable=True
    )

    subtotal: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    tip: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    commission_total: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    owner_total: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, native_enum=False, length=20), nullable=False
    )
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, native_enum=False, length=20),
        default=TransactionStatus.COMPLETED,
        nullable=False,
        index=True,
    )
    gift_card_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("gift_cards.id"), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    line_items: Mapped[list["TransactionLineItem"]] = relationship(
        "TransactionLineItem",
        back_populates="transaction",
        order_by="TransactionLineItem.id",
        cascade="all, delete-orphan",
    )
    employee: Mapped[Optional["User"]] = relationship("User")


class TransactionLineItem(Base):
    """Line item with its payout snapshot frozen at checkout."""

    __tablename__ = "transaction_line_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("transactions.id"), nullable=False, index=True
    )
    type: Mapped[LineItemType] = mapped_column(
        Enum(LineItemType, native_enum=False, length=10), nullable=False
    )
    item_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("items.id"), nullable=True, index=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    staff_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    # Snapshot
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    tax_allocated: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    tip_allocated: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    commission_split_used: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    owner_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    business_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[LineItemStatus] = mapped_column(
        Enum(LineItemStatus, native_enum=False, length=10),
        default=LineItemStatus.PAID,
        nullable=False,
    )

    transaction: Mapped["Transaction"] = relationship("Transaction", back_populates="line_items")


class LotteryTransaction(Base):
    """Lottery ticket sale or prize payout handled through the drawer."""

    __tablename__ = "lottery_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=False, index=True
    )
    location_id: Mapped[int] = mapped_column(Integer, ForeignKey("locations.id"), nullable=False)
    employee_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    type: Mapped[LotteryType] = mapped_column(
        Enum(LotteryType, native_enum=False, length=10), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    ticket_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )


# Forward references
from franchise_pos.models.user import User
