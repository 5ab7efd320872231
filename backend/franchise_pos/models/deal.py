"""Weekly deal suggestions generated from sales history."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from franchise_pos.db.base import Base, Money, TimestampMixin


class DealSuggestion(Base, TimestampMixin):
    """A proposed promotion for one location and week."""

    __tablename__ = "deal_suggestions"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("locations.id"), nullable=False, index=True
    )
    franchise_id: Mapped[int] = mapped_column(Integer, ForeignKey("franchises.id"), nullable=False)
    week_of: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    deal_type: Mapped[str] = mapped_column(String(20), nullable=False)  # SLOW_DAY, WIN_BACK, REBOOK
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reasoning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    discount_type: Mapped[str] = mapped_column(String(20), default="FIXED_AMOUNT", nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Money, nullable=False)
    price_floor: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    min_spend: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    valid_days: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    start_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    audience_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)  # PENDING, ACCEPTED, DISMISSED
