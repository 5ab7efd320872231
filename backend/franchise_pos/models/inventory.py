"""Inventory models: suppliers, stocked items and inter-location transfers."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise_pos.db.base import ActiveMixin, Base, Money, TimestampMixin


class TransferStatus(str, PyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    IN_TRANSIT = "IN_TRANSIT"
    RECEIVED = "RECEIVED"
    DISCREPANCY = "DISCREPANCY"
    CANCELLED = "CANCELLED"


class Supplier(Base, TimestampMixin):
    """Vendor that supplies items to a franchise."""

    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    items: Mapped[list["Item"]] = relationship("Item", back_populates="supplier")


class Item(Base, TimestampMixin, ActiveMixin):
    """Sellable product or service stocked at a location."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=False, index=True
    )
    location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("locations.id"), nullable=False, index=True
    )
    supplier_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("suppliers.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    item_type: Mapped[str] = mapped_column(String(20), default="PRODUCT", nullable=False)  # PRODUCT, SERVICE
    price: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    cost: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reorder_point: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_stock: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", back_populates="items")


class InventoryTransfer(Base, TimestampMixin):
    """Stock moved from one location of a franchise to another."""

    __tablename__ = "inventory_transfers"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=False, index=True
    )
    from_location_id: Mapped[int] = mapped_column(Integer, ForeignKey("locations.id"), nullable=False)
    to_location_id: Mapped[int] = mapped_column(Integer, ForeignKey("locations.id"), nullable=False)
    status: Mapped[TransferStatus] = mapped_column(
        Enum(TransferStatus, native_enum=False, length=20),
        default=TransferStatus.PENDING,
        nullable=False,
        index=True,
    )
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_value: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    requested_by_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    received_by_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["TransferItem"]] = relationship(
        "TransferItem",
        back_populates="transfer",
        order_by="TransferItem.id",
        cascade="all, delete-orphan",
    )


class TransferItem(Base):
    """Item line of a transfer with the quantity sent and received."""

    __tablename__ = "transfer_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inventory_transfers.id"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(Integer, ForeignKey("items.id"), nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_sku: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    quantity_sent: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_received: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    unit_cost: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    transfer: Mapped["InventoryTransfer"] = relationship("InventoryTransfer", back_populates="items")
