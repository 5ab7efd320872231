"""Location and station models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from franchise_pos.db.base import ActiveMixin, Base, TimestampMixin


class ProvisioningStatus(str, PyEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class Location(Base, TimestampMixin, ActiveMixin):
    """Physical store belonging to a franchise."""

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(primary_key=True)
    franchise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("franchises.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)

    # Address
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    timezone: Mapped[str] = mapped_column(String(50), default="America/Chicago", nullable=False)

    # Go-live
    setup_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, unique=True)
    provisioning_status: Mapped[ProvisioningStatus] = mapped_column(
        Enum(ProvisioningStatus, native_enum=False, length=20),
        default=ProvisioningStatus.PENDING,
        nullable=False,
    )

    franchise: Mapped["Franchise"] = relationship("Franchise", back_populates="locations")
    stations: Mapped[list["Station"]] = relationship(
        "Station", back_populates="location", order_by="Station.id"
    )


class Station(Base, TimestampMixin):
    """POS terminal paired to a location."""

    __tablename__ = "stations"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("locations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    pairing_code: Mapped[Optional[str]] = mapped_column(String(12), unique=True, nullable=True)
    device_fingerprint: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_trusted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paired_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_seen_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    location: Mapped["Location"] = relationship("Location", back_populates="stations")


# Forward references
from franchise_pos.models.tenant import Franchise
