"""Location and station schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from franchise_pos.models.location import ProvisioningStatus


class LocationCreate(BaseModel):
    """Location creation schema."""

    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=500)
    franchise_id: Optional[int] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None


class LocationUpdate(BaseModel):
    """Location update schema."""

    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None
    is_active: Optional[bool] = None
    provisioning_status: Optional[ProvisioningStatus] = None


class LocationResponse(BaseModel):
    """Location response schema."""

    id: int
    franchise_id: int
    name: str
    slug: str
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    timezone: str
    setup_code: Optional[str] = None
    provisioning_status: ProvisioningStatus
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StationCreate(BaseModel):
    location_id: int
    name: str = Field(..., min_length=1, max_length=100)


class StationResponse(BaseModel):
    id: int
    location_id: int
    name: str
    pairing_code: Optional[str] = None
    is_trusted: bool
    paired_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StationPairRequest(BaseModel):
    """Pairing code shown in the dashboard plus the terminal's fingerprint."""

    pairing_code: str = Field(..., min_length=1, max_length=12)
    device_fingerprint: str = Field(..., min_length=1, max_length=255)


class StationPairResponse(BaseModel):
    station_token: str
    station: StationResponse
    location_id: int
    franchise_id: int
