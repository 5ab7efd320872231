"""Client and appointment schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from franchise_pos.models.client import AppointmentStatus


class ClientCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    notes: Optional[str] = None
    franchise_id: Optional[int] = None


class ClientResponse(BaseModel):
    id: int
    franchise_id: int
    first_name: str
    last_name: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    last_visit: Optional[datetime] = None
    total_visits: int

    model_config = {"from_attributes": True}


class AppointmentCreate(BaseModel):
    location_id: int
    client_id: Optional[int] = None
    employee_id: Optional[int] = None
    service_name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(Decimal("0"), ge=0)
    start_time: datetime
    duration_minutes: int = Field(30, ge=5, le=600)


class AppointmentUpdate(BaseModel):
    status: Optional[AppointmentStatus] = None
    start_time: Optional[datetime] = None
    employee_id: Optional[int] = None


class AppointmentResponse(BaseModel):
    id: int
    location_id: int
    client_id: Optional[int] = None
    employee_id: Optional[int] = None
    service_name: str
    price: float
    start_time: datetime
    duration_minutes: int
    status: AppointmentStatus

    model_config = {"from_attributes": True}
