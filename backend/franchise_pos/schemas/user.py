"""User and employee schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from franchise_pos.core.rbac import UserRole


class UserResponse(BaseModel):
    """User response schema. Never carries password or PIN hashes."""

    id: int
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    franchisor_id: Optional[int] = None
    franchise_id: Optional[int] = None
    location_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EmployeePermissions(BaseModel):
    can_add_services: bool = False
    can_add_products: bool = False
    can_manage_inventory: bool = False
    can_view_reports: bool = False
    can_process_refunds: bool = False
    can_manage_schedule: bool = False
    can_manage_employees: bool = False


class CompensationInput(BaseModel):
    """Pay plan for a new employee. CHAIR_RENTAL makes a booth renter."""

    type: str = "COMMISSION"
    commission_split: Optional[Decimal] = Field(None, ge=0, le=100)
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    chair_rent_amount: Optional[Decimal] = Field(None, ge=0)
    chair_rent_period: Optional[str] = None


class EmployeeCreate(EmployeePermissions):
    """Employee creation schema."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    phone: Optional[str] = None
    location_id: Optional[int] = None
    compensation: Optional[CompensationInput] = None


class EmployeeUpdate(BaseModel):
    """Employee update schema."""

    name: Optional[str] = None
    phone: Optional[str] = None
    location_id: Optional[int] = None
    is_active: Optional[bool] = None
    can_add_services: Optional[bool] = None
    can_add_products: Optional[bool] = None
    can_manage_inventory: Optional[bool] = None
    can_view_reports: Optional[bool] = None
    can_process_refunds: Optional[bool] = None
    can_manage_schedule: Optional[bool] = None
    can_manage_employees: Optional[bool] = None


class CompensationPlanResponse(BaseModel):
    id: int
    compensation_type: str
    commission_split: Optional[float] = None
    hourly_rate: Optional[float] = None
    chair_rent_amount: Optional[float] = None
    chair_rent_period: Optional[str] = None

    model_config = {"from_attributes": True}


class EmployeeResponse(UserResponse, EmployeePermissions):
    """Employee with permission flags and pay plans."""

    compensation_plans: list[CompensationPlanResponse] = []
