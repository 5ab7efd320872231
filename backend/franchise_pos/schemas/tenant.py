"""Franchisor, franchise and business configuration schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from franchise_pos.models.tenant import ShiftRequirement, SubscriptionTier, TipHandling


class OwnerInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class FranchisorCreate(BaseModel):
    """Franchisor creation schema, with the login of its owner."""

    name: str = Field(..., min_length=1, max_length=200)
    company_name: Optional[str] = None
    industry_type: str = "SERVICE"
    contact_email: Optional[EmailStr] = None
    owner: OwnerInput


class FranchisorResponse(BaseModel):
    id: int
    name: str
    company_name: Optional[str] = None
    industry_type: str
    contact_email: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FranchiseCreate(BaseModel):
    """Franchise creation schema. ``owner`` becomes a FRANCHISEE login."""

    name: str = Field(..., min_length=1, max_length=200)
    franchisor_id: Optional[int] = None
    owner: Optional[OwnerInput] = None


class FranchiseResponse(BaseModel):
    id: int
    franchisor_id: int
    name: str
    slug: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BusinessConfigResponse(BaseModel):
    """Feature flags, tax and plan settings of a franchisor."""

    id: int
    franchisor_id: int

    uses_commissions: bool
    uses_inventory: bool
    uses_appointments: bool
    uses_scheduling: bool
    uses_loyalty: bool
    uses_gift_cards: bool
    uses_memberships: bool
    uses_referrals: bool
    uses_tipping: bool
    uses_discounts: bool
    uses_retail_products: bool
    uses_services: bool
    uses_email_marketing: bool
    uses_sms_marketing: bool
    uses_review_management: bool
    uses_multi_location: bool
    uses_time_tracking: bool
    uses_payroll: bool

    cash_discount_enabled: bool
    cash_discount_percent: float
    review_request_timing: str
    commission_calculation: str
    commission_visibility: str

    tax_rate: float
    commission_split: float
    tip_handling: TipHandling
    max_locations: int
    subscription_tier: SubscriptionTier
    shift_requirement: ShiftRequirement

    model_config = {"from_attributes": True}


class BusinessConfigUpdate(BaseModel):
    """Partial update; unset fields are left alone."""

    uses_commissions: Optional[bool] = None
    uses_inventory: Optional[bool] = None
    uses_appointments: Optional[bool] = None
    uses_scheduling: Optional[bool] = None
    uses_loyalty: Optional[bool] = None
    uses_gift_cards: Optional[bool] = None
    uses_memberships: Optional[bool] = None
    uses_referrals: Optional[bool] = None
    uses_tipping: Optional[bool] = None
    uses_discounts: Optional[bool] = None
    uses_retail_products: Optional[bool] = None
    uses_services: Optional[bool] = None
    uses_email_marketing: Optional[bool] = None
    uses_sms_marketing: Optional[bool] = None
    uses_review_management: Optional[bool] = None
    uses_multi_location: Optional[bool] = None
    uses_time_tracking: Optional[bool] = None
    uses_payroll: Optional[bool] = None

    cash_discount_enabled: Optional[bool] = None
    cash_discount_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    review_request_timing: Optional[str] = None
    commission_calculation: Optional[str] = None
    commission_visibility: Optional[str] = None

    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    commission_split: Optional[Decimal] = Field(None, ge=0, le=100)
    tip_handling: Optional[TipHandling] = None
    shift_requirement: Optional[ShiftRequirement] = None

    # Plan fields, provider only
    max_locations: Optional[int] = Field(None, ge=1)
    subscription_tier: Optional[SubscriptionTier] = None


PLAN_FIELDS = ("max_locations", "subscription_tier")
