"""Loyalty schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class PointsRequest(BaseModel):
    """Earn, redeem or adjust points for a phone number."""

    phone: str = Field(..., max_length=30)
    type: Literal["EARN", "REDEEM", "ADJUST"]
    points: int
    description: Optional[str] = Field(None, max_length=255)
    transaction_id: Optional[int] = None
    franchise_id: Optional[int] = None


class PointsTransactionResponse(BaseModel):
    id: int
    member_id: Optional[int] = None
    master_account_id: Optional[int] = None
    franchise_id: Optional[int] = None
    type: str
    points: int
    description: Optional[str] = None
    transaction_id: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MasterAccountCreate(BaseModel):
    phone: str = Field(..., max_length=30)
    name: Optional[str] = None


class MasterAccountResponse(BaseModel):
    id: int
    phone: str
    name: Optional[str] = None
    pooled_balance: int
    lifetime_points: int

    model_config = {"from_attributes": True}


class LoyaltyProgramResponse(BaseModel):
    id: int
    franchise_id: int
    name: str
    points_per_dollar: float
    redemption_ratio: float
    is_active: bool

    model_config = {"from_attributes": True}


class LoyaltyProgramUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    points_per_dollar: Optional[Decimal] = Field(None, ge=0)
    redemption_ratio: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    franchise_id: Optional[int] = None


class LoyaltyMemberResponse(BaseModel):
    id: int
    program_id: int
    franchise_id: int
    master_account_id: Optional[int] = None
    phone: str
    name: Optional[str] = None
    email: Optional[str] = None
    points_balance: int
    lifetime_points: int
    lifetime_spend: float
    enrolled_at: datetime
    last_activity: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OwnerLoyaltyAction(BaseModel):
    """Owner portal action: enroll a customer, or earn/redeem on a purchase."""

    action: Literal["enroll", "earn", "redeem"]
    phone: str = Field(..., max_length=30)
    name: Optional[str] = None
    email: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    points: Optional[int] = None
    transaction_id: Optional[int] = None
    franchise_id: Optional[int] = None
