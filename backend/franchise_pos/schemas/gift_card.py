"""Gift card schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class GiftCardAction(BaseModel):
    """``issue`` needs an amount; ``check`` needs a code; ``redeem`` needs both."""

    action: Literal["issue", "check", "redeem"]
    code: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    purchaser_name: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_email: Optional[EmailStr] = None
    franchise_id: Optional[int] = None


class GiftCardUpdate(BaseModel):
    is_active: bool


class GiftCardResponse(BaseModel):
    id: int
    franchise_id: int
    code: str
    initial_amount: float
    current_balance: float
    is_active: bool
    expires_at: Optional[datetime] = None
    purchaser_name: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_email: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
