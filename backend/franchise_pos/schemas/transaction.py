"""Checkout, transaction, shift and lottery schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from franchise_pos.models.transaction import (
    DrawerStatus,
    LineItemStatus,
    LineItemType,
    LotteryType,
    PaymentMethod,
    TransactionStatus,
)


class CheckoutLineInput(BaseModel):
    """Cart line: a catalog item by id, or a free-form service with a price."""

    type: LineItemType = LineItemType.SERVICE
    item_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0)
    quantity: int = Field(1, ge=1, le=1000)
    discount: Decimal = Field(Decimal("0"), ge=0)
    staff_id: Optional[int] = None


class CheckoutRequest(BaseModel):
    items: List[CheckoutLineInput] = Field(..., min_length=1)
    payment_method: PaymentMethod
    tip: Decimal = Field(Decimal("0"), ge=0)
    client_id: Optional[int] = None
    gift_card_code: Optional[str] = None
    notes: Optional[str] = None


class LineItemResponse(BaseModel):
    id: int
    type: LineItemType
    item_id: Optional[int] = None
    description: str
    staff_id: Optional[int] = None
    quantity: int
    price: float
    total: float
    discount: float
    tax_allocated: float
    tip_allocated: float
    commission_split_used: float
    commission_amount: float
    owner_amount: float
    business_date: date
    status: LineItemStatus

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    id: int
    franchise_id: int
    location_id: int
    station_id: Optional[int] = None
    employee_id: Optional[int] = None
    client_id: Optional[int] = None
    cash_drawer_session_id: Optional[int] = None
    original_transaction_id: Optional[int] = None
    subtotal: float
    discount: float
    tax: float
    tip: float
    total: float
    commission_total: float
    owner_total: float
    payment_method: PaymentMethod
    status: TransactionStatus
    gift_card_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionDetailResponse(TransactionResponse):
    line_items: List[LineItemResponse] = []


class RefundRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ShiftActionRequest(BaseModel):
    action: Literal["OPEN", "CLOSE", "DROP"]
    amount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class ShiftResponse(BaseModel):
    id: int
    location_id: int
    employee_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    starting_cash: float
    ending_cash: Optional[float] = None
    cash_drops: float
    status: DrawerStatus
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class LotteryCreate(BaseModel):
    type: LotteryType
    amount: Decimal = Field(..., gt=0)
    location_id: Optional[int] = None
    ticket_number: Optional[str] = Field(None, max_length=50)


class LotteryResponse(BaseModel):
    id: int
    franchise_id: int
    location_id: int
    employee_id: Optional[int] = None
    type: LotteryType
    amount: float
    ticket_number: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
