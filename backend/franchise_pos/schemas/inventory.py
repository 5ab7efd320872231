"""Supplier, item and transfer schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from franchise_pos.models.inventory import TransferStatus


class SupplierCreate(BaseModel):
    """Supplier creation schema."""

    name: str = Field(..., min_length=1, max_length=255)
    contact_phone: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    notes: Optional[str] = None
    franchise_id: Optional[int] = None


class SupplierResponse(BaseModel):
    """Supplier response schema."""

    id: int
    franchise_id: int
    name: str
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class ItemCreate(BaseModel):
    """Item creation schema; the franchise comes from the location."""

    location_id: int
    name: str = Field(..., min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=64)
    barcode: Optional[str] = Field(None, max_length=64)
    item_type: str = Field("PRODUCT", pattern=r"^(PRODUCT|SERVICE)$")
    price: Decimal = Field(Decimal("0"), ge=0)
    cost: Optional[Decimal] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    supplier_id: Optional[int] = None


class ItemUpdate(BaseModel):
    """Item update schema."""

    name: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    cost: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    supplier_id: Optional[int] = None
    is_active: Optional[bool] = None


class ItemResponse(BaseModel):
    """Item response schema."""

    id: int
    franchise_id: int
    location_id: int
    supplier_id: Optional[int] = None
    name: str
    sku: Optional[str] = None
    barcode: Optional[str] = None
    item_type: str
    price: float
    cost: Optional[float] = None
    stock: int
    reorder_point: Optional[int] = None
    max_stock: Optional[int] = None
    is_active: bool

    model_config = {"from_attributes": True}


class TransferLineInput(BaseModel):
    item_id: int
    quantity: int = Field(..., ge=1)


class TransferCreate(BaseModel):
    from_location_id: int
    to_location_id: int
    items: List[TransferLineInput] = Field(..., min_length=1)
    reason: Optional[str] = Field(None, max_length=255)


class TransferReceiveRequest(BaseModel):
    """Counted quantity per item id; items left out arrived in full."""

    received: Dict[int, int] = {}
    notes: Optional[str] = None


class TransferCancelRequest(BaseModel):
    notes: Optional[str] = None


class TransferItemResponse(BaseModel):
    id: int
    item_id: int
    item_name: str
    item_sku: Optional[str] = None
    quantity_sent: int
    quantity_received: Optional[int] = None
    unit_cost: float

    model_config = {"from_attributes": True}


class TransferResponse(BaseModel):
    id: int
    transfer_number: str
    franchise_id: int
    from_location_id: int
    to_location_id: int
    status: TransferStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    total_items: int
    total_value: float
    requested_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    received_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[TransferItemResponse] = []

    model_config = {"from_attributes": True}
