"""Deal suggestion schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel


class DealSuggestionResponse(BaseModel):
    id: int
    location_id: int
    franchise_id: int
    week_of: datetime
    deal_type: str
    title: str
    description: Optional[str] = None
    reasoning: Optional[str] = None
    discount_type: str
    discount_value: float
    price_floor: Optional[float] = None
    min_spend: Optional[float] = None
    valid_days: Optional[List[str]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    audience_count: Optional[int] = None
    status: str

    model_config = {"from_attributes": True}


class DealRegenerateRequest(BaseModel):
    location_id: int


class DealStatusUpdate(BaseModel):
    status: Literal["ACCEPTED", "DISMISSED"]
