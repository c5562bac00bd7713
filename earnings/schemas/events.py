# earnings/schemas/events.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SaleCreatedEvent(BaseModel):
    """
    Emitted by the order collaborator once a sale is written.
    referral_code is optional; sales without one are simply not attributed.
    """
    sale_id: str = Field(min_length=1, max_length=128)
    total: Decimal
    referral_code: Optional[str] = Field(default=None, max_length=32)
    status: Optional[str] = Field(default=None, max_length=40)
    store_id: Optional[str] = Field(default=None, max_length=128)
    customer_id: Optional[str] = Field(default=None, max_length=128)

    @field_validator("sale_id")
    @classmethod
    def _strip_sale_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("sale_id is required")
        return v


class DeliveryConfirmedEvent(BaseModel):
    sale_id: str = Field(min_length=1, max_length=128)


class EventAck(BaseModel):
    accepted: bool = True
    sale_id: str
    status: str
