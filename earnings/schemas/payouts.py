# earnings/schemas/payouts.py
from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

_SPACES_RE = re.compile(r"[\s-]+")


class BankDetailsIn(BaseModel):
    """
    Structural completeness is checked by the payout workflow (after the
    minimum and balance rules), so every field is optional here.
    """
    account_holder: Optional[str] = Field(default=None, max_length=200)
    bank_name: Optional[str] = Field(default=None, max_length=120)
    account_number: Optional[str] = Field(default=None, max_length=40)
    branch_code: Optional[str] = Field(default=None, max_length=20)
    # savings | cheque | current
    account_type: Optional[str] = Field(default=None, max_length=20)

    @field_validator("account_holder", "bank_name")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("account_number", "branch_code")
    @classmethod
    def _compact(cls, v: Optional[str]) -> Optional[str]:
        # "1234 5678-90" => "1234567890"
        if v is None:
            return None
        v = _SPACES_RE.sub("", v)
        if v and not v.isdigit():
            raise ValueError("must contain digits only")
        return v or None

    @field_validator("account_type")
    @classmethod
    def _lower(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip().lower() or None


class PayoutCreate(BaseModel):
    """
    actor_id defaults to the caller's own actor for `actor_type`
    (partner profile id, or the user id for vendors and staff).
    """
    actor_type: str = Field(min_length=1, max_length=20)
    actor_id: Optional[UUID] = None
    amount: Decimal
    bank_details: BankDetailsIn = Field(default_factory=BankDetailsIn)

    # vendor only
    store_id: Optional[str] = Field(default=None, max_length=128)
    store_commission_rate: Optional[Decimal] = None

    notes: Optional[str] = Field(default=None, max_length=500)


class PayoutRejectRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class PayoutMarkPaidRequest(BaseModel):
    payment_reference: Optional[str] = Field(default=None, max_length=128)


class PayoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_type: str
    actor_id: UUID
    account_id: UUID

    requested_amount: Decimal
    payable_amount: Decimal
    currency: str

    account_holder: str
    bank_name: str
    account_number: str
    branch_code: str
    account_type: str

    status: str

    store_id: Optional[str] = None
    gross_amount: Optional[Decimal] = None
    store_commission_rate: Optional[Decimal] = None
    store_cut: Optional[Decimal] = None
    net_payout: Optional[Decimal] = None

    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    payment_reference: Optional[str] = None
    decided_by: Optional[UUID] = None

    requested_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class PayoutListOut(BaseModel):
    items: List[PayoutOut]
    limit: int
    offset: int
