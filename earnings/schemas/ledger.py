# earnings/schemas/ledger.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EarningsAccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_type: str
    actor_id: UUID
    store_id: Optional[str] = None

    pending_balance: Decimal
    available_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal

    updated_at: datetime


class MyEarningsOut(BaseModel):
    currency: str
    accounts: List[EarningsAccountOut]


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    entry_type: str
    amount: Decimal
    currency: str
    reference: str
    memo: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime


class LedgerEntriesPageOut(BaseModel):
    items: List[LedgerEntryOut]
    limit: int
    offset: int
    total: int


class ReleasePendingRequest(BaseModel):
    """Omit amount to release the whole pending balance."""
    amount: Optional[Decimal] = Field(default=None, gt=0)
    reference: Optional[str] = Field(default=None, max_length=128)
    memo: Optional[str] = Field(default=None, max_length=255)


class CreditAvailableRequest(BaseModel):
    """Vendor sale / staff earning recorded by its owning collaborator."""
    amount: Decimal = Field(gt=0)
    reference: str = Field(min_length=1, max_length=128)
    store_id: Optional[str] = Field(default=None, max_length=128)
    memo: Optional[str] = Field(default=None, max_length=255)


class LedgerMutationOut(BaseModel):
    applied: bool
    account: EarningsAccountOut
