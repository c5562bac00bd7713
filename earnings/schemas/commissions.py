# earnings/schemas/commissions.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FinalizeCommissionRequest(BaseModel):
    sale_id: str = Field(min_length=1, max_length=128)


class FinalizeCommissionOut(BaseModel):
    sale_id: str
    partner_id: UUID
    commission_amount: Decimal
    already_finalized: bool

    # populated only when this finalization moved the partner's tier
    new_tier: Optional[str] = None
    new_rate: Optional[Decimal] = None


class CommissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    partner_id: UUID
    sale_id: str
    store_id: Optional[str] = None
    customer_id: Optional[str] = None

    sale_total: Decimal
    base_rate: Decimal
    effective_rate: Decimal
    commission_amount: Decimal
    bonus_multipliers: Dict[str, Any] = Field(default_factory=dict)
    currency: str

    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None
