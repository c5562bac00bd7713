# earnings/schemas/campaigns.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CampaignCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    starts_at: datetime
    ends_at: datetime
    # fractional: 0.25 => +25% of the partner's base rate
    bonus_multiplier: Decimal = Field(ge=0, le=10)
    is_active: bool = True

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        # naive timestamps are taken as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _window(self) -> "CampaignCreate":
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class CampaignOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    is_active: bool
    starts_at: datetime
    ends_at: datetime
    bonus_multiplier: Decimal
    created_at: datetime


class CampaignListOut(BaseModel):
    items: List[CampaignOut]
    total: int
    limit: int
    offset: int
