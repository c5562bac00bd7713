# earnings/schemas/partners.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr

ReferralCode = constr(pattern=r"^[A-Z0-9]{4,32}$")


class PartnerCreate(BaseModel):
    """
    Register a partner for:
      - an existing user (user_id), OR
      - create/find user by email (email)
    Provide exactly one of user_id or email.
    """
    user_id: Optional[UUID] = None
    email: Optional[EmailStr] = None

    display_name: Optional[str] = Field(default=None, max_length=200)
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    video_content_bonus: Decimal = Field(default=Decimal("0"), ge=0, le=10)
    community_bonus: Decimal = Field(default=Decimal("0"), ge=0, le=10)

    def validate_choice(self) -> None:
        if (self.user_id is None and self.email is None) or (self.user_id is not None and self.email is not None):
            raise ValueError("Provide exactly one of user_id or email.")


class PartnerUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=200)
    # active | inactive
    status: Optional[str] = Field(default=None, pattern=r"^(active|inactive)$")
    video_content_bonus: Optional[Decimal] = Field(default=None, ge=0, le=10)
    community_bonus: Optional[Decimal] = Field(default=None, ge=0, le=10)


class PartnerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: Optional[UUID] = None
    display_name: Optional[str] = None
    referral_code: ReferralCode
    status: str

    commission_rate: Decimal
    video_content_bonus: Decimal
    community_bonus: Decimal
    tier: str
    tier_updated_at: Optional[datetime] = None

    total_revenue: Decimal
    total_orders: int

    created_at: datetime


class PartnerListOut(BaseModel):
    items: list[PartnerOut]
    total: int
    limit: int
    offset: int


class PartnerStatsOut(BaseModel):
    partner: PartnerOut

    total_commissions: Decimal
    pending_commissions: Decimal
    completed_commissions: Decimal
    commission_count: int

    total_clicks: int
    conversions: int
    conversion_rate: Decimal

    tier: str
    commission_rate: Decimal
    current_period: str
    current_period_sales: Decimal

    pending_balance: Decimal
    available_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal


class ClickCreate(BaseModel):
    referral_code: str = Field(min_length=1, max_length=32)
    customer_id: Optional[str] = Field(default=None, max_length=128)


class ClickOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    partner_id: UUID
    customer_id: Optional[str] = None
    converted: bool
    clicked_at: datetime
