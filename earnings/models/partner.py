# earnings/models/partner.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import Money, Multiplier, Rate, UUIDType

PARTNER_STATUS_ACTIVE = "active"
PARTNER_STATUS_INACTIVE = "inactive"


class Partner(Base):
    """
    Referral / influencer actor.

    Balances are NOT stored here: the partner's money lives in its
    EarningsAccount (actor_type="partner", actor_id=partner.id), shared with
    vendors and store staff. Sales volume is tracked per period in
    PartnerMonthlySales.
    """

    __tablename__ = "partners"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True,
    )

    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # stored uppercase; lookups are case-insensitive by normalizing input
    referral_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)

    # active | inactive
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PARTNER_STATUS_ACTIVE)

    # percent, e.g. 5.0000 => 5%
    commission_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False, default=Decimal("5"))

    # content bonuses as fractional multipliers, e.g. 0.5 => +50% of base rate
    video_content_bonus: Mapped[Decimal] = mapped_column(Multiplier, nullable=False, default=Decimal("0"))
    community_bonus: Mapped[Decimal] = mapped_column(Multiplier, nullable=False, default=Decimal("0"))

    tier: Mapped[str] = mapped_column(String(30), nullable=False, default="Bronze")
    tier_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # volume metrics (not payable earnings)
    total_revenue: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def is_active(self) -> bool:
        return self.status == PARTNER_STATUS_ACTIVE

    @staticmethod
    def normalize_referral_code(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        v = value.strip().upper()
        return v or None


class PartnerMonthlySales(Base):
    """Accumulated attributed sales per partner per calendar month (YYYY-MM)."""

    __tablename__ = "partner_monthly_sales"
    __table_args__ = (
        UniqueConstraint("partner_id", "period", name="uq_partner_monthly_sales_partner_period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    period: Mapped[str] = mapped_column(String(7), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    order_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
