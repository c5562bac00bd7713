from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import Money, UUIDType


class ReferralClick(Base):
    """Tracked click on a partner link. `converted` only ever goes False -> True."""

    __tablename__ = "referral_clicks"
    __table_args__ = (
        Index("ix_referral_clicks_partner_customer_converted", "partner_id", "customer_id", "converted"),
        # a sale converts at most one click
        UniqueConstraint("sale_id", name="uq_referral_clicks_sale_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    converted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sale_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    conversion_amount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    converted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    clicked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
