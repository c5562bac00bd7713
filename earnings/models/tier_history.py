from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import Money, Rate, UUIDType


class TierHistoryEntry(Base):
    """Append-only audit trail of partner tier changes."""

    __tablename__ = "tier_history"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    previous_tier: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    new_tier: Mapped[str] = mapped_column(String(30), nullable=False)
    previous_rate: Mapped[Optional[Decimal]] = mapped_column(Rate, nullable=True)
    new_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)

    # sales figure that triggered the change, and the period it belongs to
    monthly_sales: Mapped[Decimal] = mapped_column(Money, nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)

    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
