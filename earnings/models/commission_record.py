# earnings/models/commission_record.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import JSONType, Money, Rate, UUIDType

COMMISSION_PENDING = "pending"
COMMISSION_COMPLETED = "completed"


class CommissionRecord(Base):
    """
    Commission owed to a partner for one attributed sale.

    Rates and multipliers are snapshotted at calculation time so the amount
    never drifts when the partner's rate changes later.

    NOTE:
      - sale_id is UNIQUE: at most one commission per sale, enforced by the DB.
      - status moves pending -> completed only (terminal).
    """

    __tablename__ = "commission_records"
    __table_args__ = (
        Index("ix_commission_records_partner_created", "partner_id", "created_at"),
        Index("ix_commission_records_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # sale ids come from the fulfillment collaborator; opaque strings
    sale_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    store_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    customer_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    sale_total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    base_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    effective_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    # {"video_content": "0.5", "community": "0", "seasonal": "0", "campaign_id": null}
    bonus_multipliers: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="ZAR")

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=COMMISSION_PENDING)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
