# earnings/models/earnings_account.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import Money, UUIDType

ACTOR_PARTNER = "partner"
ACTOR_VENDOR = "vendor"
ACTOR_STAFF = "staff"

ACTOR_TYPES = (ACTOR_PARTNER, ACTOR_VENDOR, ACTOR_STAFF)


class EarningsAccount(Base):
    """
    Per-actor balance aggregate shared by partners, vendors and store staff.

    Balances are only ever changed through earnings.core.ledger, which issues
    `SET col = col + :delta` updates; never assign these attributes directly.
    """

    __tablename__ = "earnings_accounts"
    __table_args__ = (
        UniqueConstraint("actor_type", "actor_id", name="uq_earnings_accounts_actor"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    # partner | vendor | staff
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    store_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    pending_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    available_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    total_earned: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    total_withdrawn: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
