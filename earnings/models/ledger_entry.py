# earnings/models/ledger_entry.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import JSONType, Money, UUIDType

# Entry types
COMMISSION_FINALIZED = "COMMISSION_FINALIZED"  # pending += amount, total_earned += amount
PENDING_RELEASED = "PENDING_RELEASED"          # pending -= amount, available += amount
EARNING_CREDITED = "EARNING_CREDITED"          # available += amount, total_earned += amount
PAYOUT_PAID = "PAYOUT_PAID"                    # available -= amount, total_withdrawn += amount


class LedgerEntry(Base):
    """
    Canonical, immutable journal of every balance delta.

    Stores:
      - entry_type (COMMISSION_FINALIZED, PENDING_RELEASED, EARNING_CREDITED, PAYOUT_PAID)
      - amount (always positive; the entry type decides direction)
      - reference (sale id, payout id, ...) for idempotency
      - details (JSON) for receipts, policies, etc.

    NOTE:
      - (account_id, entry_type, reference) is UNIQUE: replaying a delta is rejected.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("account_id", "entry_type", "reference", name="uq_ledger_entries_account_type_ref"),
        Index("ix_ledger_entries_account_occurred", "account_id", "occurred_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("earnings_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    entry_type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="ZAR")

    reference: Mapped[str] = mapped_column(String(128), nullable=False)
    memo: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
