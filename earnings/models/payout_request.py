# earnings/models/payout_request.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import Money, Rate, UUIDType

PAYOUT_PENDING = "pending"
PAYOUT_APPROVED = "approved"
PAYOUT_REJECTED = "rejected"
PAYOUT_PAID = "paid"


class PayoutRequest(Base):
    """
    Withdrawal instruction awaiting human approval.

    `requested_amount` is what the actor asked for; `payable_amount` is what
    the ledger validates and eventually deducts (equal to requested for
    partners/staff, the net payout for vendors).
    """

    __tablename__ = "payout_requests"
    __table_args__ = (
        Index("ix_payout_requests_actor", "actor_type", "actor_id"),
        Index("ix_payout_requests_status_requested", "status", "requested_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    # partner | vendor | staff
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("earnings_accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    requested_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payable_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="ZAR")

    # Bank details snapshot
    account_holder: Mapped[str] = mapped_column(String(200), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(120), nullable=False)
    account_number: Mapped[str] = mapped_column(String(40), nullable=False)
    branch_code: Mapped[str] = mapped_column(String(20), nullable=False)
    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # pending | approved | rejected | paid
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PAYOUT_PENDING)

    # Vendor breakdown (vendor actor type only)
    store_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    gross_amount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    store_commission_rate: Mapped[Optional[Decimal]] = mapped_column(Rate, nullable=True)
    store_cut: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    net_payout: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    decided_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
