# earnings/core/ledger.py
"""
Earnings Ledger.

Every balance mutation is an atomic delta (`SET col = col + :delta`) issued
together with an immutable LedgerEntry inside the caller's transaction:

  - the journal insert comes first and is keyed by
    (account, entry_type, reference); a replayed delta inserts nothing and
    the balance is left untouched;
  - debits are guarded in the WHERE clause (`available_balance >= amount`),
    so two concurrent withdrawals can never drive a balance negative.

Functions here never commit. The caller owns the transaction and must roll
back when a ledger call raises.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.config import settings
from earnings.core.errors import FailedPrecondition, InvalidArgument, NotFound
from earnings.core.money import quantize_money, utcnow
from earnings.db.upsert import dialect_insert
from earnings.models.earnings_account import ACTOR_TYPES, EarningsAccount
from earnings.models.ledger_entry import (
    COMMISSION_FINALIZED,
    EARNING_CREDITED,
    PAYOUT_PAID,
    PENDING_RELEASED,
    LedgerEntry,
)

logger = logging.getLogger(__name__)

_NO_SYNC = {"synchronize_session": False}


def normalize_actor_type(actor_type: str | None) -> str:
    t = (actor_type or "").strip().lower()
    if t not in ACTOR_TYPES:
        raise InvalidArgument(
            f"actor_type must be one of: {', '.join(ACTOR_TYPES)}",
            code="INVALID_ACTOR_TYPE",
        )
    return t


def _positive(amount: Any) -> Decimal:
    value = quantize_money(amount)
    if value <= 0:
        raise InvalidArgument("amount must be greater than zero", code="INVALID_AMOUNT")
    return value


async def get_account(
    db: AsyncSession,
    actor_type: str,
    actor_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Optional[EarningsAccount]:
    stmt = select(EarningsAccount).where(
        EarningsAccount.actor_type == normalize_actor_type(actor_type),
        EarningsAccount.actor_id == actor_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    # always re-read balances; delta updates bypass the identity map
    stmt = stmt.execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def ensure_account(
    db: AsyncSession,
    actor_type: str,
    actor_id: uuid.UUID,
    *,
    store_id: Optional[str] = None,
) -> EarningsAccount:
    """Idempotent get-or-create (INSERT ... ON CONFLICT DO NOTHING)."""
    t = normalize_actor_type(actor_type)
    stmt = (
        dialect_insert(db, EarningsAccount)
        .values(
            id=uuid.uuid4(),
            actor_type=t,
            actor_id=actor_id,
            store_id=store_id,
            pending_balance=Decimal("0.00"),
            available_balance=Decimal("0.00"),
            total_earned=Decimal("0.00"),
            total_withdrawn=Decimal("0.00"),
            created_at=utcnow(),
            updated_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["actor_type", "actor_id"])
    )
    await db.execute(stmt)

    account = await get_account(db, t, actor_id)
    if account is None:  # pragma: no cover - the insert above guarantees a row
        raise NotFound("Earnings account not found", code="ACCOUNT_NOT_FOUND")
    return account


async def _journal(
    db: AsyncSession,
    *,
    account_id: uuid.UUID,
    entry_type: str,
    amount: Decimal,
    reference: str,
    memo: Optional[str],
    details: Optional[dict[str, Any]],
) -> bool:
    """Insert the journal row; False when (account, type, reference) already exists."""
    if not reference:
        raise InvalidArgument("reference is required for ledger entries", code="MISSING_REFERENCE")

    stmt = (
        dialect_insert(db, LedgerEntry)
        .values(
            id=uuid.uuid4(),
            account_id=account_id,
            entry_type=entry_type,
            amount=amount,
            currency=settings.CURRENCY,
            reference=str(reference),
            memo=memo,
            details=details or {},
            occurred_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["account_id", "entry_type", "reference"])
    )
    res = await db.execute(stmt)
    return (res.rowcount or 0) > 0


async def credit_pending(
    db: AsyncSession,
    account_id: uuid.UUID,
    amount,
    *,
    reference: str,
    memo: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> bool:
    """pending += amount, total_earned += amount (commission finalized)."""
    value = _positive(amount)
    if not await _journal(
        db,
        account_id=account_id,
        entry_type=COMMISSION_FINALIZED,
        amount=value,
        reference=reference,
        memo=memo,
        details=details,
    ):
        logger.info("Ledger replay ignored: %s %s on account %s", COMMISSION_FINALIZED, reference, account_id)
        return False

    stmt = (
        update(EarningsAccount)
        .where(EarningsAccount.id == account_id)
        .values(
            pending_balance=EarningsAccount.pending_balance + value,
            total_earned=EarningsAccount.total_earned + value,
            updated_at=utcnow(),
        )
        .execution_options(**_NO_SYNC)
    )
    res = await db.execute(stmt)
    if res.rowcount != 1:
        raise NotFound("Earnings account not found", code="ACCOUNT_NOT_FOUND")
    return True


async def release_pending(
    db: AsyncSession,
    account_id: uuid.UUID,
    amount,
    *,
    reference: str,
    memo: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> bool:
    """pending -= amount, available += amount; refuses to overdraw pending."""
    value = _positive(amount)
    if not await _journal(
        db,
        account_id=account_id,
        entry_type=PENDING_RELEASED,
        amount=value,
        reference=reference,
        memo=memo,
        details=details,
    ):
        logger.info("Ledger replay ignored: %s %s on account %s", PENDING_RELEASED, reference, account_id)
        return False

    stmt = (
        update(EarningsAccount)
        .where(EarningsAccount.id == account_id)
        .where(EarningsAccount.pending_balance >= value)
        .values(
            pending_balance=EarningsAccount.pending_balance - value,
            available_balance=EarningsAccount.available_balance + value,
            updated_at=utcnow(),
        )
        .execution_options(**_NO_SYNC)
    )
    res = await db.execute(stmt)
    if res.rowcount != 1:
        raise FailedPrecondition(
            "Pending balance is lower than the amount to release",
            code="INSUFFICIENT_PENDING_BALANCE",
            context={"amount": value},
        )
    return True


async def credit_available(
    db: AsyncSession,
    account_id: uuid.UUID,
    amount,
    *,
    reference: str,
    memo: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> bool:
    """available += amount, total_earned += amount (vendor sales, staff earnings)."""
    value = _positive(amount)
    if not await _journal(
        db,
        account_id=account_id,
        entry_type=EARNING_CREDITED,
        amount=value,
        reference=reference,
        memo=memo,
        details=details,
    ):
        logger.info("Ledger replay ignored: %s %s on account %s", EARNING_CREDITED, reference, account_id)
        return False

    stmt = (
        update(EarningsAccount)
        .where(EarningsAccount.id == account_id)
        .values(
            available_balance=EarningsAccount.available_balance + value,
            total_earned=EarningsAccount.total_earned + value,
            updated_at=utcnow(),
        )
        .execution_options(**_NO_SYNC)
    )
    res = await db.execute(stmt)
    if res.rowcount != 1:
        raise NotFound("Earnings account not found", code="ACCOUNT_NOT_FOUND")
    return True


async def debit_withdrawal(
    db: AsyncSession,
    account_id: uuid.UUID,
    amount,
    *,
    reference: str,
    memo: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> bool:
    """available -= amount, total_withdrawn += amount; refuses to overdraw."""
    value = _positive(amount)
    if not await _journal(
        db,
        account_id=account_id,
        entry_type=PAYOUT_PAID,
        amount=value,
        reference=reference,
        memo=memo,
        details=details,
    ):
        logger.info("Ledger replay ignored: %s %s on account %s", PAYOUT_PAID, reference, account_id)
        return False

    stmt = (
        update(EarningsAccount)
        .where(EarningsAccount.id == account_id)
        .where(EarningsAccount.available_balance >= value)
        .values(
            available_balance=EarningsAccount.available_balance - value,
            total_withdrawn=EarningsAccount.total_withdrawn + value,
            updated_at=utcnow(),
        )
        .execution_options(**_NO_SYNC)
    )
    res = await db.execute(stmt)
    if res.rowcount != 1:
        raise FailedPrecondition(
            "Available balance no longer covers this payout",
            code="INSUFFICIENT_AVAILABLE_BALANCE",
            context={"amount": value},
        )
    return True
