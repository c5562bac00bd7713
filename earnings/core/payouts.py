# earnings/core/payouts.py
"""
Payout Request Workflow.

Submission validates, in order:
  a) payable amount >= minimum payout for the actor type
  b) payable amount <= available balance minus the payable total of the
     account's open (pending, approved) requests, read under a row lock in
     the same transaction that inserts the request
  c) bank details complete

A failing rule raises and persists nothing. Submission never moves money;
only the approved -> paid transition debits the ledger.

For vendors the Vendor Commission Splitter runs first and the NET payout is
the payable amount.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.config import settings
from earnings.core.errors import FailedPrecondition, Internal, InvalidArgument, LedgerError, NotFound
from earnings.core.ledger import debit_withdrawal, get_account, normalize_actor_type
from earnings.core.money import ZERO, quantize_money, to_decimal, utcnow
from earnings.core.vendor_split import VendorSplit, split_vendor_payout
from earnings.models.earnings_account import ACTOR_VENDOR
from earnings.models.payout_request import (
    PAYOUT_APPROVED,
    PAYOUT_PAID,
    PAYOUT_PENDING,
    PAYOUT_REJECTED,
    PayoutRequest,
)

logger = logging.getLogger(__name__)

ACCOUNT_TYPES = {"savings", "cheque", "current"}

# requests whose payable amount is still owed out of the available balance
OPEN_STATUSES = (PAYOUT_PENDING, PAYOUT_APPROVED)


@dataclass(frozen=True)
class BankDetails:
    account_holder: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    branch_code: Optional[str] = None
    account_type: Optional[str] = None

    def missing_fields(self) -> list[str]:
        return [f.name for f in fields(self) if not (getattr(self, f.name) or "").strip()]


def payout_reference(payout_id: uuid.UUID) -> str:
    return f"payout:{payout_id}"


def _check_bank_details(bank: BankDetails) -> None:
    missing = bank.missing_fields()
    if missing:
        raise InvalidArgument(
            "Bank details are incomplete",
            code="INCOMPLETE_BANK_DETAILS",
            context={"missing": missing},
        )
    if bank.account_type.strip().lower() not in ACCOUNT_TYPES:
        raise InvalidArgument(
            f"account_type must be one of: {', '.join(sorted(ACCOUNT_TYPES))}",
            code="INVALID_ACCOUNT_TYPE",
        )


async def reserved_amount(db: AsyncSession, account_id: uuid.UUID) -> Decimal:
    """Payable total of the account's pending and approved requests."""
    stmt = select(func.coalesce(func.sum(PayoutRequest.payable_amount), 0)).where(
        PayoutRequest.account_id == account_id,
        PayoutRequest.status.in_(OPEN_STATUSES),
    )
    return quantize_money(await db.scalar(stmt))


async def submit_payout_request(
    db: AsyncSession,
    *,
    actor_type: str,
    actor_id: uuid.UUID,
    amount,
    bank: BankDetails,
    store_id: Optional[str] = None,
    store_commission_rate=None,
    notes: Optional[str] = None,
) -> PayoutRequest:
    t = normalize_actor_type(actor_type)

    try:
        requested = quantize_money(amount)
    except ValueError:
        raise InvalidArgument("amount must be a number", code="INVALID_AMOUNT")
    if requested <= 0:
        raise InvalidArgument("amount must be greater than zero", code="INVALID_AMOUNT")

    split: Optional[VendorSplit] = None
    if t == ACTOR_VENDOR:
        rate = (
            store_commission_rate
            if store_commission_rate is not None
            else settings.DEFAULT_STORE_COMMISSION_RATE
        )
        try:
            split = split_vendor_payout(requested, rate)
        except ValueError as exc:
            raise InvalidArgument(str(exc), code="INVALID_STORE_COMMISSION_RATE")
        payable = split.net_payout
    else:
        payable = requested

    try:
        # (a) minimum
        minimum = settings.minimum_payout_for(t)
        if payable < minimum:
            raise FailedPrecondition(
                f"Minimum payout for {t} is {settings.CURRENCY} {minimum}",
                code="BELOW_MINIMUM_PAYOUT",
                context={"minimum": minimum, "requested": payable},
            )

        # (b) balance, locked for the rest of the transaction; open requests
        # already claim part of it
        account = await get_account(db, t, actor_id, for_update=True)
        available = ZERO
        reserved = ZERO
        if account is not None:
            reserved = await reserved_amount(db, account.id)
            available = to_decimal(account.available_balance) - reserved
        if account is None or payable > available:
            raise FailedPrecondition(
                "Requested amount exceeds available balance",
                code="INSUFFICIENT_AVAILABLE_BALANCE",
                context={"available": available, "reserved": reserved, "requested": payable},
            )

        # (c) bank details
        _check_bank_details(bank)

        payout = PayoutRequest(
            actor_type=t,
            actor_id=actor_id,
            account_id=account.id,
            requested_amount=requested,
            payable_amount=payable,
            currency=settings.CURRENCY,
            account_holder=bank.account_holder.strip(),
            bank_name=bank.bank_name.strip(),
            account_number=bank.account_number.strip(),
            branch_code=bank.branch_code.strip(),
            account_type=bank.account_type.strip().lower(),
            status=PAYOUT_PENDING,
            store_id=store_id,
            notes=notes,
            requested_at=utcnow(),
        )
        if split is not None:
            payout.gross_amount = split.gross_amount
            payout.store_commission_rate = split.commission_rate
            payout.store_cut = split.store_cut
            payout.net_payout = split.net_payout

        db.add(payout)
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Payout request failed for %s %s", t, actor_id)
        raise Internal("Could not create payout request", code="PAYOUT_CREATE_FAILED") from exc

    await db.refresh(payout)
    logger.info("Payout requested: id=%s actor=%s:%s payable=%s", payout.id, t, actor_id, payable)
    return payout


async def get_payout(db: AsyncSession, payout_id: uuid.UUID, *, for_update: bool = False) -> PayoutRequest:
    stmt = select(PayoutRequest).where(PayoutRequest.id == payout_id).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    payout = (await db.execute(stmt)).scalar_one_or_none()
    if payout is None:
        raise NotFound("Payout request not found", code="PAYOUT_NOT_FOUND")
    return payout


async def _transition(
    db: AsyncSession,
    payout_id: uuid.UUID,
    *,
    from_status: str,
    to_status: str,
    values: dict,
) -> bool:
    """Compare-and-set on status. False when another caller moved it first."""
    res = await db.execute(
        update(PayoutRequest)
        .where(PayoutRequest.id == payout_id)
        .where(PayoutRequest.status == from_status)
        .values(status=to_status, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def _illegal(payout: PayoutRequest, target: str) -> FailedPrecondition:
    return FailedPrecondition(
        f"Cannot move a {payout.status} payout to {target}",
        code="INVALID_PAYOUT_TRANSITION",
        context={"status": payout.status, "target": target},
    )


async def _run_transition(db: AsyncSession, payout_id: uuid.UUID, work) -> PayoutRequest:
    try:
        await work()
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Payout transition failed for %s", payout_id)
        raise Internal("Could not update payout request", code="PAYOUT_UPDATE_FAILED") from exc
    return await get_payout(db, payout_id)


async def approve_payout(db: AsyncSession, payout_id: uuid.UUID, *, decided_by: uuid.UUID) -> PayoutRequest:
    async def work():
        payout = await get_payout(db, payout_id, for_update=True)
        if payout.status == PAYOUT_APPROVED:
            return
        if payout.status != PAYOUT_PENDING:
            raise _illegal(payout, PAYOUT_APPROVED)
        if not await _transition(
            db,
            payout_id,
            from_status=PAYOUT_PENDING,
            to_status=PAYOUT_APPROVED,
            values={"approved_at": utcnow(), "decided_by": decided_by},
        ):
            raise _illegal(await get_payout(db, payout_id), PAYOUT_APPROVED)
        logger.info("Payout %s approved by %s", payout_id, decided_by)

    return await _run_transition(db, payout_id, work)


async def reject_payout(
    db: AsyncSession,
    payout_id: uuid.UUID,
    *,
    decided_by: uuid.UUID,
    reason: str,
) -> PayoutRequest:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidArgument("A rejection reason is required", code="MISSING_REJECTION_REASON")

    async def work():
        payout = await get_payout(db, payout_id, for_update=True)
        if payout.status == PAYOUT_REJECTED:
            return
        if payout.status != PAYOUT_PENDING:
            raise _illegal(payout, PAYOUT_REJECTED)
        if not await _transition(
            db,
            payout_id,
            from_status=PAYOUT_PENDING,
            to_status=PAYOUT_REJECTED,
            values={"rejected_at": utcnow(), "decided_by": decided_by, "rejection_reason": reason},
        ):
            raise _illegal(await get_payout(db, payout_id), PAYOUT_REJECTED)
        logger.info("Payout %s rejected by %s: %s", payout_id, decided_by, reason)

    return await _run_transition(db, payout_id, work)


async def mark_payout_paid(
    db: AsyncSession,
    payout_id: uuid.UUID,
    *,
    decided_by: uuid.UUID,
    payment_reference: Optional[str] = None,
) -> PayoutRequest:
    """approved -> paid; debits the ledger in the same transaction."""

    async def work():
        payout = await get_payout(db, payout_id, for_update=True)
        if payout.status == PAYOUT_PAID:
            return
        if payout.status != PAYOUT_APPROVED:
            raise _illegal(payout, PAYOUT_PAID)

        amount = to_decimal(payout.payable_amount)
        account_id = payout.account_id
        if not await _transition(
            db,
            payout_id,
            from_status=PAYOUT_APPROVED,
            to_status=PAYOUT_PAID,
            values={"paid_at": utcnow(), "payment_reference": payment_reference},
        ):
            raise _illegal(await get_payout(db, payout_id), PAYOUT_PAID)

        if amount > 0:
            await debit_withdrawal(
                db,
                account_id,
                amount,
                reference=payout_reference(payout_id),
                memo="Payout disbursed",
                details={"payout_id": str(payout_id), "payment_reference": payment_reference},
            )
        logger.info("Payout %s marked paid (%s) by %s", payout_id, amount, decided_by)

    return await _run_transition(db, payout_id, work)


async def list_actor_payouts(
    db: AsyncSession,
    *,
    actor_type: str,
    actor_id: uuid.UUID,
    limit: int = 50,
    offset: int = 0,
) -> list[PayoutRequest]:
    stmt = (
        select(PayoutRequest)
        .where(PayoutRequest.actor_type == normalize_actor_type(actor_type))
        .where(PayoutRequest.actor_id == actor_id)
        .order_by(PayoutRequest.requested_at.desc(), PayoutRequest.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list((await db.execute(stmt)).scalars().all())


async def list_payouts(
    db: AsyncSession,
    *,
    status: Optional[str] = None,
    actor_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[PayoutRequest]:
    stmt = select(PayoutRequest)
    if status:
        stmt = stmt.where(PayoutRequest.status == status.strip().lower())
    if actor_type:
        stmt = stmt.where(PayoutRequest.actor_type == normalize_actor_type(actor_type))
    stmt = stmt.order_by(PayoutRequest.requested_at.desc(), PayoutRequest.id.desc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())
