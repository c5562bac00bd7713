# earnings/core/finalizer.py
"""
Commission Finalizer.

Delivery confirmation moves a commission pending -> completed and credits
the partner's pending balance in ONE transaction:

  UPDATE commission_records SET status='completed' WHERE sale_id=? AND status='pending'

Only the caller whose UPDATE matched credits the ledger; every other caller
(at-least-once redelivery, concurrent retry) sees an already-completed
commission and returns without touching money. The tier is re-evaluated
afterwards in its own transaction.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.errors import Internal, InvalidArgument, LedgerError, NotFound
from earnings.core.ledger import credit_pending, ensure_account
from earnings.core.money import to_decimal, utcnow
from earnings.core.tier_evaluator import TierChange, evaluate_partner_tier
from earnings.models.commission_record import COMMISSION_COMPLETED, COMMISSION_PENDING, CommissionRecord
from earnings.models.earnings_account import ACTOR_PARTNER

logger = logging.getLogger(__name__)

DELIVERY_FINALIZED = "finalized"
DELIVERY_ALREADY_FINALIZED = "already_finalized"
DELIVERY_SKIPPED = "skipped"


@dataclass(frozen=True)
class FinalizationResult:
    sale_id: str
    partner_id: uuid.UUID
    commission_amount: Decimal
    already_finalized: bool
    tier_change: Optional[TierChange] = None


def commission_reference(sale_id: str) -> str:
    return f"commission:{sale_id}"


async def get_commission_by_sale(db: AsyncSession, sale_id: str) -> Optional[CommissionRecord]:
    stmt = (
        select(CommissionRecord)
        .where(CommissionRecord.sale_id == sale_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def finalize_commission(db: AsyncSession, sale_id: str) -> FinalizationResult:
    sale_id = (sale_id or "").strip()
    if not sale_id:
        raise InvalidArgument("sale_id is required", code="MISSING_SALE_ID")

    commission = await get_commission_by_sale(db, sale_id)
    if commission is None:
        raise NotFound("No commission found for this sale", code="COMMISSION_NOT_FOUND")

    partner_id = commission.partner_id
    amount = to_decimal(commission.commission_amount)

    if commission.status == COMMISSION_COMPLETED:
        return FinalizationResult(sale_id, partner_id, amount, already_finalized=True)

    try:
        res = await db.execute(
            update(CommissionRecord)
            .where(CommissionRecord.sale_id == sale_id)
            .where(CommissionRecord.status == COMMISSION_PENDING)
            .values(status=COMMISSION_COMPLETED, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            await db.rollback()
            logger.info("Commission for sale %s finalized concurrently", sale_id)
            return FinalizationResult(sale_id, partner_id, amount, already_finalized=True)

        account = await ensure_account(db, ACTOR_PARTNER, partner_id)
        if amount > 0:
            await credit_pending(
                db,
                account.id,
                amount,
                reference=commission_reference(sale_id),
                memo="Commission finalized on delivery",
                details={"sale_id": sale_id, "commission_id": str(commission.id)},
            )
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Finalization failed for sale %s", sale_id)
        raise Internal("Could not finalize commission", code="FINALIZATION_FAILED") from exc

    logger.info("Commission finalized: sale=%s partner=%s amount=%s", sale_id, partner_id, amount)

    tier_change = None
    try:
        tier_change = await evaluate_partner_tier(db, partner_id)
        await db.commit()
    except (LedgerError, SQLAlchemyError):
        await db.rollback()
        logger.exception("Tier evaluation failed for partner %s after sale %s", partner_id, sale_id)

    return FinalizationResult(sale_id, partner_id, amount, already_finalized=False, tier_change=tier_change)


async def handle_delivery_confirmed(db: AsyncSession, sale_id: str) -> str:
    """
    Speculative finalization for every delivered sale. Sales without a
    referral commission are the common case and report DELIVERY_SKIPPED.
    """
    try:
        result = await finalize_commission(db, sale_id)
    except NotFound:
        return DELIVERY_SKIPPED
    return DELIVERY_ALREADY_FINALIZED if result.already_finalized else DELIVERY_FINALIZED
