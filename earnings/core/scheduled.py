# earnings/core/scheduled.py
"""
Scheduled operations.

Both jobs are explicit feature-gated interfaces: with their flag off they
raise FeatureNotImplemented so a scheduler wired to them fails loudly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.config import settings
from earnings.core.errors import FeatureNotImplemented, InvalidArgument
from earnings.core.money import period_key
from earnings.models.partner import PartnerMonthlySales

logger = logging.getLogger(__name__)

JOB_RESET_MONTHLY_SALES = "reset-monthly-sales"
JOB_PROCESS_BATCH_PAYOUTS = "process-batch-payouts"


@dataclass(frozen=True)
class MonthlyRolloverSummary:
    period: str
    partners_with_sales: int


async def reset_monthly_sales(db: AsyncSession, *, period: Optional[str] = None) -> MonthlyRolloverSummary:
    """
    Monthly sales "reset".

    Sales are accumulated per (partner, YYYY-MM) row, so a new month starts
    from zero without touching any data. The job only reports how many
    partners already carry sales in the current period.
    """
    if not settings.FEATURE_MONTHLY_SALES_RESET:
        raise FeatureNotImplemented(
            "Monthly sales reset is disabled",
            code="FEATURE_DISABLED",
            context={"feature": "FEATURE_MONTHLY_SALES_RESET"},
        )

    current = period or period_key()
    count = await db.scalar(
        select(func.count()).select_from(PartnerMonthlySales).where(PartnerMonthlySales.period == current)
    )
    summary = MonthlyRolloverSummary(period=current, partners_with_sales=int(count or 0))
    logger.info("Monthly sales rollover for %s: %s partners with sales", summary.period, summary.partners_with_sales)
    return summary


async def process_batch_payouts(db: AsyncSession) -> None:
    if not settings.FEATURE_BATCH_PAYOUTS:
        raise FeatureNotImplemented(
            "Batch payout processing is disabled",
            code="FEATURE_DISABLED",
            context={"feature": "FEATURE_BATCH_PAYOUTS"},
        )
    # Disbursement needs a payment-gateway integration that does not exist yet.
    raise FeatureNotImplemented(
        "Batch payout processing requires a payment gateway integration",
        code="NOT_IMPLEMENTED",
        context={"feature": "FEATURE_BATCH_PAYOUTS"},
    )


async def run_job(db: AsyncSession, job_name: str):
    name = (job_name or "").strip().lower()
    if name == JOB_RESET_MONTHLY_SALES:
        return await reset_monthly_sales(db)
    if name == JOB_PROCESS_BATCH_PAYOUTS:
        return await process_batch_payouts(db)
    raise InvalidArgument(f"Unknown job {job_name!r}", code="UNKNOWN_JOB")
