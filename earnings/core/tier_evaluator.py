# earnings/core/tier_evaluator.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.config import settings
from earnings.core.errors import NotFound
from earnings.core.money import ZERO, period_key, to_decimal, utcnow
from earnings.core.tiers import next_tier, normalize_tier
from earnings.models.partner import Partner, PartnerMonthlySales
from earnings.models.tier_history import TierHistoryEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierChange:
    partner_id: uuid.UUID
    previous_tier: Optional[str]
    new_tier: str
    previous_rate: Optional[Decimal]
    new_rate: Decimal
    monthly_sales: Decimal
    period: str


async def current_period_sales(
    db: AsyncSession,
    partner_id: uuid.UUID,
    *,
    period: Optional[str] = None,
) -> Decimal:
    stmt = (
        select(PartnerMonthlySales.amount)
        .where(PartnerMonthlySales.partner_id == partner_id)
        .where(PartnerMonthlySales.period == (period or period_key()))
    )
    amount = (await db.execute(stmt)).scalar_one_or_none()
    return to_decimal(amount) if amount is not None else ZERO


async def evaluate_partner_tier(
    db: AsyncSession,
    partner_id: uuid.UUID,
    *,
    period: Optional[str] = None,
) -> Optional[TierChange]:
    """
    Recompute the partner's tier from the current period's sales.

    The tier/rate write is a compare-and-set on the stored tier, so two
    concurrent evaluations append at most one history entry per change.
    Returns the applied change, or None when the tier is unchanged. Does not commit.
    """
    period = period or period_key()

    partner = (
        await db.execute(
            select(Partner).where(Partner.id == partner_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if partner is None:
        raise NotFound("Partner not found", code="PARTNER_NOT_FOUND")

    sales = await current_period_sales(db, partner_id, period=period)
    target = next_tier(partner.tier, sales, allow_downgrade=settings.TIER_ALLOW_DOWNGRADE)

    if normalize_tier(target.name) == normalize_tier(partner.tier):
        return None

    previous_tier = partner.tier
    previous_rate = to_decimal(partner.commission_rate)
    now = utcnow()

    res = await db.execute(
        update(Partner)
        .where(Partner.id == partner_id)
        .where(Partner.tier == previous_tier)
        .values(tier=target.name, commission_rate=target.rate, tier_updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        # another evaluation already moved the tier
        return None

    db.add(
        TierHistoryEntry(
            partner_id=partner_id,
            previous_tier=previous_tier,
            new_tier=target.name,
            previous_rate=previous_rate,
            new_rate=target.rate,
            monthly_sales=sales,
            period=period,
            changed_at=now,
        )
    )
    await db.flush()

    logger.info(
        "Partner %s tier %s -> %s (rate %s -> %s, %s sales %s)",
        partner_id,
        previous_tier,
        target.name,
        previous_rate,
        target.rate,
        period,
        sales,
    )
    return TierChange(
        partner_id=partner_id,
        previous_tier=previous_tier,
        new_tier=target.name,
        previous_rate=previous_rate,
        new_rate=target.rate,
        monthly_sales=sales,
        period=period,
    )
