# earnings/core/commission.py
"""
Commission Calculator (sale-created side).

Flow for one sale:
  1) resolve the referral code to an active partner (no code / unknown code => no-op)
  2) best-effort click conversion, committed on its own
  3) pending CommissionRecord via INSERT ... ON CONFLICT (sale_id) DO NOTHING,
     plus the partner's period sales and lifetime volume counters, in one
     transaction

A duplicate sale-created delivery loses the ON CONFLICT race and touches
nothing, so the volume counters are incremented exactly once per sale.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.attribution import convert_oldest_click, resolve_partner_by_referral_code
from earnings.core.config import settings
from earnings.core.errors import InvalidArgument
from earnings.core.money import ZERO, period_key, quantize_money, to_decimal, utcnow
from earnings.db.upsert import dialect_insert
from earnings.models.commission_record import COMMISSION_PENDING, CommissionRecord
from earnings.models.partner import Partner, PartnerMonthlySales
from earnings.models.seasonal_campaign import SeasonalCampaign

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal("0.0001")

# process_sale_created outcomes
SALE_RECORDED = "recorded"
SALE_DUPLICATE = "duplicate"
SALE_NO_REFERRAL = "no_referral"
SALE_UNATTRIBUTED = "unattributed"
SALE_FAILED = "failed"


@dataclass(frozen=True)
class BonusMultipliers:
    video_content: Decimal = ZERO
    community: Decimal = ZERO
    seasonal: Decimal = ZERO
    campaign_id: Optional[uuid.UUID] = None

    @property
    def total(self) -> Decimal:
        return to_decimal(self.video_content) + to_decimal(self.community) + to_decimal(self.seasonal)

    def snapshot(self) -> dict[str, Any]:
        return {
            "video_content": str(self.video_content),
            "community": str(self.community),
            "seasonal": str(self.seasonal),
            "campaign_id": str(self.campaign_id) if self.campaign_id else None,
        }


def compute_effective_rate(base_rate, bonuses: BonusMultipliers) -> Decimal:
    """base x (1 + sum of bonus multipliers), in percent."""
    rate = to_decimal(base_rate) * (Decimal("1") + bonuses.total)
    return rate.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)


def compute_commission(sale_total, effective_rate) -> Decimal:
    return quantize_money(to_decimal(sale_total) * to_decimal(effective_rate) / Decimal("100"))


async def select_active_campaign(
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
) -> Optional[SeasonalCampaign]:
    """
    The single campaign applied to a sale: among active campaigns whose window
    contains `now`, the highest bonus wins; ties go to the earliest start, then id.
    """
    at = now or utcnow()
    stmt = (
        select(SeasonalCampaign)
        .where(SeasonalCampaign.is_active.is_(True))
        .where(SeasonalCampaign.starts_at <= at)
        .where(SeasonalCampaign.ends_at >= at)
        .order_by(
            SeasonalCampaign.bonus_multiplier.desc(),
            SeasonalCampaign.starts_at.asc(),
            SeasonalCampaign.id.asc(),
        )
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def _bump_sales_volume(
    db: AsyncSession,
    *,
    partner_id: uuid.UUID,
    sale_total: Decimal,
    period: str,
) -> None:
    ins = dialect_insert(db, PartnerMonthlySales).values(
        id=uuid.uuid4(),
        partner_id=partner_id,
        period=period,
        amount=sale_total,
        order_count=1,
        updated_at=utcnow(),
    )
    await db.execute(
        ins.on_conflict_do_update(
            index_elements=["partner_id", "period"],
            set_={
                "amount": PartnerMonthlySales.amount + ins.excluded.amount,
                "order_count": PartnerMonthlySales.order_count + 1,
                "updated_at": ins.excluded.updated_at,
            },
        )
    )

    await db.execute(
        update(Partner)
        .where(Partner.id == partner_id)
        .values(
            total_revenue=Partner.total_revenue + sale_total,
            total_orders=Partner.total_orders + 1,
        )
        .execution_options(synchronize_session=False)
    )


async def record_sale_commission(
    db: AsyncSession,
    *,
    partner_id: uuid.UUID,
    sale_id: str,
    sale_total,
    store_id: Optional[str] = None,
    customer_id: Optional[str] = None,
) -> Optional[CommissionRecord]:
    """
    Create the pending commission for `sale_id`. Returns None when one already
    exists. Does not commit.
    """
    total = quantize_money(sale_total)
    if total <= 0:
        raise InvalidArgument("Sale total must be greater than zero", code="INVALID_SALE_TOTAL")

    partner = await db.get(Partner, partner_id)
    if partner is None:
        raise InvalidArgument("Partner not found", code="PARTNER_NOT_FOUND")

    # The campaign read must come before any write in this transaction; a
    # failure here would otherwise poison the commission insert.
    seasonal = ZERO
    campaign_id = None
    try:
        campaign = await select_active_campaign(db)
        if campaign is not None:
            seasonal = to_decimal(campaign.bonus_multiplier)
            campaign_id = campaign.id
    except SQLAlchemyError:
        logger.warning("Seasonal campaign lookup failed; sale %s priced without it", sale_id, exc_info=True)
        await db.rollback()
        partner = await db.get(Partner, partner_id, populate_existing=True)
        if partner is None:
            raise InvalidArgument("Partner not found", code="PARTNER_NOT_FOUND")

    bonuses = BonusMultipliers(
        video_content=to_decimal(partner.video_content_bonus),
        community=to_decimal(partner.community_bonus),
        seasonal=seasonal,
        campaign_id=campaign_id,
    )
    base_rate = to_decimal(partner.commission_rate)
    effective_rate = compute_effective_rate(base_rate, bonuses)
    amount = compute_commission(total, effective_rate)

    record_id = uuid.uuid4()
    stmt = (
        dialect_insert(db, CommissionRecord)
        .values(
            id=record_id,
            partner_id=partner_id,
            sale_id=sale_id,
            store_id=store_id,
            customer_id=customer_id,
            sale_total=total,
            base_rate=base_rate,
            effective_rate=effective_rate,
            commission_amount=amount,
            bonus_multipliers=bonuses.snapshot(),
            currency=settings.CURRENCY,
            status=COMMISSION_PENDING,
            created_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["sale_id"])
    )
    res = await db.execute(stmt)
    if (res.rowcount or 0) == 0:
        logger.info("Commission for sale %s already recorded; duplicate event ignored", sale_id)
        return None

    # volume metrics count at sale creation, before delivery
    await _bump_sales_volume(db, partner_id=partner_id, sale_total=total, period=period_key())

    record = await db.get(CommissionRecord, record_id)
    logger.info(
        "Commission recorded: sale=%s partner=%s total=%s rate=%s amount=%s",
        sale_id,
        partner_id,
        total,
        effective_rate,
        amount,
    )
    return record


async def process_sale_created(
    db: AsyncSession,
    *,
    sale_id: str,
    total,
    referral_code: Optional[str] = None,
    store_id: Optional[str] = None,
    customer_id: Optional[str] = None,
) -> str:
    """
    sale-created trigger. Never raises: the sale itself must not fail because
    commission processing did. Returns one of the SALE_* outcomes.
    """
    if not referral_code or not referral_code.strip():
        return SALE_NO_REFERRAL

    try:
        partner = await resolve_partner_by_referral_code(db, referral_code)
        if partner is None:
            logger.info("Sale %s carries unknown or inactive referral code %r", sale_id, referral_code)
            return SALE_UNATTRIBUTED
        partner_id = partner.id
    except SQLAlchemyError:
        logger.exception("Referral lookup failed for sale %s", sale_id)
        await db.rollback()
        return SALE_FAILED

    try:
        await convert_oldest_click(
            db,
            partner_id=partner_id,
            customer_id=customer_id,
            sale_id=sale_id,
            amount=to_decimal(total),
        )
        await db.commit()
    except (SQLAlchemyError, ValueError):
        await db.rollback()
        logger.warning("Click conversion failed for sale %s; continuing", sale_id, exc_info=True)

    try:
        record = await record_sale_commission(
            db,
            partner_id=partner_id,
            sale_id=sale_id,
            sale_total=total,
            store_id=store_id,
            customer_id=customer_id,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Commission processing failed for sale %s", sale_id)
        return SALE_FAILED

    return SALE_RECORDED if record is not None else SALE_DUPLICATE
