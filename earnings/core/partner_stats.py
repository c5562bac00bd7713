# earnings/core/partner_stats.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.errors import NotFound
from earnings.core.ledger import get_account
from earnings.core.money import ZERO, period_key, quantize_money, to_decimal
from earnings.core.tier_evaluator import current_period_sales
from earnings.models.commission_record import COMMISSION_COMPLETED, COMMISSION_PENDING, CommissionRecord
from earnings.models.earnings_account import ACTOR_PARTNER
from earnings.models.partner import Partner
from earnings.models.referral_click import ReferralClick


@dataclass(frozen=True)
class PartnerStats:
    partner: Partner
    total_commissions: Decimal
    pending_commissions: Decimal
    completed_commissions: Decimal
    commission_count: int
    total_clicks: int
    conversions: int
    conversion_rate: Decimal  # percent of clicks converted
    current_period: str
    current_period_sales: Decimal
    pending_balance: Decimal
    available_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal


async def get_partner_stats(db: AsyncSession, partner_id: uuid.UUID, *, partner: Optional[Partner] = None) -> PartnerStats:
    """Profile plus aggregates over commissions, clicks and the partner's ledger account."""
    if partner is None:
        partner = await db.get(Partner, partner_id)
    if partner is None:
        raise NotFound("Partner not found", code="PARTNER_NOT_FOUND")

    commissions_stmt = select(
        func.count(CommissionRecord.id),
        func.coalesce(func.sum(CommissionRecord.commission_amount), 0),
        func.coalesce(
            func.sum(case((CommissionRecord.status == COMMISSION_PENDING, CommissionRecord.commission_amount), else_=0)),
            0,
        ),
        func.coalesce(
            func.sum(case((CommissionRecord.status == COMMISSION_COMPLETED, CommissionRecord.commission_amount), else_=0)),
            0,
        ),
    ).where(CommissionRecord.partner_id == partner_id)
    commission_count, total, pending, completed = (await db.execute(commissions_stmt)).one()

    clicks_stmt = select(
        func.count(ReferralClick.id),
        func.coalesce(func.sum(case((ReferralClick.converted.is_(True), 1), else_=0)), 0),
    ).where(ReferralClick.partner_id == partner_id)
    total_clicks, conversions = (await db.execute(clicks_stmt)).one()

    total_clicks = int(total_clicks or 0)
    conversions = int(conversions or 0)
    rate = ZERO
    if total_clicks:
        rate = quantize_money(Decimal(conversions) * Decimal("100") / Decimal(total_clicks))

    period = period_key()
    account = await get_account(db, ACTOR_PARTNER, partner_id)

    return PartnerStats(
        partner=partner,
        total_commissions=quantize_money(total),
        pending_commissions=quantize_money(pending),
        completed_commissions=quantize_money(completed),
        commission_count=int(commission_count or 0),
        total_clicks=total_clicks,
        conversions=conversions,
        conversion_rate=rate,
        current_period=period,
        current_period_sales=await current_period_sales(db, partner_id, period=period),
        pending_balance=to_decimal(account.pending_balance) if account else ZERO,
        available_balance=to_decimal(account.available_balance) if account else ZERO,
        total_earned=to_decimal(account.total_earned) if account else ZERO,
        total_withdrawn=to_decimal(account.total_withdrawn) if account else ZERO,
    )
