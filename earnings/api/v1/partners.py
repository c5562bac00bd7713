# earnings/api/v1/partners.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.auth import get_current_user, is_platform_admin
from earnings.core.attribution import record_click
from earnings.core.errors import InvalidArgument, NotFound, PermissionDenied
from earnings.core.partner_stats import get_partner_stats
from earnings.db.session import get_db
from earnings.models.partner import Partner
from earnings.models.user import User
from earnings.schemas.partners import ClickCreate, ClickOut, PartnerOut, PartnerStatsOut

router = APIRouter(prefix="/partners", tags=["partners"])


def _parse_partner_id(raw: str) -> uuid.UUID:
    raw = (raw or "").strip()
    if not raw:
        raise InvalidArgument("partner_id is required", code="MISSING_PARTNER_ID")
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise InvalidArgument("partner_id is not a valid id", code="INVALID_PARTNER_ID")


@router.get("/{partner_id}/stats", response_model=PartnerStatsOut)
async def partner_stats(
    partner_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Partner profile plus aggregated stats. Readable by the partner's own user
    and by platform admins.
    """
    pid = _parse_partner_id(partner_id)

    partner = await db.get(Partner, pid)
    if partner is None:
        raise NotFound("Partner not found", code="PARTNER_NOT_FOUND")
    if partner.user_id != user.id and not await is_platform_admin(db, user):
        raise PermissionDenied("Not allowed to view this partner")

    stats = await get_partner_stats(db, pid, partner=partner)
    return PartnerStatsOut(
        partner=PartnerOut.model_validate(stats.partner),
        total_commissions=stats.total_commissions,
        pending_commissions=stats.pending_commissions,
        completed_commissions=stats.completed_commissions,
        commission_count=stats.commission_count,
        total_clicks=stats.total_clicks,
        conversions=stats.conversions,
        conversion_rate=stats.conversion_rate,
        tier=stats.partner.tier,
        commission_rate=stats.partner.commission_rate,
        current_period=stats.current_period,
        current_period_sales=stats.current_period_sales,
        pending_balance=stats.pending_balance,
        available_balance=stats.available_balance,
        total_earned=stats.total_earned,
        total_withdrawn=stats.total_withdrawn,
    )


@router.post("/clicks", response_model=ClickOut, status_code=status.HTTP_201_CREATED)
async def track_click(payload: ClickCreate, db: AsyncSession = Depends(get_db)):
    """Public: called when a customer follows a partner link."""
    click = await record_click(db, referral_code=payload.referral_code, customer_id=payload.customer_id)
    await db.commit()
    await db.refresh(click)
    return click
