# earnings/core/attribution.py
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.errors import InvalidArgument, NotFound
from earnings.core.money import quantize_money, utcnow
from earnings.models.partner import PARTNER_STATUS_ACTIVE, Partner
from earnings.models.referral_click import ReferralClick

logger = logging.getLogger(__name__)


def normalize_referral_code(code: str | None) -> str | None:
    return Partner.normalize_referral_code(code)


async def resolve_partner_by_referral_code(
    db: AsyncSession,
    referral_code: str | None,
) -> Optional[Partner]:
    """Active partner owning `referral_code` (case-insensitive), or None."""
    code = normalize_referral_code(referral_code)
    if not code:
        return None

    stmt = (
        select(Partner)
        .where(Partner.referral_code == code)
        .where(Partner.status == PARTNER_STATUS_ACTIVE)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def convert_oldest_click(
    db: AsyncSession,
    *,
    partner_id: uuid.UUID,
    customer_id: str | None,
    sale_id: str,
    amount: Decimal,
) -> Optional[uuid.UUID]:
    """
    Mark the partner's oldest unconverted click for this customer as converted.

    The `converted = false` guard on the UPDATE keeps the flag monotonic when
    two sales race for the same click; the loser simply converts nothing.
    A sale converts at most one click: a redelivered sale finds its click
    already converted and stops (sale_id is unique on referral_clicks).
    Returns the converted click id, or None.
    """
    if not customer_id:
        return None

    already = (
        await db.execute(select(ReferralClick.id).where(ReferralClick.sale_id == sale_id).limit(1))
    ).scalar_one_or_none()
    if already is not None:
        logger.info("Sale %s already converted click %s", sale_id, already)
        return None

    oldest = (
        select(ReferralClick.id)
        .where(ReferralClick.partner_id == partner_id)
        .where(ReferralClick.customer_id == customer_id)
        .where(ReferralClick.converted.is_(False))
        .order_by(ReferralClick.clicked_at.asc(), ReferralClick.id.asc())
        .limit(1)
    )
    click_id = (await db.execute(oldest)).scalar_one_or_none()
    if click_id is None:
        return None

    stmt = (
        update(ReferralClick)
        .where(ReferralClick.id == click_id)
        .where(ReferralClick.converted.is_(False))
        .values(
            converted=True,
            sale_id=sale_id,
            conversion_amount=quantize_money(amount),
            converted_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    res = await db.execute(stmt)
    if res.rowcount != 1:
        return None
    return click_id


async def record_click(
    db: AsyncSession,
    *,
    referral_code: str,
    customer_id: str | None,
) -> ReferralClick:
    """Track a click on a partner link. Unknown or inactive codes are NotFound."""
    code = normalize_referral_code(referral_code)
    if not code:
        raise InvalidArgument("referral_code is required", code="MISSING_REFERRAL_CODE")

    partner = await resolve_partner_by_referral_code(db, code)
    if partner is None:
        raise NotFound("Referral code not found", code="REFERRAL_CODE_NOT_FOUND")

    click = ReferralClick(
        partner_id=partner.id,
        customer_id=(customer_id or "").strip() or None,
        converted=False,
        clicked_at=utcnow(),
    )
    db.add(click)
    await db.flush()
    return click
