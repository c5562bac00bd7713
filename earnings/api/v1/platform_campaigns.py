# earnings/api/v1/platform_campaigns.py
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.auth import require_platform_admin
from earnings.core.errors import NotFound
from earnings.db.session import get_db
from earnings.models.seasonal_campaign import SeasonalCampaign
from earnings.models.user import User
from earnings.schemas.campaigns import CampaignCreate, CampaignListOut, CampaignOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/platform/campaigns", tags=["platform-campaigns"])


@router.post("", response_model=CampaignOut, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    payload: CampaignCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    campaign = SeasonalCampaign(
        name=payload.name.strip(),
        is_active=payload.is_active,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        bonus_multiplier=payload.bonus_multiplier,
    )
    db.add(campaign)
    await db.commit()
    await db.refresh(campaign)
    logger.info("Seasonal campaign %s created (+%s)", campaign.id, campaign.bonus_multiplier)
    return campaign


@router.get("", response_model=CampaignListOut)
async def list_campaigns(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
    active_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    base = select(SeasonalCampaign)
    count = select(func.count()).select_from(SeasonalCampaign)
    if active_only:
        base = base.where(SeasonalCampaign.is_active.is_(True))
        count = count.where(SeasonalCampaign.is_active.is_(True))

    total = await db.scalar(count)
    rows = (
        await db.execute(base.order_by(SeasonalCampaign.starts_at.desc()).limit(limit).offset(offset))
    ).scalars().all()
    return CampaignListOut(items=list(rows), total=int(total or 0), limit=limit, offset=offset)


@router.post("/{campaign_id}/deactivate", response_model=CampaignOut)
async def deactivate_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    campaign = await db.get(SeasonalCampaign, campaign_id)
    if not campaign:
        raise NotFound("Campaign not found", code="CAMPAIGN_NOT_FOUND")

    campaign.is_active = False
    await db.commit()
    await db.refresh(campaign)
    return campaign
