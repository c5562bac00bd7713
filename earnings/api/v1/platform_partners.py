# earnings/api/v1/platform_partners.py
from __future__ import annotations

import logging
import secrets
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.auth import require_platform_admin
from earnings.core.config import settings
from earnings.core.errors import FailedPrecondition, Internal, InvalidArgument, NotFound
from earnings.core.ledger import ensure_account
from earnings.core.tiers import BASE_TIER
from earnings.db.session import get_db
from earnings.models.earnings_account import ACTOR_PARTNER
from earnings.models.partner import PARTNER_STATUS_ACTIVE, Partner
from earnings.models.user import User
from earnings.schemas.partners import PartnerCreate, PartnerListOut, PartnerOut, PartnerUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/platform/partners", tags=["platform-partners"])

MAX_CODE_RETRIES = 30
CODE_LENGTH = 6
ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def _gen_referral_code() -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(CODE_LENGTH))


async def _allocate_unique_referral_code(db: AsyncSession) -> str:
    """
    Collision-safe allocator.
    Pre-checks to reduce collisions; the unique constraint still decides at commit.
    """
    for _ in range(MAX_CODE_RETRIES):
        code = _gen_referral_code()
        exists = (await db.execute(select(Partner.id).where(Partner.referral_code == code))).first()
        if exists:
            continue
        return code
    raise Internal("Could not allocate unique referral code", code="REFERRAL_CODE_EXHAUSTED")


async def _resolve_user(db: AsyncSession, payload: PartnerCreate) -> User:
    if payload.user_id is not None:
        user = await db.get(User, payload.user_id)
        if not user:
            raise NotFound("User not found", code="USER_NOT_FOUND")
        return user

    email = User.normalize_email(str(payload.email))
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user is not None:
        return user

    user = User(email=email, is_active=True)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        # race: created concurrently
        user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if user is None:
            raise Internal("Failed to create user", code="USER_CREATE_FAILED")
    return user


@router.post("", response_model=PartnerOut, status_code=status.HTTP_201_CREATED)
async def create_partner(
    payload: PartnerCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    try:
        payload.validate_choice()
    except ValueError as e:
        raise InvalidArgument(str(e))

    target_user = await _resolve_user(db, payload)

    existing = (await db.execute(select(Partner).where(Partner.user_id == target_user.id))).scalar_one_or_none()
    if existing:
        raise FailedPrecondition("Partner profile already exists for this user", code="PARTNER_EXISTS")

    partner = Partner(
        user_id=target_user.id,
        display_name=payload.display_name or target_user.full_name,
        referral_code=await _allocate_unique_referral_code(db),
        status=PARTNER_STATUS_ACTIVE,
        commission_rate=(
            payload.commission_rate
            if payload.commission_rate is not None
            else settings.DEFAULT_PARTNER_COMMISSION_RATE
        ),
        video_content_bonus=payload.video_content_bonus,
        community_bonus=payload.community_bonus,
        tier=BASE_TIER.name,
    )
    db.add(partner)

    try:
        await db.flush()
        await ensure_account(db, ACTOR_PARTNER, partner.id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise FailedPrecondition("Conflict creating partner", code="PARTNER_CONFLICT")

    await db.refresh(partner)
    logger.info("Partner %s registered for user %s (code %s)", partner.id, target_user.id, partner.referral_code)
    return partner


@router.get("", response_model=PartnerListOut)
async def list_partners(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    total = await db.scalar(select(func.count()).select_from(Partner))
    rows = (
        await db.execute(select(Partner).order_by(Partner.created_at.desc()).limit(limit).offset(offset))
    ).scalars().all()

    return PartnerListOut(items=list(rows), total=int(total or 0), limit=limit, offset=offset)


@router.patch("/{partner_id}", response_model=PartnerOut)
async def update_partner(
    partner_id: UUID,
    payload: PartnerUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    partner = await db.get(Partner, partner_id)
    if not partner:
        raise NotFound("Partner not found", code="PARTNER_NOT_FOUND")

    data = payload.model_dump(exclude_unset=True)
    for k, v in data.items():
        if v is None and k != "display_name":
            continue
        setattr(partner, k, v)

    await db.commit()
    await db.refresh(partner)
    return partner


@router.post("/{partner_id}/rotate-code", response_model=PartnerOut)
async def rotate_partner_code(
    partner_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    partner = await db.get(Partner, partner_id)
    if not partner:
        raise NotFound("Partner not found", code="PARTNER_NOT_FOUND")

    # collision-safe retry, relying on the DB unique constraint
    for _attempt in range(MAX_CODE_RETRIES):
        partner.referral_code = _gen_referral_code()
        try:
            await db.commit()
            await db.refresh(partner)
            return partner
        except IntegrityError:
            await db.rollback()
            partner = await db.get(Partner, partner_id)
            continue

    raise Internal("Failed to rotate referral code; retry later", code="REFERRAL_CODE_EXHAUSTED")
