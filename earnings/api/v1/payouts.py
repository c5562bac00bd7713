# earnings/api/v1/payouts.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.actors import own_actor_id, owned_actors
from earnings.api.deps.auth import get_current_user, is_platform_admin, require_platform_admin
from earnings.core.errors import NotFound, PermissionDenied
from earnings.core.ledger import normalize_actor_type
from earnings.core.payouts import (
    BankDetails,
    approve_payout,
    list_actor_payouts,
    list_payouts,
    mark_payout_paid,
    reject_payout,
    submit_payout_request,
)
from earnings.db.session import get_db
from earnings.models.user import User
from earnings.schemas.payouts import (
    PayoutCreate,
    PayoutListOut,
    PayoutMarkPaidRequest,
    PayoutOut,
    PayoutRejectRequest,
)

router = APIRouter(prefix="/payouts", tags=["payouts"])


@router.post("", response_model=PayoutOut, status_code=status.HTTP_201_CREATED)
async def create_payout_request(
    payload: PayoutCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Submit a withdrawal request. Rules are checked in order and the first
    failure is returned by name:
      BELOW_MINIMUM_PAYOUT, INSUFFICIENT_AVAILABLE_BALANCE, INCOMPLETE_BANK_DETAILS
    """
    actor_type = normalize_actor_type(payload.actor_type)
    mine = await own_actor_id(db, user, actor_type)

    actor_id = payload.actor_id or mine
    if actor_id is None:
        raise NotFound(f"No {actor_type} profile for this user", code="ACTOR_NOT_FOUND")
    if actor_id != mine and not await is_platform_admin(db, user):
        raise PermissionDenied("Payout requests can only be submitted for your own account")

    bank = payload.bank_details
    return await submit_payout_request(
        db,
        actor_type=actor_type,
        actor_id=actor_id,
        amount=payload.amount,
        bank=BankDetails(
            account_holder=bank.account_holder,
            bank_name=bank.bank_name,
            account_number=bank.account_number,
            branch_code=bank.branch_code,
            account_type=bank.account_type,
        ),
        store_id=payload.store_id,
        store_commission_rate=payload.store_commission_rate,
        notes=payload.notes,
    )


@router.get("/me", response_model=PayoutListOut)
async def list_my_payouts(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Newest first, across every actor the caller owns."""
    items = []
    for actor_type, actor_id in await owned_actors(db, user):
        items.extend(
            await list_actor_payouts(db, actor_type=actor_type, actor_id=actor_id, limit=limit + offset, offset=0)
        )
    items.sort(key=lambda p: (p.requested_at, str(p.id)), reverse=True)
    return PayoutListOut(items=items[offset : offset + limit], limit=limit, offset=offset)


@router.get("", response_model=PayoutListOut)
async def list_all_payouts(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
    status_filter: Optional[str] = Query(None, alias="status"),
    actor_type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    items = await list_payouts(db, status=status_filter, actor_type=actor_type, limit=limit, offset=offset)
    return PayoutListOut(items=items, limit=limit, offset=offset)


@router.post("/{payout_id}/approve", response_model=PayoutOut)
async def approve(
    payout_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    return await approve_payout(db, payout_id, decided_by=admin.id)


@router.post("/{payout_id}/reject", response_model=PayoutOut)
async def reject(
    payout_id: UUID,
    payload: PayoutRejectRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    return await reject_payout(db, payout_id, decided_by=admin.id, reason=payload.reason)


@router.post("/{payout_id}/mark-paid", response_model=PayoutOut)
async def mark_paid(
    payout_id: UUID,
    payload: Optional[PayoutMarkPaidRequest] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    reference = payload.payment_reference if payload else None
    return await mark_payout_paid(db, payout_id, decided_by=admin.id, payment_reference=reference)
