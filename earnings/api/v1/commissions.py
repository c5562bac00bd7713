# earnings/api/v1/commissions.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.actors import get_partner_for_user
from earnings.api.deps.auth import get_current_user, is_platform_admin
from earnings.core.errors import NotFound, PermissionDenied
from earnings.core.finalizer import finalize_commission, get_commission_by_sale
from earnings.db.session import get_db
from earnings.models.user import User
from earnings.schemas.commissions import CommissionOut, FinalizeCommissionOut, FinalizeCommissionRequest

router = APIRouter(prefix="/commissions", tags=["commissions"])


@router.post("/finalize", response_model=FinalizeCommissionOut)
async def finalize(
    payload: FinalizeCommissionRequest,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """
    Finalize the commission for a delivered sale.
    404 when the sale has no commission; a repeat call reports already_finalized.
    """
    result = await finalize_commission(db, payload.sale_id)
    change = result.tier_change
    return FinalizeCommissionOut(
        sale_id=result.sale_id,
        partner_id=result.partner_id,
        commission_amount=result.commission_amount,
        already_finalized=result.already_finalized,
        new_tier=change.new_tier if change else None,
        new_rate=change.new_rate if change else None,
    )


@router.get("/by-sale/{sale_id}", response_model=CommissionOut)
async def get_by_sale(
    sale_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    commission = await get_commission_by_sale(db, sale_id)
    if commission is None:
        raise NotFound("No commission found for this sale", code="COMMISSION_NOT_FOUND")

    if not await is_platform_admin(db, user):
        partner = await get_partner_for_user(db, user.id)
        if partner is None or partner.id != commission.partner_id:
            raise PermissionDenied("Not allowed to view this commission")

    return commission
