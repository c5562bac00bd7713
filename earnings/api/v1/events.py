# earnings/api/v1/events.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.auth import require_platform_admin
from earnings.core.commission import SALE_FAILED, process_sale_created
from earnings.core.finalizer import handle_delivery_confirmed
from earnings.db.session import get_db
from earnings.models.user import User
from earnings.schemas.events import DeliveryConfirmedEvent, EventAck, SaleCreatedEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/sale-created", response_model=EventAck, status_code=status.HTTP_202_ACCEPTED)
async def sale_created(
    payload: SaleCreatedEvent,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    """
    Sale-created trigger. Always acknowledged: commission failures are logged,
    never surfaced to the order flow that emitted the event.
    """
    outcome = await process_sale_created(
        db,
        sale_id=payload.sale_id,
        total=payload.total,
        referral_code=payload.referral_code,
        store_id=payload.store_id,
        customer_id=payload.customer_id,
    )
    if outcome == SALE_FAILED:
        logger.warning("sale-created for %s acknowledged without a commission", payload.sale_id)
    return EventAck(sale_id=payload.sale_id, status=outcome)


@router.post("/delivery-confirmed", response_model=EventAck, status_code=status.HTTP_202_ACCEPTED)
async def delivery_confirmed(
    payload: DeliveryConfirmedEvent,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    outcome = await handle_delivery_confirmed(db, payload.sale_id)
    return EventAck(sale_id=payload.sale_id, status=outcome)
