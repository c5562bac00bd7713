# earnings/api/v1/ledger.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.actors import owned_actors
from earnings.api.deps.auth import get_current_user, require_platform_admin
from earnings.core.config import settings
from earnings.core.errors import FailedPrecondition, Internal, LedgerError, NotFound
from earnings.core.ledger import (
    credit_available,
    ensure_account,
    get_account,
    normalize_actor_type,
    release_pending,
)
from earnings.core.money import to_decimal
from earnings.db.session import get_db
from earnings.models.earnings_account import EarningsAccount
from earnings.models.ledger_entry import LedgerEntry
from earnings.models.user import User
from earnings.schemas.ledger import (
    CreditAvailableRequest,
    EarningsAccountOut,
    LedgerEntriesPageOut,
    LedgerMutationOut,
    MyEarningsOut,
    ReleasePendingRequest,
)

router = APIRouter(prefix="/ledger", tags=["ledger"])


async def _my_accounts(db: AsyncSession, user: User) -> list[EarningsAccount]:
    accounts = []
    for actor_type, actor_id in await owned_actors(db, user):
        account = await get_account(db, actor_type, actor_id)
        if account is not None:
            accounts.append(account)
    return accounts


@router.get("/me", response_model=MyEarningsOut)
async def my_earnings(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    accounts = await _my_accounts(db, user)
    return MyEarningsOut(currency=settings.CURRENCY, accounts=accounts)


@router.get("/me/entries", response_model=LedgerEntriesPageOut)
async def my_ledger_entries(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """
    Immutable journal of every balance change on the caller's accounts.
    Pagination:
      - limit (1..100)
      - offset (>=0)
    """
    account_ids = [a.id for a in await _my_accounts(db, user)]
    if not account_ids:
        return LedgerEntriesPageOut(items=[], limit=limit, offset=offset, total=0)

    total = await db.scalar(
        select(func.count()).select_from(LedgerEntry).where(LedgerEntry.account_id.in_(account_ids))
    )
    rows = (
        await db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.account_id.in_(account_ids))
            .order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
            .limit(limit)
            .offset(offset)
        )
    ).scalars().all()

    return LedgerEntriesPageOut(items=list(rows), limit=limit, offset=offset, total=int(total or 0))


@router.post("/{actor_type}/{actor_id}/release", response_model=LedgerMutationOut)
async def release_pending_balance(
    actor_type: str,
    actor_id: UUID,
    payload: ReleasePendingRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    """Move pending earnings to available (omit amount to release everything)."""
    t = normalize_actor_type(actor_type)
    try:
        account = await get_account(db, t, actor_id, for_update=True)
        if account is None:
            raise NotFound("Earnings account not found", code="ACCOUNT_NOT_FOUND")

        amount = payload.amount if payload.amount is not None else to_decimal(account.pending_balance)
        if amount <= 0:
            raise FailedPrecondition("Nothing pending to release", code="NOTHING_TO_RELEASE")

        reference = payload.reference or f"release:{account.id}:{account.updated_at.isoformat()}"
        applied = await release_pending(
            db,
            account.id,
            amount,
            reference=reference,
            memo=payload.memo,
            details={"released_by": str(admin.id)},
        )
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        raise Internal("Could not release pending balance", code="RELEASE_FAILED") from exc

    account = await get_account(db, t, actor_id)
    return LedgerMutationOut(applied=applied, account=EarningsAccountOut.model_validate(account))


@router.post("/{actor_type}/{actor_id}/credits", response_model=LedgerMutationOut)
async def credit_available_balance(
    actor_type: str,
    actor_id: UUID,
    payload: CreditAvailableRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    """Record an earning that is immediately withdrawable (vendor sales, staff pay)."""
    t = normalize_actor_type(actor_type)
    try:
        account = await ensure_account(db, t, actor_id, store_id=payload.store_id)
        applied = await credit_available(
            db,
            account.id,
            payload.amount,
            reference=payload.reference,
            memo=payload.memo,
            details={"credited_by": str(admin.id)},
        )
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        raise Internal("Could not credit earnings", code="CREDIT_FAILED") from exc

    account = await get_account(db, t, actor_id)
    return LedgerMutationOut(applied=applied, account=EarningsAccountOut.model_validate(account))
