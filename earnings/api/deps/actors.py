# earnings/api/deps/actors.py
"""
Maps a caller onto ledger actors.

  partner -> the Partner profile linked to the user (actor_id = partner.id)
  vendor  -> actor_id = user.id (vendor profiles live with the catalog collaborator)
  staff   -> actor_id = user.id (staff profiles live with the store collaborator)
"""
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.models.earnings_account import ACTOR_PARTNER, ACTOR_STAFF, ACTOR_VENDOR
from earnings.models.partner import Partner
from earnings.models.user import User


async def get_partner_for_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[Partner]:
    stmt = select(Partner).where(Partner.user_id == user_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def own_actor_id(db: AsyncSession, user: User, actor_type: str) -> Optional[uuid.UUID]:
    if actor_type == ACTOR_PARTNER:
        partner = await get_partner_for_user(db, user.id)
        return partner.id if partner else None
    return user.id


async def owned_actors(db: AsyncSession, user: User) -> list[tuple[str, uuid.UUID]]:
    """Every (actor_type, actor_id) the caller may act as."""
    actors: list[tuple[str, uuid.UUID]] = []
    partner = await get_partner_for_user(db, user.id)
    if partner is not None:
        actors.append((ACTOR_PARTNER, partner.id))
    actors.append((ACTOR_VENDOR, user.id))
    actors.append((ACTOR_STAFF, user.id))
    return actors
