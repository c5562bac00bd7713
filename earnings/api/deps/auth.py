# earnings/api/deps/auth.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.core.errors import PermissionDenied, Unauthenticated
from earnings.core.security import bearer_scheme, decode_access_token
from earnings.db.session import get_db
from earnings.models.platform_membership import PlatformMembership
from earnings.models.user import User


async def get_current_user(
    credentials=Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency for protected endpoints.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing bearer token")

    user_id = decode_access_token(credentials.credentials)  # returns sub string

    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise Unauthenticated("Invalid token subject")

    user = await db.get(User, user_uuid)
    if not user:
        raise Unauthenticated("User not found")

    if not getattr(user, "is_active", True):
        raise Unauthenticated("User inactive")

    return user


async def get_platform_membership(db: AsyncSession, user_id: uuid.UUID) -> Optional[PlatformMembership]:
    stmt = select(PlatformMembership).where(PlatformMembership.user_id == user_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def is_platform_admin(db: AsyncSession, user: User) -> bool:
    m = await get_platform_membership(db, user.id)
    return bool(m and m.is_platform_admin)


async def require_platform_admin(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> User:
    if not await is_platform_admin(db, user):
        raise PermissionDenied("Insufficient role: SUPER_ADMIN or STAFF required")
    return user
