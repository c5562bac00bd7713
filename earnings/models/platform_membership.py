from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from earnings.core.money import utcnow
from earnings.db.base import Base
from earnings.db.types import UUIDType

# Roles allowed to run back-office ledger operations
PLATFORM_ADMIN_ROLES = {"SUPER_ADMIN", "STAFF"}


class PlatformMembership(Base):
    __tablename__ = "platform_memberships"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # SUPER_ADMIN | STAFF
    role: Mapped[str] = mapped_column(String(32), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def is_platform_admin(self) -> bool:
        return bool(self.is_active) and (self.role or "").upper() in PLATFORM_ADMIN_ROLES
