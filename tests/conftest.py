from __future__ import annotations

import os
import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from earnings.core.security import create_access_token
from earnings.db.session import get_db

# Ensure Base + models are registered before create_all
from earnings.db.base import Base  # noqa: F401
import earnings.models  # noqa: F401
from earnings.models.partner import Partner
from earnings.models.platform_membership import PlatformMembership
from earnings.models.user import User


# ---------------------------------------------------------
# Database config
# ---------------------------------------------------------
@pytest.fixture()
def database_url_async(tmp_path) -> str:
    """
    TEST_DATABASE_URL_ASYNC points the suite at a disposable Postgres;
    otherwise every test gets its own SQLite file.
    """
    url = os.getenv("TEST_DATABASE_URL_ASYNC")
    if url:
        return url
    return f"sqlite+aiosqlite:///{tmp_path / 'earnings_test.db'}"


# ---------------------------------------------------------
# Engine + schema lifecycle
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(database_url_async: str):
    engine = create_async_engine(database_url_async, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# ---------------------------------------------------------
# DB session for setup, service calls & assertions
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from earnings.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------
# Factories
# ---------------------------------------------------------
@pytest.fixture()
def make_user(db):
    async def _make(email: str | None = None, *, admin_role: str | None = None) -> User:
        user = User(email=email or f"user-{uuid.uuid4().hex[:8]}@example.com", is_active=True)
        db.add(user)
        await db.flush()
        if admin_role:
            db.add(PlatformMembership(user_id=user.id, role=admin_role, is_active=True))
        await db.commit()
        return user

    return _make


@pytest.fixture()
def make_partner(db, make_user):
    async def _make(
        *,
        code: str | None = None,
        rate: str = "5",
        video_bonus: str = "0",
        community_bonus: str = "0",
        status: str = "active",
        user: User | None = None,
    ) -> Partner:
        owner = user or await make_user()
        partner = Partner(
            user_id=owner.id,
            display_name="Test Partner",
            referral_code=code or uuid.uuid4().hex[:6].upper(),
            status=status,
            commission_rate=Decimal(rate),
            video_content_bonus=Decimal(video_bonus),
            community_bonus=Decimal(community_bonus),
            tier="Bronze",
        )
        db.add(partner)
        await db.commit()
        return partner

    return _make


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture()
def auth_headers():
    return auth_headers_for
