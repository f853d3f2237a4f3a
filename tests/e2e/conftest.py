"""
E2E test fixtures for the HomeFix backend.

Provides:
- An in-process FastAPI test app with all routes registered
- httpx AsyncClient wired via ASGI transport (no network needed)
- An async SQLite database (in-memory, one per test) with the full schema
- Pre-populated seed data: a resident, an admin, two categories
- Helpers for creating providers and requests around a fixed job site

Services commit their own units of work, so each test gets a fresh
database instead of a rolled-back outer transaction.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import AsyncGenerator, Sequence

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from homefix.core.config import Settings
from homefix.models import (
    Base,
    Notification,
    Profile,
    ProviderCategory,
    ProviderProfile,
    RequestStatusHistory,
    ServiceCategory,
    ServiceRequest,
)

# ---------------------------------------------------------------------------
# Test IDs (stable across tests so cross-references work)
# ---------------------------------------------------------------------------

RESIDENT_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
ADMIN_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")

PLUMBING_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
ELECTRICAL_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")

# Job site in central Bangalore and points due north of it
SITE = (Decimal("12.97160000"), Decimal("77.59460000"))
NEAR_3KM = (Decimal("12.99860000"), Decimal("77.59460000"))
NEAR_1KM = (Decimal("12.98060000"), Decimal("77.59460000"))
FAR_15KM = (Decimal("13.10650000"), Decimal("77.59460000"))

TEST_DB_URL = "sqlite+aiosqlite://"


# ---------------------------------------------------------------------------
# Async engine + session
# ---------------------------------------------------------------------------

def _enable_foreign_keys(engine: AsyncEngine) -> None:
    # SQLite does not enforce foreign keys by default
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_fk(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def create_test_engine(url: str = TEST_DB_URL, **kwargs) -> AsyncEngine:
    """Create an engine with the full schema applied."""
    engine = create_async_engine(url, echo=False, **kwargs)
    _enable_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """A private in-memory database for one test."""
    engine = await create_test_engine(poolclass=StaticPool)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

async def seed_base_data(db: AsyncSession) -> None:
    """Insert the resident, the admin and two categories."""
    db.add_all([
        Profile(
            id=RESIDENT_ID,
            name="Asha Rao",
            email="asha@test.homefix.dev",
            role_resident=True,
            location_lat=SITE[0],
            location_lng=SITE[1],
        ),
        Profile(
            id=ADMIN_ID,
            name="Admin",
            email="admin@test.homefix.dev",
            role_admin=True,
        ),
        ServiceCategory(id=PLUMBING_ID, name="Plumbing", description="Pipes and leaks"),
        ServiceCategory(id=ELECTRICAL_ID, name="Electrical", description="Wiring"),
    ])
    await db.commit()


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    """A database session with seed data already inserted."""
    await seed_base_data(db_session)
    return db_session


async def create_provider(
    db: AsyncSession,
    *,
    name: str,
    location: tuple[Decimal, Decimal] | None,
    categories: Sequence[uuid.UUID] = (PLUMBING_ID,),
    radius_km: str = "10.00",
    is_available: bool = True,
    user_id: uuid.UUID | None = None,
) -> uuid.UUID:
    """Insert a provider profile with memberships and return its user id."""
    user_id = user_id or uuid.uuid4()
    profile = Profile(
        id=user_id,
        name=name,
        role_provider=True,
        location_lat=location[0] if location else None,
        location_lng=location[1] if location else None,
    )
    provider_profile = ProviderProfile(
        user_id=user_id,
        service_radius_km=Decimal(radius_km),
        is_available=is_available,
    )
    db.add_all([profile, provider_profile])
    await db.flush()
    db.add_all([
        ProviderCategory(provider_profile_id=provider_profile.id, category_id=category_id)
        for category_id in categories
    ])
    await db.commit()
    return user_id


async def create_pending_request(
    db: AsyncSession,
    *,
    category_id: uuid.UUID = PLUMBING_ID,
    location: tuple[Decimal, Decimal] = SITE,
    description: str = "Kitchen sink is leaking",
) -> uuid.UUID:
    """Create a pending request through the service layer, without assigning."""
    from homefix.services.requestService import create_request

    request = await create_request(
        db,
        resident_id=RESIDENT_ID,
        category_id=category_id,
        description=description,
        location={"latitude": location[0], "longitude": location[1], "address": "MG Road"},
    )
    await db.commit()
    return request.id


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------

async def load_request(db: AsyncSession, request_id: uuid.UUID) -> ServiceRequest:
    stmt = (
        select(ServiceRequest)
        .where(ServiceRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one()


async def history_statuses(db: AsyncSession, request_id: uuid.UUID) -> list[str]:
    stmt = (
        select(RequestStatusHistory.status)
        .where(RequestStatusHistory.request_id == request_id)
        .order_by(RequestStatusHistory.created_at, RequestStatusHistory.id)
    )
    return [status.value for status in (await db.execute(stmt)).scalars().all()]


async def notifications_for(db: AsyncSession, user_id: uuid.UUID) -> list[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at, Notification.id)
    )
    return list((await db.execute(stmt)).scalars().all())


async def count_notifications(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Notification.id)))).scalar_one()


# ---------------------------------------------------------------------------
# FastAPI test application
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app_settings() -> Settings:
    """Settings handed to route handlers; tests may flip flags on it."""
    return Settings(auto_assign_on_create=True, auto_assign_on_available=True)


def _create_test_app(db_session_override: AsyncSession, settings_override: Settings):
    """Build a FastAPI app with all routes registered and the DB and settings
    dependencies overridden."""
    from fastapi import FastAPI

    from homefix.api.deps import get_db
    from homefix.api.routes.assignments import router as assignments_router
    from homefix.api.routes.categories import router as categories_router
    from homefix.api.routes.notifications import router as notifications_router
    from homefix.api.routes.providers import router as providers_router
    from homefix.api.routes.requests import router as requests_router
    from homefix.core.config import get_settings

    app = FastAPI(title="HomeFix Test")

    async def _override_get_db():
        try:
            yield db_session_override
            await db_session_override.commit()
        except Exception:
            await db_session_override.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_settings] = lambda: settings_override

    for router in (
        assignments_router,
        requests_router,
        providers_router,
        categories_router,
        notifications_router,
    ):
        app.include_router(router, prefix="/api/v1")

    return app


@pytest_asyncio.fixture
async def client(
    seeded_db: AsyncSession,
    app_settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the test app via ASGI transport."""
    app = _create_test_app(seeded_db, app_settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
