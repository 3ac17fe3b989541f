"""
Shared fixtures: a throwaway SQLite database, user/booking factories and an
ASGI client authenticated with locally signed tokens.
"""
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import krushilink.models  # noqa: F401
from krushilink.core.security import create_access_token
from krushilink.database import Base, get_db
from krushilink.models.booking import Booking
from krushilink.models.equipment import Equipment
from krushilink.models.user import User
from krushilink.services.booking_service import BookingService
from krushilink.services.notification_service import notification_service

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)


class RecordingNotifier:
    """Stands in for the dispatcher and keeps every notice it was handed."""

    def __init__(self):
        self.sent = []

    async def dispatch(self, notice, retry=True):
        self.sent.append(notice)
        return True

    async def dispatch_all(self, notices):
        delivered = 0
        for notice in notices:
            if await self.dispatch(notice):
                delivered += 1
        return delivered


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'krushilink.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(notifier):
    """BookingService with a recording notifier and a fixed clock."""
    return BookingService(notifier=notifier, clock=lambda: NOW)


# ==================== FACTORIES ====================


@pytest_asyncio.fixture
async def make_user(db):
    async def _make(role: str | None = "farmer", **fields) -> User:
        defaults = {
            "phone": f"+9198{uuid4().int % 10**8:08d}",
            "name": f"Test {role or 'user'}",
            "role": role,
            "is_profile_complete": True,
        }
        if role == "driver":
            defaults.update(
                is_verified=True,
                is_active=True,
                tractor_type="Mahindra 575 DI",
                latitude=18.52,
                longitude=73.85,
            )
        defaults.update(fields)
        user = User(**defaults)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def farmer(make_user):
    return await make_user("farmer", name="Ramesh Patil")


@pytest_asyncio.fixture
async def driver(make_user):
    return await make_user("driver", name="Suresh Jadhav")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("admin", name="Admin")


@pytest_asyncio.fixture
async def equipment(db, driver):
    item = Equipment(driver_id=driver.id, name="Ploughing", price_per_acre=Decimal("800"))
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


@pytest_asyncio.fixture
async def make_booking(db, farmer, driver, equipment):
    async def _make(
        status: str = "requested",
        payment_status: str = "pending",
        payment_method: str = "later",
        **fields,
    ) -> Booking:
        values = {
            "farmer_id": farmer.id,
            "driver_id": driver.id,
            "equipment_id": equipment.id,
            "service_type": equipment.name,
            "latitude": 18.5,
            "longitude": 73.8,
            "address": "Survey No. 12, Hadapsar",
            "acreage": Decimal("2.5"),
            "price_per_acre": equipment.price_per_acre,
            "total_price": Decimal("2000.00"),
            "status": status,
            "version": 1,
            "payment_method": payment_method,
            "payment_status": payment_status,
            "reminder_count": 0,
            "requested_time": NOW - timedelta(days=3),
        }
        if status == "completed":
            values["completed_time"] = NOW - timedelta(days=1)
        values.update(fields)
        booking = Booking(**values)
        db.add(booking)
        await db.commit()
        await db.refresh(booking)
        return booking

    return _make


# ==================== HTTP ====================


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "phone": user.phone})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest_asyncio.fixture
async def client(session_factory, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """ASGI client wired to the test database.

    The shared dispatcher writes notifications through the same database.
    """
    from krushilink.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(notification_service, "session_factory", session_factory)
    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
