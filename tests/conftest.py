import os
import tempfile

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.mkdtemp()}/freight.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import itertools
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from freight.database import Base, get_db
from freight.main import app
from freight.models import (
    User, UserRole, Load, Material, LoadStatus, VehicleType, TrailerType, PaymentTerms, PackType,
    Vehicle, VehicleStatus, Tarpaulin
)
from freight.services.auth_service import AuthService
from freight.utils.timeutils import utcnow

_plate_numbers = itertools.count(1000)


class RecordingNotifier:
    """Stands in for NotificationService and keeps every emitted event"""

    def __init__(self):
        self.events = []

    async def emit(self, room_id, event, data=None):
        self.events.append((room_id, event, data))

    def of(self, event):
        return [(room, data) for room, name, data in self.events if name == event]


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def client(session_maker, notifier):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    previous_notifier = app.state.notifier
    app.dependency_overrides[get_db] = override_get_db
    app.state.notifier = notifier
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.notifier = previous_notifier


@pytest.fixture
def clock(monkeypatch):
    """Controls the current time seen by the bidding coordinator"""
    clock = Clock(datetime(2023, 12, 31, tzinfo=timezone.utc))
    monkeypatch.setattr("freight.services.bidding_service.utcnow", clock)
    return clock


def auth_headers(user):
    token = AuthService.create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


async def make_user(db, role, name=None):
    user = User(
        email=f"{uuid4().hex[:10]}@freight.io",
        phone="9876543210",
        password_hash="not-a-real-hash",
        name=name or role.value.replace("_", " ").title(),
        role=role,
        is_active=True
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_load(
    db,
    provider,
    weights=(2000,),
    vehicle_type=VehicleType.FOUR_WHEEL,
    vehicle_size=20,
    trailer_type=TrailerType.NONE,
    with_xbow_support=False,
    loading_date=None,
    loading_location=None
):
    load = Load(
        load_provider_id=provider.id,
        load_provider_name=provider.name,
        loading_location=loading_location or {
            "pincode": "560001", "state": "Karnataka", "district": "Bengaluru", "place": "Peenya"
        },
        unloading_location={
            "pincode": "600001", "state": "Tamil Nadu", "district": "Chennai", "place": "Guindy"
        },
        vehicle_type=vehicle_type,
        vehicle_size=vehicle_size,
        trailer_type=trailer_type,
        loading_date=loading_date or utcnow() + timedelta(days=3),
        loading_time="09:00",
        payment_terms=PaymentTerms.ADVANCE,
        with_xbow_support=with_xbow_support,
        commission_applicable=with_xbow_support,
        status=LoadStatus.POSTED,
        materials=[
            Material(
                position=index,
                name=f"Material {index + 1}",
                length=2.0,
                width=1.0,
                height=1.0,
                pack_type=PackType.SINGLE,
                total_count=1,
                single_weight=weight,
                total_weight=weight
            )
            for index, weight in enumerate(weights)
        ]
    )
    db.add(load)
    await db.commit()
    await db.refresh(load)
    return load


async def make_vehicle(
    db,
    owner,
    vehicle_type=VehicleType.FOUR_WHEEL,
    vehicle_size=20,
    passing_limit=3,
    trailer_type=TrailerType.NONE,
    approved=True,
    status=VehicleStatus.AVAILABLE,
    availability=None,
    operating_areas=None
):
    vehicle = Vehicle(
        owner_id=owner.id,
        owner_name=owner.name,
        vehicle_type=vehicle_type,
        vehicle_size=vehicle_size,
        length=6.0,
        breadth=2.0,
        vehicle_number=f"KA01AB{next(_plate_numbers)}",
        passing_limit=passing_limit,
        availability=availability or utcnow() - timedelta(days=1),
        body_type="open",
        tarpaulin=Tarpaulin.ONE,
        trailer_type=trailer_type,
        operating_areas=operating_areas or [],
        status=status,
        is_approved=approved,
        loads_completed=0
    )
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


@pytest.fixture
async def provider(db):
    return await make_user(db, UserRole.LOAD_PROVIDER, "Provider P")


@pytest.fixture
async def owner(db):
    return await make_user(db, UserRole.VEHICLE_OWNER, "Owner O")


@pytest.fixture
async def admin(db):
    return await make_user(db, UserRole.ADMIN, "Admin A")
