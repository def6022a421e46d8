import os

# Settings are read at import time; pin a hermetic environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["CMI_MERCHANT_ID"] = ""
os.environ["CASHPLUS_MERCHANT_ID"] = ""

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import allobricolage.models  # noqa: E402,F401
from allobricolage.api.rate_limit import MemoryRateLimitStore, get_rate_limit_store  # noqa: E402
from allobricolage.database import Base, get_db  # noqa: E402
from allobricolage.main import app  # noqa: E402
from allobricolage.models.user import UserRole  # noqa: E402
from allobricolage.schemas.technician import TechnicianCreate  # noqa: E402
from allobricolage.schemas.user import UserCreate  # noqa: E402
from allobricolage.services.technician_service import TechnicianService  # noqa: E402
from allobricolage.services.user_service import UserService  # noqa: E402

NOW = datetime(2024, 4, 10, 20, 0)


class FakeSMS:
    """Records outgoing messages instead of calling Twilio."""

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send_sms(self, to, message):
        if self.error:
            raise self.error
        self.sent.append((to, message))
        return {"sid": f"SM{len(self.sent)}", "status": "queued"}


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def rate_limit_store():
    return MemoryRateLimitStore()


@pytest.fixture
async def client(session_factory, rate_limit_store):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limit_store] = lambda: rate_limit_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_technician(db):
    counter = {"n": 0}

    async def _make(**overrides):
        counter["n"] += 1
        values = dict(
            username=f"tech{counter['n']}",
            name=f"Technicien {counter['n']}",
            phone="0661234567",
            city="Casablanca",
            services=["plomberie"],
            hourly_rate=150,
            years_experience=5,
        )
        values.update(overrides)
        return await TechnicianService(db).create(TechnicianCreate(**values))

    return _make


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(role=UserRole.CLIENT, **overrides):
        counter["n"] += 1
        values = dict(username=f"client{counter['n']}", name=f"Client {counter['n']}", role=role)
        values.update(overrides)
        return await UserService(db).create(UserCreate(**values))

    return _make


@pytest.fixture
def sms():
    return FakeSMS()


@pytest.fixture
def bookings(db, sms, clock):
    from allobricolage.services.booking_service import BookingService
    from allobricolage.services.notification_service import NotificationService

    return BookingService(db, notifications=NotificationService(db, sms=sms, clock=clock), clock=clock)


@pytest.fixture
def make_job(db, clock):
    from allobricolage.schemas.job import JobCreate
    from allobricolage.services.job_service import JobService

    async def _make(client_id=None, **overrides):
        values = dict(description="Fuite d'eau sous l'évier", city="Casablanca", service="plomberie")
        values.update(overrides)
        job, _, _ = await JobService(db, clock=clock).create(JobCreate(**values), client_id=client_id)
        return job

    return _make


@pytest.fixture
def make_booking(bookings):
    from datetime import date, time

    from allobricolage.schemas.booking import BookingCreate

    async def _make(technician, client_id=None, job_id=None, **overrides):
        values = dict(
            technician_id=technician.id,
            job_id=job_id,
            client_name="Amina",
            client_phone="0662345678",
            scheduled_date=date(2024, 4, 11),
            scheduled_time=time(10, 0),
        )
        values.update(overrides)
        return await bookings.create(BookingCreate(**values), client_id=client_id)

    return _make
