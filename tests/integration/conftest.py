from datetime import datetime, timedelta
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.in_memory import InMemorySession, InMemoryStore
from src.app.services.clock import Clock
from src.domain.listing import Listing, ListingStatus
from src.depends import get_session


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """File-backed SQLite engine with a fresh schema per test"""
    test_db_url = f"sqlite+aiosqlite:///{tmp_path / 'credits_test.db'}"

    engine = create_async_engine(test_db_url, echo=False, future=True)

    # pysqlite's implicit BEGIN breaks SAVEPOINT; emit BEGIN ourselves.
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed_listings(session_factory):
    """Active listing_7 owned by owner_1 and paused listing_8"""
    async with session_factory() as session:
        session.add(
            Listing(
                id="listing_7",
                owner_id="owner_1",
                status=ListingStatus.ACTIVE,
                contact_phone_e164="+919812345678",
                whatsapp_available=True,
            )
        )
        session.add(Listing(id="listing_8", owner_id="owner_1", status=ListingStatus.PAUSED))
        await session.commit()


@pytest_asyncio.fixture
async def client(session_factory, seed_listings):
    """Create test client; every request gets its own session, like production"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def memory_store():
    store = InMemoryStore()
    store.add_listing(
        Listing(
            id="listing_7",
            owner_id="owner_1",
            status=ListingStatus.ACTIVE,
            contact_phone_e164="+919812345678",
            whatsapp_available=False,
        )
    )
    return store


@pytest_asyncio.fixture
async def memory_session_factory(memory_store):
    def factory():
        return InMemorySession(memory_store)
    return factory


class FrozenClock(Clock):
    """Clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest_asyncio.fixture
async def clock():
    return FrozenClock(datetime(2024, 1, 1, 12, 0, 0))
