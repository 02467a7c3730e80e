"""
Shared fixtures: in-memory SQLite, an in-process Redis stand-in, an HTTP
client bound to the app, and a seeded organization with users, a route and
its stops.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from shuttle_backend.app.main import app
from shuttle_backend.app.db.session import get_db, Base
from shuttle_backend.app.core.redis_client import get_redis
from shuttle_backend.app.models.enums import UserRole
from shuttle_backend.app.models.organization import Organization
from shuttle_backend.app.models.user import User
from shuttle_backend.app.services.route_sessions import create_route, create_route_stop
import shuttle_backend.app.core.redis_client as redis_client_module

# One shared connection so every session sees the same in-memory database
engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def enable_foreign_keys(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class MockRedis:
    """Stand-in for the redis.asyncio calls the app makes. TTLs are ignored."""
    
    def __init__(self):
        self.store = {}
    
    async def ping(self):
        return True
    
    async def get(self, key):
        return self.store.get(key)
        
    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True
    
    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0
    
    async def exists(self, key):
        return 1 if key in self.store else 0
        
    async def flushdb(self):
        self.store = {}


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session
    
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield
    
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    await redis_client_session.flushdb()
    
    yield
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def organization(db_session):
    org = Organization(name="Springfield University", type="campus")
    db_session.add(org)
    await db_session.commit()
    await db_session.refresh(org)
    return org


@pytest.fixture
async def other_organization(db_session):
    org = Organization(name="Shelbyville College", type="campus")
    db_session.add(org)
    await db_session.commit()
    await db_session.refresh(org)
    return org


async def _create_user(db_session, name, email, role, organization_id):
    user = User(name=name, email=email, role=role, organization_id=organization_id, is_active=True)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def driver(db_session, organization):
    return await _create_user(db_session, "John Smith", "driver@springfield.edu", UserRole.DRIVER, organization.id)


@pytest.fixture
async def second_driver(db_session, organization):
    return await _create_user(db_session, "Maria Lopez", "driver2@springfield.edu", UserRole.DRIVER, organization.id)


@pytest.fixture
async def rider(db_session, organization):
    return await _create_user(db_session, "Emma Davis", "student@springfield.edu", UserRole.RIDER, organization.id)


@pytest.fixture
async def outside_rider(db_session, other_organization):
    return await _create_user(db_session, "Bart", "bart@shelbyville.edu", UserRole.RIDER, other_organization.id)


@pytest.fixture
async def route(db_session, organization):
    return await create_route(db_session, organization.id, "Main Campus Loop", vehicle_number="SHUTTLE-001")


@pytest.fixture
async def stops(db_session, route):
    """Four stops scheduled at 0, 10, 20 and 30 minutes, created out of order."""
    created = []
    for name, order_index, minutes in [
        ("Library", 3, 20),
        ("Main Entrance", 1, 0),
        ("Cafeteria", 4, 30),
        ("Student Center", 2, 10),
    ]:
        created.append(await create_route_stop(
            db_session, route.id, name, order_index, scheduled_arrival_minutes=minutes
        ))
    return sorted(created, key=lambda s: s.order_index)
