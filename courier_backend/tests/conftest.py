"""
Centralized Test Configuration.
"""

import os

# Point the application at SQLite before its settings are first imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from courier_backend.app.main import app
from courier_backend.app.db.session import get_db, Base
from courier_backend.app.core.security import get_password_hash
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.user import User
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.services.authentication import issue_token
import courier_backend.app.core.redis_client as redis_client_module

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
DEFAULT_PASSWORD = "Secret1!"


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
    
    async def ping(self):
        return True
    
    async def get(self, key):
        return self.store.get(key)
        
    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True
    
    async def delete(self, key):
        if key in self.store:
            del self.store[key]
            return 1
        return 0
    
    async def exists(self, key):
        return 1 if key in self.store else 0
        
    async def flushdb(self):
        self.store = {}


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine.sync_engine, "connect", set_sqlite_pragma)
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield test_engine
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def mock_redis(monkeypatch):
    """Swap the global Redis client for an in-memory double."""
    fake = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", fake)
    return fake


@pytest.fixture
async def client(session_factory, mock_redis):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session
    
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """
    Insert a user directly (admins cannot self-register) and return
    a dict with its id, username, email and a valid bearer token.
    """
    async def _make_user(username, email, role=UserRole.CUSTOMER, phone=None, password=DEFAULT_PASSWORD):
        user = User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
            role=role,
            phone=phone,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        
        token = issue_token(Principal.model_validate(user))
        return {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }
    
    return _make_user


@pytest.fixture
async def admin(make_user):
    return await make_user("admin", "admin@test.com", role=UserRole.ADMIN)


@pytest.fixture
async def courier(make_user):
    return await make_user("courier1", "courier1@test.com", role=UserRole.COURIER)


@pytest.fixture
async def other_courier(make_user):
    return await make_user("courier2", "courier2@test.com", role=UserRole.COURIER)


@pytest.fixture
async def alice(make_user):
    return await make_user("alice", "alice@x.com", phone="+15550001111")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob", "bob@x.com")


def package_payload(sender_email=None, recipient_email=None, **overrides):
    """Build a valid create-package body."""
    payload = {
        "sender_info": {
            "name": "Alice Sender",
            "address": "1 Origin Road, Springfield",
            "phone": "+15550001111",
            "email": sender_email,
        },
        "recipient_info": {
            "name": "Rita Recipient",
            "address": "9 Destination Ave, Shelbyville",
            "phone": "+15550002222",
            "email": recipient_email,
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_package(client, admin):
    """Create a package through the API as admin and return its JSON."""
    async def _create_package(**kwargs):
        headers = kwargs.pop("headers", admin["headers"])
        response = await client.post("/v1/packages", json=package_payload(**kwargs), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    
    return _create_package
