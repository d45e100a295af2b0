# tests/conftest.py — Shared test fixtures
import os

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

import auth as auth_module
from models import Base, UserRole
from auth import AuthService
from schemas import UserCreate, UserRecord
from storage import MemStorage, DatabaseStorage, get_storage
from main import app


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function", params=["memory", "database"])
async def storage(request, db_engine):
    """Every storage test runs against both backends"""
    if request.param == "memory":
        return MemStorage(seed_stats=False)
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    return DatabaseStorage(session_factory)


@pytest_asyncio.fixture(scope="function")
async def client(storage):
    """HTTP test client with the storage dependency overridden"""
    app.dependency_overrides[get_storage] = lambda: storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_login_attempts():
    auth_module._login_attempts.clear()
    yield
    auth_module._login_attempts.clear()


@pytest_asyncio.fixture
async def test_user(storage):
    """Create a test user"""
    return await storage.create_user(UserCreate(
        username="testuser",
        email="testuser@example.com",
        password="TestPassword123!",
        name="Test User",
    ))


@pytest_asyncio.fixture
async def other_user(storage):
    return await storage.create_user(UserCreate(
        username="otheruser",
        email="other@example.com",
        password="OtherPassword123!",
    ))


@pytest_asyncio.fixture
async def admin_user(storage):
    """Create an admin user"""
    return await storage.create_user(UserCreate(
        username="admin",
        email="admin@example.com",
        password="AdminPassword123!",
        role=UserRole.ADMIN.value,
    ))


def get_auth_headers(user: UserRecord) -> dict:
    """Generate auth headers for a user"""
    token = AuthService.create_access_token({
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
    })
    return {"Authorization": f"Bearer {token}"}
