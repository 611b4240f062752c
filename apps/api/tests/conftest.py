"""
Pytest fixtures for testing.

Provides:
- Async database session on an in-memory SQLite database
- Test client with the database dependency overridden
- Seeded roles/permissions and a user factory
- Session-token auth headers
"""

import os

# Must be set before the app (and its settings) is imported
os.environ["ENVIRONMENT"] = "testing"

from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from rbac_admin.main import app
from rbac_admin.models.base import Base
from rbac_admin.models.rbac import Role, UserRole
from rbac_admin.models.user import User
from rbac_admin.api.dependencies import database as database_dependency
from rbac_admin.api.dependencies.database import get_db
from rbac_admin.core.auth.dependencies import get_policy_engine
from rbac_admin.core.config import settings
from rbac_admin.scripts.seed import seed
from rbac_admin.services.auth import AuthService


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs nest properly; enforce FKs
    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session shared by the test and the app under test."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with database session override.
    """

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def app_client(db_engine, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client that keeps the real get_db (commit on success, rollback on
    error), bound to the test engine. Setup done through `db` must be
    committed before a request is sent.
    """
    monkeypatch.setattr(
        database_dependency,
        "async_session_factory",
        async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False),
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def permission_engine(monkeypatch):
    """Switch authorization to the permission-based engine for one test."""
    monkeypatch.setattr(settings.auth, "policy_engine", "permissions")
    get_policy_engine.cache_clear()
    yield
    get_policy_engine.cache_clear()


# ============ Seed Data ============


@pytest_asyncio.fixture
async def seeded(db: AsyncSession) -> dict[str, Role]:
    """ADMIN and USER roles plus the manage:* permissions granted to ADMIN."""
    await seed(db)
    await db.commit()
    result = await db.execute(select(Role))
    return {role.name: role for role in result.scalars().all()}


# ============ Factory Fixtures ============


class UserFactory:
    """Factory for creating test users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        email: str | None = None,
        name: str = "Test User",
        roles: list[str] | None = None,
    ) -> User:
        """Create a user, optionally with named roles (which must exist)."""
        email = email or f"test-{uuid4().hex[:8]}@example.com"

        user = User(email=email, name=name)
        self.db.add(user)
        await self.db.flush()

        for role_name in roles or []:
            result = await self.db.execute(select(Role).where(Role.name == role_name))
            role = result.scalar_one()
            self.db.add(UserRole(user_id=user.id, role_id=role.id))

        await self.db.commit()
        await self.db.refresh(user)
        return user


@pytest_asyncio.fixture
async def user_factory(db: AsyncSession) -> UserFactory:
    """Fixture that provides UserFactory."""
    return UserFactory(db)


@pytest_asyncio.fixture
async def test_user(seeded, user_factory: UserFactory) -> User:
    """Create a standard test user holding USER."""
    return await user_factory.create(roles=["USER"])


@pytest_asyncio.fixture
async def admin_user(seeded, user_factory: UserFactory) -> User:
    """Create an admin test user holding ADMIN."""
    return await user_factory.create(
        email="admin@example.com",
        name="Admin",
        roles=["ADMIN"],
    )


# ============ Auth Helpers ============


async def get_auth_headers(db: AsyncSession, user: User) -> dict[str, str]:
    """Open a database session for any user and return Bearer headers."""
    session = await AuthService(db).create_session(user)
    await db.commit()
    return {"Authorization": f"Bearer {session.session_token}"}


@pytest_asyncio.fixture
async def auth_headers(db: AsyncSession, test_user: User) -> dict[str, str]:
    """Get auth headers for test user."""
    return await get_auth_headers(db, test_user)


@pytest_asyncio.fixture
async def admin_auth_headers(db: AsyncSession, admin_user: User) -> dict[str, str]:
    """Get auth headers for admin user."""
    return await get_auth_headers(db, admin_user)


@pytest.fixture
def login(db: AsyncSession):
    """Return a coroutine that opens a session for a user: `await login(user)`."""

    async def _login(user: User) -> dict[str, str]:
        return await get_auth_headers(db, user)

    return _login
