"""
Collab Platform API - Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all
       tests. HTTP tests run against an app built by create_app() with a
       throwaway sqlite database per test.

Fixture Hierarchy (all function-scoped):
    ├── app_settings: Settings pointing at a temporary sqlite file
    ├── app: FastAPI app with tables created
    ├── make_app: Factory for apps with overridden settings
    ├── test_client: HTTPX AsyncClient bound to `app`
    ├── db_session: AsyncSession on its own temporary database
    ├── mock_db_session: Mock AsyncSession (no database)
    ├── registration_payload: Valid camelCase register body
    └── authenticate_as: Installs a Principal through dependency overrides
"""

import os
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run BEFORE any collab_api import: the module-level settings and app
# are built from these values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"  # bcrypt minimum, keeps the suite fast
os.environ["LOG_LEVEL"] = "WARNING"

from collab_api.config import Settings  # noqa: E402
from collab_api.database import Database  # noqa: E402
from collab_api.dependencies import get_current_principal  # noqa: E402
from collab_api.main import create_app  # noqa: E402
from collab_api.middleware.request_id import Principal  # noqa: E402


def build_settings(tmp_path, **overrides) -> Settings:
    """Settings for an isolated app; keyword overrides win."""
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        "environment": "test",
        "password_hash_rounds": 4,
        "rate_limit_requests": 10000,
    }
    values.update(overrides)
    return Settings(**values)


# ══════════════════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return build_settings(tmp_path)


@pytest_asyncio.fixture
async def app(app_settings):
    """
    A fresh application with the users table created.

    ASGITransport does not run the lifespan, so the engine is disposed here.
    """
    application = create_app(app_settings)
    await application.state.database.create_all()
    yield application
    application.dependency_overrides.clear()
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to `app` in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_app(tmp_path):
    """
    Factory for apps with non-default settings.

    Usage:
        application = await make_app(environment="production")
    """
    created = []

    async def _make(**overrides):
        application = create_app(build_settings(tmp_path, **overrides))
        await application.state.database.create_all()
        created.append(application)
        return application

    yield _make
    for application in created:
        await application.state.database.dispose()


@pytest.fixture
def authenticate_as(app) -> Callable[..., Principal]:
    """
    Attaches a principal to every request of `app`.

    Usage:
        principal = authenticate_as(user_id="...")
    """
    def _install(user_id: str = "00000000-0000-0000-0000-000000000000",
                 email: str = "member@example.com",
                 role: str = "MEMBER") -> Principal:
        principal = Principal(user_id=user_id, email=email, role=role)
        app.dependency_overrides[get_current_principal] = lambda: principal
        return principal

    return _install


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_session(tmp_path):
    """A real AsyncSession on a temporary sqlite database."""
    database = Database(build_settings(tmp_path, database_url=f"sqlite+aiosqlite:///{tmp_path / 'repo.db'}"))
    await database.create_all()
    async with database.session_factory() as session:
        yield session
    await database.dispose()


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    What:    A MagicMock that simulates AsyncSession behavior.
    How:     Mocks execute, flush, commit, rollback, and close methods.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Data Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def registration_payload():
    """A register body that passes every field rule."""
    return {
        "email": "Alice@Example.com",
        "password": "Secur3P@ss",
        "passwordConfirm": "Secur3P@ss",
        "name": "Alice Kim",
        "phoneNumber": "010-1234-5678",
        "marketingConsent": True,
    }
