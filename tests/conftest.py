"""Pytest configuration and fixtures."""
import os
import uuid
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["CRON_TOKEN"] = "test-cron-token"

from karbarg.config import get_settings


BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"
settings = get_settings()


def _remove_test_db():
    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # On Windows the file may still be open; the next run cleans it up
            pass


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    _remove_test_db()

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(alembic_cfg, "head")

    yield

    _remove_test_db()


@pytest.fixture(scope="session")
async def test_engine():
    """Create test database engine using the same database as migrations."""
    engine = create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=300,
    )

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
async def test_app(test_engine):
    """Create test app with database override."""
    from karbarg.main import app
    from karbarg.database import get_db

    async def override_get_db():
        async_session = async_sessionmaker(
            test_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        async with async_session() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def user_factory(db_session):
    """Factory for creating committed test users."""
    from karbarg.models.user import User

    async def _create_user(username: str | None = None, full_name: str | None = None, is_admin: bool = False):
        # Use UUID to keep usernames unique across the shared test database
        if username is None:
            username = f"user{uuid.uuid4().hex[:8]}"
        user = User(user_id=uuid.uuid4(), username=username, full_name=full_name, is_admin=is_admin)
        db_session.add(user)
        await db_session.commit()
        return user

    return _create_user


@pytest.fixture
def auth_headers():
    """Build a Bearer header for a user, optionally overriding the admin claim."""
    from karbarg.services.auth_service import AuthService

    def _headers(user, is_admin: bool | None = None) -> dict[str, str]:
        token, _ = AuthService().create_access_token(user, is_admin=is_admin)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def question_payload():
    """Valid question body; pass overrides as keyword arguments."""

    def _payload(**overrides):
        payload = {
            "title": f"How is VAT filed for a small firm? {uuid.uuid4().hex[:6]}",
            "body": "Our company registered for VAT last quarter and we need the filing steps.",
            "category": "tax",
            "tags": ["vat", "filing"],
        }
        payload.update(overrides)
        return payload

    return _payload
