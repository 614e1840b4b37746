"""
Shared fixtures.

API tests run the real application against a fresh SQLite file seeded with
the sample data, so ids are predictable:

- users: 1 ``demo`` (student), 2 ``admin``
- test 1 with questions 1 (mcq, 10 points), 2 (video, 30), 3 (photo, 25), 4 (text, 35)
- learning modules 1 and 2, lessons 1-3 in module 1
- topics 1 DSA, 2 Java, 3 Python; quizzes 1-9, quiz 1 has questions 1-5
- badges 1-4
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from educentral import config
from educentral.app import create_app
from educentral.auth.jwt import create_access_token
from educentral.database.base import Base
from educentral.storage.repository import DatabaseStorage


@pytest.fixture(autouse=True)
def restore_settings():
    """Put back the process-wide settings after every test."""
    original = config.get_settings()
    yield
    config.use_settings(original)


@pytest.fixture
def settings(tmp_path):
    return config.Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        AUTO_CREATE_TABLES=True,
        SEED_SAMPLE_DATA=True,
        DASHBOARD_BROADCAST_INTERVAL=0,
        REDIS_URL=None,
        JWT_SECRET_KEY="test-secret",
        OPENAI_API_KEY="test-key",
        HUGGINGFACE_API_KEY=None,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(settings):
    """Build a bearer header for a user id."""
    def build(user_id=1, username="demo", role="student"):
        config.use_settings(settings)
        token = create_access_token(user_id, {"username": username, "role": role})
        return {"Authorization": f"Bearer {token}"}
    return build


@pytest_asyncio.fixture
async def session(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storage.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as db_session:
        yield db_session

    await engine.dispose()


@pytest.fixture
def storage(session):
    return DatabaseStorage(session)
