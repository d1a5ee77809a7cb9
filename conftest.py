from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as AsyncSessionSQLModel

import eduhive.models  # noqa: F401
from eduhive.core.config import settings
from eduhive.core.llm import LLMClient, get_llm_client
from eduhive.core.security import create_access_token
from eduhive.crud.profile import ensure_assistant_profile
from eduhive.db.database import get_db, get_session_factory
from eduhive.main import app
from eduhive.models.follow import Follow
from eduhive.models.notification import Notification
from eduhive.models.profile import Profile
from eduhive.utils.cache import TTLCache, get_cache

ASSISTANT_ANSWER = "🤖 Hi! I'm EduHive Assistant. Here is the explanation."


def _make_test_engine():
    # An in-memory SQLite database unless a real test database is configured
    if settings.TEST_DATABASE_URL:
        return create_async_engine(
            settings.TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1),
            poolclass=NullPool,
        )
    return create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest_asyncio.fixture(scope="function")
async def async_test_engine():
    """Create a test async engine with fresh tables for each test."""
    test_engine = _make_test_engine()
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(async_test_engine):
    return sessionmaker(
        bind=async_test_engine,
        class_=AsyncSessionSQLModel,
        expire_on_commit=False,
        autoflush=False
    )


@pytest_asyncio.fixture(scope="function")
async def async_test_session(session_factory):
    async with session_factory() as session:
        await ensure_assistant_profile(session)
        yield session


@pytest.fixture
def make_profile(async_test_session):
    """Factory creating committed profiles."""
    async def _make(username: str, **fields) -> Profile:
        profile = Profile(id=fields.pop("id", f"user-{username}"), username=username, **fields)
        async_test_session.add(profile)
        await async_test_session.commit()
        return profile
    return _make


@pytest.fixture
def add_follow(async_test_session):
    """Add follow edges with strictly increasing timestamps so order is stable."""
    base = datetime(2025, 1, 1)
    counter = {"n": 0}

    async def _follow(follower: Profile, following: Profile, mutual: bool = False) -> None:
        pairs = [(follower, following)] + ([(following, follower)] if mutual else [])
        for a, b in pairs:
            counter["n"] += 1
            async_test_session.add(Follow(
                follower_id=a.id,
                following_id=b.id,
                created_at=base + timedelta(seconds=counter["n"]),
            ))
        await async_test_session.commit()
    return _follow


@pytest.fixture
def test_cache():
    return TTLCache(default_ttl=60)


@pytest.fixture
def mock_llm():
    llm = MagicMock(spec=LLMClient)
    llm.configured = True
    llm.complete = AsyncMock(return_value=ASSISTANT_ANSWER)
    return llm


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, async_test_session, test_cache, mock_llm):
    """HTTP client against the app with the test database and fakes wired in."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_cache] = lambda: test_cache
    app.dependency_overrides[get_llm_client] = lambda: mock_llm

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(profile.id)}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def notification_commits_fail():
    """Every commit carrying a new notification fails like a dropped connection."""
    real_commit = AsyncSessionSQLModel.commit

    async def commit(self):
        if any(isinstance(obj, Notification) for obj in self.new):
            raise OperationalError("INSERT INTO notification", {}, ConnectionError("database unavailable"))
        return await real_commit(self)

    with patch.object(AsyncSessionSQLModel, "commit", commit):
        yield
