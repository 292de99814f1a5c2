"""
Pytest configuration and fixtures for translation API tests
"""

import os

# Settings are read at import time; these must be in place before translation_api is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from translation_api.auth import create_access_token, hash_password  # noqa: E402
from translation_api.database import Base, create_engine_from_url, get_db  # noqa: E402
from translation_api.main import app  # noqa: E402
from translation_api.models import Locale, Tag, User  # noqa: E402
from translation_api.repositories import ReferenceRepository, TranslationRepository  # noqa: E402
from translation_api.services.cache_service import CacheService, get_cache_service  # noqa: E402
from translation_api.utils.cache import CacheManager  # noqa: E402
from utils.mocks import MockRedis  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection alive."""
    test_engine = create_engine_from_url(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_redis() -> MockRedis:
    return MockRedis()


@pytest.fixture
def cache(mock_redis) -> CacheService:
    """CacheService backed by the in-memory Redis double."""
    manager = CacheManager(url="redis://test:6379/0", enabled=True, client=mock_redis)
    return CacheService(cache=manager, export_ttl=3600)


@pytest.fixture
def repo(db_session, cache) -> TranslationRepository:
    return TranslationRepository(db_session, cache)


@pytest.fixture
async def locale_en(db_session) -> Locale:
    return await ReferenceRepository(db_session).get_or_create_locale("en", "English")


@pytest.fixture
async def locale_fr(db_session) -> Locale:
    return await ReferenceRepository(db_session).get_or_create_locale("fr", "French")


@pytest.fixture
async def tag_web(db_session) -> Tag:
    return await ReferenceRepository(db_session).get_or_create_tag("web")


@pytest.fixture
async def tag_mobile(db_session) -> Tag:
    return await ReferenceRepository(db_session).get_or_create_tag("mobile")


@pytest.fixture
async def test_user(db_session) -> User:
    """Create a login user"""
    user = User(
        name="Test User",
        email="testuser@example.com",
        hashed_password=hash_password("testpassword"),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    access_token = create_access_token(data={"sub": test_user.email}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
async def client(session_factory, cache) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test database and cache injected."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_cache_service():
        return cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_service] = override_get_cache_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
