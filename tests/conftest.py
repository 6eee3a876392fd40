import os
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Generator, List
from unittest.mock import AsyncMock, MagicMock, patch

# Unit tests run against in-memory sqlite unless a database is configured
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import app.models.db  # noqa: F401
from app.auth import get_current_user_id
from app.database import Base
from app.main import app
from app.realtime.hub import SubscriptionHub

load_dotenv()

CALLER_ID = "member-1"


class FakeClock:
    """Deterministic replacement for app.timeutils.utcnow.

    Every call moves time forward by one second, so consecutive operations
    get strictly increasing timestamps.
    """

    def __init__(self, start: datetime):
        self.now = start
        self.calls: List[datetime] = []

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        self.calls.append(self.now)
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database for integration tests."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    await engine.dispose()


@pytest.fixture(scope="function")
async def test_db(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session for integration tests."""
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def mock_db() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock database session for unit tests."""
    # Use mock to avoid database connection issues in unit tests
    mock_session = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.close = AsyncMock()
    mock_session.refresh = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()  # add is sync, not async

    yield mock_session


@pytest.fixture
def event_hub() -> SubscriptionHub:
    """A hub private to one test."""
    return SubscriptionHub()


@pytest.fixture
def clock() -> Generator[FakeClock, Any, None]:
    """Patch the service clock with one that ticks a second per call."""
    fake = FakeClock(datetime.now(timezone.utc) + timedelta(minutes=1))
    with patch("app.timeutils.utcnow", side_effect=fake):
        yield fake


@pytest.fixture
def client() -> Generator[TestClient, Any, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_client() -> Generator[TestClient, Any, None]:
    """Test client whose requests are authenticated as CALLER_ID."""
    app.dependency_overrides[get_current_user_id] = lambda: CALLER_ID
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_current_user_id, None)
