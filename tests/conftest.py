"""Pytest fixtures for Park Patrol backend tests."""

import asyncio
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from parkpatrol.database import init_db
from parkpatrol.limiter import limiter
from parkpatrol.main import app
from parkpatrol.services.geocoder import get_geocoder
from parkpatrol.services.profile_store import ProfileStore, get_profile_store
from parkpatrol.services.report_store import ReportStore, get_report_store

# In-memory SQLite; one shared connection so every session sees the same data
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeGeocoder:
    """Reverse geocoder returning canned names, optionally held until released."""

    def __init__(self, name: str | None = "CSUF Lot A"):
        self.name = name
        self.calls: list[tuple[float, float]] = []
        self.gates: list[asyncio.Event] = []
        self.hold = False

    async def reverse_geocode(self, latitude: float, longitude: float) -> str | None:
        self.calls.append((latitude, longitude))
        if self.hold:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return self.name


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(async_engine) -> ReportStore:
    """Report store bound to the test database."""
    return ReportStore(async_sessionmaker(async_engine, expire_on_commit=False))


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def profile_store(tmp_path: Path) -> ProfileStore:
    return ProfileStore(tmp_path / "profile.json")


@pytest_asyncio.fixture
async def client(
    store: ReportStore,
    geocoder: FakeGeocoder,
    profile_store: ProfileStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with store overrides."""
    app.dependency_overrides[get_report_store] = lambda: store
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_profile_store] = lambda: profile_store
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_datetime() -> datetime:
    """Sample datetime for testing."""
    return datetime(2024, 12, 5, 15, 30, 0, tzinfo=UTC)
