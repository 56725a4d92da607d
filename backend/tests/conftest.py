"""Pytest fixtures for Civica backend tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from civica.config import Settings
from civica.main import app
from civica.rate_limit import limiter
from civica.runtime import Runtime, build_runtime, get_runtime
from civica.schemas.issue import Category, Issue, RawReport
from civica.services.classification import KeywordClassifier


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults."""
    return Settings(
        live_simulation=False,
        seed_demo_data=False,
        classification_timeout_seconds=1.0,
        classification_min_latency_seconds=0.0,
        classification_max_latency_seconds=0.0,
        action_plan_latency_seconds=0.0,
        debug=True,
    )


@pytest.fixture
def instant_worker() -> KeywordClassifier:
    """Keyword classifier without simulated latency."""
    return KeywordClassifier(timeout=1.0, min_latency=0.0, max_latency=0.0, plan_latency=0.0)


@pytest.fixture
def runtime(test_settings, instant_worker) -> Runtime:
    """Fresh registry, hub and gateway for one test."""
    return build_runtime(test_settings, worker=instant_worker)


@pytest_asyncio.fixture
async def client(runtime: Runtime) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client bound to the test runtime."""
    app.dependency_overrides[get_runtime] = lambda: runtime
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def pothole() -> Issue:
    """Road issue with the engagement of a fresh submission."""
    return Issue(
        title="Large pothole",
        category=Category.ROAD,
        location="X",
        votes=1,
        severity=5.0,
        duplicate_reports=1,
        social_mentions=0,
        recurrence=0,
    )


@pytest.fixture
def sample_report() -> RawReport:
    """Citizen report as a client would submit it."""
    return RawReport(
        title="Water leak flooding the street",
        description="Pipe burst near the bus stop",
        category=Category.WATER,
        location="HSR Layout, Sector 2",
        ward="HSR Layout",
    )
