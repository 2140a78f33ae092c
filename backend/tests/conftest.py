"""
Sample Service - Test Configuration & Fixtures
==============================================

Shared fixtures:
- deterministic clock
- service / counter instances
- FastAPI application and TestClient
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator

from fastapi.testclient import TestClient

from sample_app.core.config import Settings
from sample_app.main import create_app
from sample_app.services.request_counter import RequestCounter
from sample_app.services.sample_service import SampleService


class FakeClock:
    """Manually advanced UTC clock"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


# ==================== Core fixtures ====================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def counter() -> RequestCounter:
    return RequestCounter()


@pytest.fixture
def service(counter) -> SampleService:
    return SampleService(counter=counter)


@pytest.fixture
def clocked_service(clock) -> SampleService:
    """Service whose timestamps come from the fake clock"""
    return SampleService(counter=RequestCounter(clock=clock))


# ==================== Application fixtures ====================

@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        ENABLE_DEBUG_ENDPOINTS=False,
        METRICS_ENABLED=True,
        LOG_LEVEL="DEBUG"
    )


@pytest.fixture
def app(app_settings, service):
    return create_app(app_settings, service=service)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """TestClient with lifespan startup/shutdown"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def debug_client(service) -> Generator[TestClient, None, None]:
    """TestClient for an application with /api/info enabled"""
    settings = Settings(ENABLE_DEBUG_ENDPOINTS=True)
    with TestClient(create_app(settings, service=service)) as test_client:
        yield test_client
