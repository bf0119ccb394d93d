"""
Shared fixtures for tracker tests
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.store import BroadcastLog, InstanceRegistry

OWNER_KEY = "test-owner-key"

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> InstanceRegistry:
    return InstanceRegistry(clock=clock)


@pytest.fixture
def broadcast_log(clock: FakeClock) -> BroadcastLog:
    return BroadcastLog(owner_key=OWNER_KEY, clock=clock)


@pytest.fixture
def client(clock: FakeClock):
    app = create_app(Settings(owner_key=OWNER_KEY), clock=clock)
    with TestClient(app) as test_client:
        yield test_client
