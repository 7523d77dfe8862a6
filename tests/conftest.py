"""
Shared fixtures for the UTM tracker tests.
"""

import pytest

from config_manager import UtmConfig
from utm_service.cache import CacheRegistry
from utm_service.context import TrackerContext


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_file(tmp_path):
    return tmp_path / "utm.sqlite"


@pytest.fixture
def utm_config(db_file):
    """Tracker configuration without geolocation and rate limiting."""
    return UtmConfig(
        enabled=True,
        file=str(db_file),
        ip="127.0.0.1",
        ip_salt="test-salt",
        ratelimit_enabled=False,
    )


@pytest.fixture
def make_context(clock):
    """Build a TrackerContext with in-memory caches on the fake clock."""
    def _make(config: UtmConfig) -> TrackerContext:
        return TrackerContext.create(config, caches=CacheRegistry(clock=clock))
    return _make
