"""
Shared pytest fixtures for Sessionhub tests.

This module provides common fixtures including:
- Redis mocks with in-memory storage for the session store
- A controllable clock for cache TTL tests
- Sample session snapshots
"""

import fnmatch
import os
import sys
from unittest.mock import AsyncMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Session Data
# =============================================================================


@pytest.fixture
def stored_sessions():
    """Two users, one with MarketInOut and TradingView sessions."""
    return {
        "internal-id-1": {
            "marketinout": {
                "sessionId": "mio-session-1",
                "extractedAt": "2024-01-01T10:00:00Z",
                "userEmail": "user1@example.com",
                "userPassword": "pass1",
                "ASPSESSIONIDABC123": "mio-value-1",
            },
            "tradingview": {
                "sessionId": "tv-session-1",
                "extractedAt": "2024-01-01T09:00:00Z",
                "userEmail": "user1@example.com",
                "userPassword": "pass1",
                "sessionid": "tv-value-1",
            },
        },
        "internal-id-2": {
            "marketinout": {
                "sessionId": "mio-session-2",
                "extractedAt": "2024-01-01T11:00:00Z",
                "userEmail": "user2@example.com",
                "userPassword": "pass2",
                "ASPSESSIONIDXYZ789": "mio-value-2",
            }
        },
    }


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    This allows testing code that reads back what it writes.
    """
    storage = {}

    redis = AsyncMock()

    async def mock_set(key, value, *args, **kwargs):
        storage[key] = value
        return True

    async def mock_get(key):
        return storage.get(key)

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                count += 1
        return count

    async def mock_scan_iter(match=None, **kwargs):
        for key in list(storage.keys()):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    redis.set = mock_set
    redis.get = mock_get
    redis.delete = mock_delete
    redis.scan_iter = mock_scan_iter
    redis._storage = storage  # Expose for test assertions

    return redis
