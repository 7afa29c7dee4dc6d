"""Unit test fixtures (mocks and stubs).

Provides mock objects for testing without external dependencies.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from render_orchestrator.retry.manager import RetryConfig, RetryManager


@pytest.fixture
def mock_async_redis():
    """Mock AsyncRedis client for unit tests (async)."""
    mock = AsyncMock()
    mock.hgetall = AsyncMock(return_value={})
    mock.hsetnx = AsyncMock(return_value=1)
    mock.hset = AsyncMock(return_value=1)
    mock.zadd = AsyncMock(return_value=1)
    mock.zrange = AsyncMock(return_value=[])
    mock.zrevrange = AsyncMock(return_value=[])
    mock.zrangebyscore = AsyncMock(return_value=[])
    mock.zrem = AsyncMock(return_value=1)
    mock.delete = AsyncMock(return_value=1)
    mock.exists = AsyncMock(return_value=1)

    # MULTI/EXEC: commands queue synchronously, execute() is awaited
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[])
    mock.pipeline = MagicMock(return_value=pipe)
    return mock


class RecordingSleep:
    """Async sleep replacement that records requested delays (seconds)."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def delays_ms(self) -> list[int]:
        return [round(d * 1000) for d in self.delays]


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_retry_manager(recording_sleep) -> RetryManager:
    """RetryManager with 3 attempts and recorded (not real) backoff."""
    return RetryManager(
        RetryConfig(max_attempts=3, base_delay_ms=100, backoff_multiplier=2.0),
        sleep=recording_sleep,
    )
