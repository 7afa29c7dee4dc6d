"""Integration test fixtures (service checks and prerequisites).

Integration tests are skipped if Redis is not running. They use database
15 and flush it before and after every test.
"""

import pytest
import pytest_asyncio
from redis import Redis
from redis.asyncio import Redis as AsyncRedis

REDIS_TEST_URL = "redis://localhost:6379/15"


@pytest.fixture(scope="session")
def check_redis():
    """Check if Redis is available at localhost:6379.

    Skips tests if Redis is not reachable.
    """
    try:
        client = Redis.from_url(REDIS_TEST_URL, socket_connect_timeout=2)
        client.ping()
        client.close()
    except Exception as e:
        pytest.skip(f"Redis not available: {e}")


@pytest_asyncio.fixture
async def real_async_redis_client(check_redis):
    """Real AsyncRedis client for integration tests (database 15)."""
    client = AsyncRedis.from_url(REDIS_TEST_URL, decode_responses=True)

    await client.flushdb()

    yield client

    await client.flushdb()
    await client.aclose()
