"""Unit tests for the Celery cache maintenance tasks (run eagerly, Redis mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from render_orchestrator.persistence.exceptions import DatabaseError
from render_orchestrator.tasks.cache_tasks import cleanup_least_used_cache_entries, cleanup_old_cache_entries
from render_orchestrator.tasks.celery_app import celery_app

MODULE = "render_orchestrator.tasks.cache_tasks"


@pytest.fixture
def redis_settings(test_settings):
    return test_settings.model_copy(update={"CACHE_BACKEND": "redis"})


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def patched_cache(redis_settings, redis_client):
    """Patch settings, the Redis client and PromptCache; yield the cache mock."""
    cache = MagicMock()
    cache.cleanup_old_entries = AsyncMock(return_value=4)
    cache.cleanup_least_used = AsyncMock(return_value=2)

    with patch(f"{MODULE}.settings", redis_settings), \
         patch(f"{MODULE}.AsyncRedis") as async_redis, \
         patch(f"{MODULE}.PromptCache", return_value=cache):
        async_redis.from_url.return_value = redis_client
        yield cache


def test_cleanup_old_entries(patched_cache, redis_client):
    result = cleanup_old_cache_entries.run(max_age_days=7)

    assert result == {"deleted": 4, "max_age_days": 7}
    patched_cache.cleanup_old_entries.assert_awaited_once_with(7)
    redis_client.aclose.assert_awaited_once()


def test_cleanup_old_entries_uses_configured_default(patched_cache, redis_settings):
    result = cleanup_old_cache_entries.run()

    assert result["max_age_days"] == redis_settings.CACHE_MAX_AGE_DAYS
    patched_cache.cleanup_old_entries.assert_awaited_once_with(redis_settings.CACHE_MAX_AGE_DAYS)


def test_cleanup_least_used(patched_cache, redis_client):
    result = cleanup_least_used_cache_entries.run(keep_count=50)

    assert result == {"deleted": 2, "keep_count": 50}
    patched_cache.cleanup_least_used.assert_awaited_once_with(50)
    redis_client.aclose.assert_awaited_once()


def test_storage_error_propagates_and_client_is_closed(patched_cache, redis_client):
    patched_cache.cleanup_least_used.side_effect = DatabaseError("Redis down", "ZREVRANGE")

    with pytest.raises(DatabaseError):
        cleanup_least_used_cache_entries.run(keep_count=10)

    redis_client.aclose.assert_awaited_once()


def test_memory_backend_is_skipped(test_settings):
    with patch(f"{MODULE}.settings", test_settings), patch(f"{MODULE}.AsyncRedis") as async_redis:
        result = cleanup_old_cache_entries.run(max_age_days=3)

    assert result == {"deleted": 0, "max_age_days": 3}
    async_redis.from_url.assert_not_called()


def test_beat_schedule_registers_both_tasks():
    schedule = celery_app.conf.beat_schedule

    assert schedule["cleanup-old-cache-entries"]["task"] == cleanup_old_cache_entries.name
    assert schedule["cleanup-least-used-cache-entries"]["task"] == cleanup_least_used_cache_entries.name
