"""
Celery tasks for prompt cache maintenance.

Each invocation runs its coroutine under `asyncio.run`, which creates a
fresh event loop, so the Redis client is opened and closed per run
instead of borrowing the API process pool.
"""

import asyncio
from typing import Awaitable, Callable

import structlog
from redis.asyncio import Redis as AsyncRedis

from render_orchestrator.config import settings
from render_orchestrator.persistence.exceptions import DatabaseError
from render_orchestrator.persistence.prompt_cache import PromptCache
from render_orchestrator.persistence.prompt_store import RedisPromptCacheStore
from render_orchestrator.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def _with_redis_cache(action: Callable[[PromptCache], Awaitable[int]]) -> int:
    client = AsyncRedis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        return await action(PromptCache(RedisPromptCacheStore(client)))
    finally:
        await client.aclose()


def _skip_for_memory_backend(task_name: str) -> bool:
    # An in-memory cache lives inside the API process and is not reachable from a worker
    if settings.CACHE_BACKEND.lower() != "redis":
        logger.info("Skipping cache maintenance for non-redis backend", task=task_name, backend=settings.CACHE_BACKEND)
        return True
    return False


@celery_app.task(
    name="cleanup_old_cache_entries",
    autoretry_for=(DatabaseError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=3,
)
def cleanup_old_cache_entries(max_age_days: int | None = None) -> dict:
    """
    Delete cache entries not used within max_age_days.

    Args:
        max_age_days: Age threshold, defaults to CACHE_MAX_AGE_DAYS

    Returns:
        Dict with the number of deleted entries
    """
    days = settings.CACHE_MAX_AGE_DAYS if max_age_days is None else max_age_days
    if _skip_for_memory_backend("cleanup_old_cache_entries"):
        return {"deleted": 0, "max_age_days": days}

    deleted = asyncio.run(_with_redis_cache(lambda cache: cache.cleanup_old_entries(days)))
    logger.info("Old cache entries cleaned up", deleted=deleted, max_age_days=days)
    return {"deleted": deleted, "max_age_days": days}


@celery_app.task(
    name="cleanup_least_used_cache_entries",
    autoretry_for=(DatabaseError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=3,
)
def cleanup_least_used_cache_entries(keep_count: int | None = None) -> dict:
    """Keep only the keep_count most used entries (defaults to CACHE_KEEP_COUNT)."""
    keep = settings.CACHE_KEEP_COUNT if keep_count is None else keep_count
    if _skip_for_memory_backend("cleanup_least_used_cache_entries"):
        return {"deleted": 0, "keep_count": keep}

    deleted = asyncio.run(_with_redis_cache(lambda cache: cache.cleanup_least_used(keep)))
    logger.info("Least used cache entries cleaned up", deleted=deleted, keep_count=keep)
    return {"deleted": deleted, "keep_count": keep}
