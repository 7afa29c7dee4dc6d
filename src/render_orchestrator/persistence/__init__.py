"""
Prompt cache persistence layer.

- prompt_cache.py: Canonical parameter hashing and the PromptCache service
- prompt_store.py: Storage backends (Redis, in-memory)
- redis_client.py: Redis connection pooling
- exceptions.py: DatabaseError for storage failures

Storage Strategy:
- One Redis hash per cached prompt, keyed by parameters hash
- Sorted-set indexes on last_used and usage_count for cleanup
- Cleanup is triggered externally (Celery beat or admin endpoint)
"""

from render_orchestrator.persistence.exceptions import DatabaseError
from render_orchestrator.persistence.prompt_cache import PromptCache, hash_parameters
from render_orchestrator.persistence.prompt_store import (
    InMemoryPromptCacheStore,
    PromptCacheStore,
    RedisPromptCacheStore,
)
from render_orchestrator.persistence.redis_client import RedisClient

__all__ = [
    "DatabaseError",
    "PromptCache",
    "hash_parameters",
    "PromptCacheStore",
    "InMemoryPromptCacheStore",
    "RedisPromptCacheStore",
    "RedisClient",
]
