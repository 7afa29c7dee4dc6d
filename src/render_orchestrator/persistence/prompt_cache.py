"""
Prompt cache keyed by a canonical parameter hash.

The hash is SHA-256 over the JSON encoding (sorted keys) of the normalized
parameter set, so the same selections always map to the same entry no
matter how the request was built. Usage count and recency are tracked on
every hit for the eviction hooks; the cache never decides when to evict.
"""

import hashlib
import json
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import structlog

from render_orchestrator.models.generation import CacheEntry, CacheStats, utc_now
from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.monitoring.metrics import prompt_cache_evictions_total, prompt_cache_lookups_total
from render_orchestrator.persistence.prompt_store import PromptCacheStore

logger = structlog.get_logger(__name__)

ParamsLike = Union[ParameterSet, Mapping[str, Any]]


def _as_parameter_set(params: ParamsLike) -> ParameterSet:
    if isinstance(params, ParameterSet):
        return params
    return ParameterSet.model_validate(dict(params))


def hash_parameters(params: ParamsLike) -> str:
    """
    Deterministic hash of a parameter set.

    Args:
        params: ParameterSet or a mapping with the same keys, in any order

    Returns:
        64-char hex SHA-256 digest
    """
    canonical = _as_parameter_set(params).canonical_dict()
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class PromptCache:
    """
    Prompt cache service over a PromptCacheStore.

    Storage errors propagate as DatabaseError on both reads and writes.
    """

    def __init__(self, store: PromptCacheStore, clock: Callable[[], datetime] = utc_now):
        """
        Initialize prompt cache.

        Args:
            store: Storage backend
            clock: Returns the current aware UTC datetime
        """
        self.store = store
        self._clock = clock

    async def get_cached_entry(self, params: ParamsLike) -> Optional[CacheEntry]:
        """
        Look up the entry for params, bumping usage_count and last_used on a hit.

        Returns:
            The entry as it is after the bump, or None on a miss
        """
        parameters_hash = hash_parameters(params)
        entry = await self.store.touch(parameters_hash, self._clock())
        if entry is None:
            prompt_cache_lookups_total.labels(result="miss").inc()
            logger.debug("Prompt cache miss", parameters_hash=parameters_hash)
            return None

        prompt_cache_lookups_total.labels(result="hit").inc()
        logger.debug("Prompt cache hit", parameters_hash=parameters_hash, usage_count=entry.usage_count)
        return entry

    async def get_cached_prompt(self, params: ParamsLike) -> Optional[str]:
        entry = await self.get_cached_entry(params)
        return entry.full_prompt if entry else None

    async def cache_prompt(self, params: ParamsLike, prompt: str, image_url: Optional[str] = None) -> str:
        """
        Store a prompt for params.

        Upsert: an existing entry has its usage_count incremented, a new one
        starts at 1.

        Returns:
            The parameters hash the prompt was stored under
        """
        parameters_hash = hash_parameters(params)
        usage_count = await self.store.upsert(parameters_hash, prompt, self._clock(), image_url)
        logger.info(
            "Cached prompt",
            parameters_hash=parameters_hash,
            usage_count=usage_count,
            has_image=image_url is not None,
        )
        return parameters_hash

    async def would_cache_hit(self, params: ParamsLike) -> bool:
        """Existence check with no side effect on usage or recency."""
        return await self.store.get(hash_parameters(params)) is not None

    async def get_entry_by_hash(self, parameters_hash: str) -> Optional[CacheEntry]:
        """Read an entry by hash without counting it as a use."""
        return await self.store.get(parameters_hash)

    async def cleanup_old_entries(self, max_age_days: int) -> int:
        """Delete entries not used in the last `max_age_days` days."""
        if max_age_days < 0:
            raise ValueError("max_age_days must be >= 0")
        cutoff = self._clock() - timedelta(days=max_age_days)
        deleted = await self.store.delete_older_than(cutoff)
        prompt_cache_evictions_total.labels(policy="max_age").inc(deleted)
        logger.info("Cleaned up old prompt cache entries", max_age_days=max_age_days, deleted=deleted)
        return deleted

    async def cleanup_least_used(self, keep_count: int) -> int:
        """Keep only the `keep_count` most used entries."""
        deleted = await self.store.delete_except_top_used(keep_count)
        prompt_cache_evictions_total.labels(policy="least_used").inc(deleted)
        logger.info("Cleaned up least used prompt cache entries", keep_count=keep_count, deleted=deleted)
        return deleted

    async def invalidate(self, params: ParamsLike) -> bool:
        removed = await self.store.delete(hash_parameters(params))
        if removed:
            prompt_cache_evictions_total.labels(policy="invalidate").inc()
        return removed

    async def clear(self) -> int:
        deleted = await self.store.clear()
        prompt_cache_evictions_total.labels(policy="clear").inc(deleted)
        logger.warning("Cleared prompt cache", deleted=deleted)
        return deleted

    async def warmup(self, entries: Iterable[tuple[ParamsLike, str]]) -> int:
        """
        Pre-populate prompts for known parameter sets.

        Entries already present are left untouched.

        Returns:
            Number of entries inserted
        """
        inserted = 0
        for params, prompt in entries:
            if not await self.would_cache_hit(params):
                await self.cache_prompt(params, prompt)
                inserted += 1
        logger.info("Prompt cache warmup complete", inserted=inserted)
        return inserted

    async def get_stats(self) -> CacheStats:
        entries = await self.store.list_entries()
        if not entries:
            return CacheStats()
        total_usage = sum(e.usage_count for e in entries)
        return CacheStats(
            total_entries=len(entries),
            total_usage=total_usage,
            average_usage=round(total_usage / len(entries), 2),
            oldest_entry=min(e.created_at for e in entries),
            newest_entry=max(e.created_at for e in entries),
        )
