"""
Storage backends for the prompt cache.

Storage strategy (Redis):
- Entries: Hash per entry, key = "promptcache:entry:{parameters_hash}"
- Recency index: Sorted set "promptcache:index:last_used" (score = last_used timestamp)
- Usage index: Sorted set "promptcache:index:usage" (score = usage_count)

Every Redis failure is raised as DatabaseError carrying the command and its
arguments; nothing is swallowed, so callers can tell a storage failure from
a cache miss.

Usage counts are only ever changed with HINCRBY/ZINCRBY inside MULTI/EXEC,
so concurrent hits from several workers never lose an increment.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from render_orchestrator.models.generation import CacheEntry
from render_orchestrator.persistence.exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class PromptCacheStore(ABC):
    """Minimal storage interface the prompt cache needs."""

    @abstractmethod
    async def get(self, parameters_hash: str) -> Optional[CacheEntry]:
        """Return the entry or None when absent."""

    @abstractmethod
    async def upsert(
        self,
        parameters_hash: str,
        prompt: str,
        used_at: datetime,
        image_url: Optional[str] = None,
    ) -> int:
        """
        Insert an entry with usage_count 1, or atomically increment an existing one.

        `created_at` is set on insert only; `last_used` becomes `used_at`.
        A None `image_url` keeps any previously stored image.

        Returns:
            usage_count after the write
        """

    @abstractmethod
    async def touch(self, parameters_hash: str, used_at: datetime) -> Optional[CacheEntry]:
        """
        Record a hit: atomically increment usage_count and set last_used.

        Returns:
            The entry after the update, or None when absent
        """

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete entries last used before `cutoff`; return how many."""

    @abstractmethod
    async def delete_except_top_used(self, keep: int) -> int:
        """
        Keep the `keep` most used entries (ties: most recently used first),
        delete the rest, return how many were deleted.
        """

    @abstractmethod
    async def delete(self, parameters_hash: str) -> bool:
        """Delete one entry; return whether it existed."""

    @abstractmethod
    async def clear(self) -> int:
        """Delete all entries; return how many."""

    @abstractmethod
    async def list_entries(self, limit: Optional[int] = None) -> list[CacheEntry]:
        """Entries ordered by usage, most used first."""


def _rank_key(entry: CacheEntry) -> tuple[int, datetime]:
    return (entry.usage_count, entry.last_used)


class InMemoryPromptCacheStore(PromptCacheStore):
    """
    Process-local store.

    Used for single-process deployments (CACHE_BACKEND=memory) and tests.
    No method awaits internally, so each operation is atomic on the event loop.
    """

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, parameters_hash: str) -> Optional[CacheEntry]:
        entry = self._entries.get(parameters_hash)
        return entry.model_copy() if entry else None

    async def upsert(self, parameters_hash, prompt, used_at, image_url=None) -> int:
        existing = self._entries.get(parameters_hash)
        usage_count = existing.usage_count + 1 if existing else 1
        self._entries[parameters_hash] = CacheEntry(
            parameters_hash=parameters_hash,
            full_prompt=prompt,
            created_at=existing.created_at if existing else used_at,
            last_used=used_at,
            usage_count=usage_count,
            image_url=image_url or (existing.image_url if existing else None),
        )
        return usage_count

    async def touch(self, parameters_hash: str, used_at: datetime) -> Optional[CacheEntry]:
        existing = self._entries.get(parameters_hash)
        if existing is None:
            return None
        updated = existing.model_copy(update={"usage_count": existing.usage_count + 1, "last_used": used_at})
        self._entries[parameters_hash] = updated
        return updated.model_copy()

    async def delete_older_than(self, cutoff: datetime) -> int:
        stale = [h for h, e in self._entries.items() if e.last_used < cutoff]
        for h in stale:
            del self._entries[h]
        return len(stale)

    async def delete_except_top_used(self, keep: int) -> int:
        if keep < 0:
            raise ValueError("keep must be >= 0")
        ranked = sorted(self._entries.values(), key=_rank_key, reverse=True)
        victims = [e.parameters_hash for e in ranked[keep:]]
        for h in victims:
            del self._entries[h]
        return len(victims)

    async def delete(self, parameters_hash: str) -> bool:
        return self._entries.pop(parameters_hash, None) is not None

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    async def list_entries(self, limit: Optional[int] = None) -> list[CacheEntry]:
        ranked = sorted(self._entries.values(), key=_rank_key, reverse=True)
        if limit is not None:
            ranked = ranked[:limit]
        return [e.model_copy() for e in ranked]


class RedisPromptCacheStore(PromptCacheStore):
    """Redis-backed store (see module docstring for the key layout)."""

    # Redis key prefixes
    ENTRY_PREFIX = "promptcache:entry:"
    LAST_USED_INDEX = "promptcache:index:last_used"
    USAGE_INDEX = "promptcache:index:usage"

    def __init__(self, redis_client: AsyncRedis):
        """
        Initialize store.

        Args:
            redis_client: AsyncRedis client (decode_responses=True)
        """
        self.redis = redis_client

    def _key(self, parameters_hash: str) -> str:
        return f"{self.ENTRY_PREFIX}{parameters_hash}"

    async def _run(self, command: str, *args: Any, **kwargs: Any) -> Any:
        """Execute one Redis command, translating failures to DatabaseError."""
        try:
            return await getattr(self.redis, command)(*args, **kwargs)
        except RedisError as e:
            logger.error("Redis command failed", command=command.upper(), error=str(e))
            raise DatabaseError(f"Redis {command.upper()} failed: {e}", command.upper(), args) from e

    async def _transaction(self, key: str, queue: Callable[[Any], None]) -> list[Any]:
        """Run the commands `queue` adds inside MULTI/EXEC, translating failures to DatabaseError."""
        pipe = self.redis.pipeline(transaction=True)
        queue(pipe)
        try:
            return await pipe.execute()
        except RedisError as e:
            logger.error("Redis transaction failed", key=key, error=str(e))
            raise DatabaseError(f"Redis EXEC failed: {e}", "EXEC", (key,)) from e

    def _parse(self, parameters_hash: str, data: dict[str, str]) -> CacheEntry:
        try:
            return CacheEntry(
                parameters_hash=parameters_hash,
                full_prompt=data["full_prompt"],
                created_at=datetime.fromisoformat(data["created_at"]),
                last_used=datetime.fromisoformat(data["last_used"]),
                usage_count=int(data["usage_count"]),
                image_url=data.get("image_url") or None,
            )
        except (KeyError, ValueError) as e:
            raise DatabaseError(
                f"Corrupt prompt cache entry: {e}", "HGETALL", (self._key(parameters_hash),)
            ) from e

    async def get(self, parameters_hash: str) -> Optional[CacheEntry]:
        data = await self._run("hgetall", self._key(parameters_hash))
        if not data:
            return None
        return self._parse(parameters_hash, data)

    async def upsert(self, parameters_hash, prompt, used_at, image_url=None) -> int:
        key = self._key(parameters_hash)
        mapping: dict[str, Any] = {
            "full_prompt": prompt,
            "last_used": used_at.isoformat(),
        }
        if image_url:
            mapping["image_url"] = image_url

        def queue(pipe):
            pipe.hsetnx(key, "created_at", used_at.isoformat())
            pipe.hset(key, mapping=mapping)
            pipe.hincrby(key, "usage_count", 1)
            pipe.zadd(self.LAST_USED_INDEX, {parameters_hash: used_at.timestamp()})
            pipe.zincrby(self.USAGE_INDEX, 1, parameters_hash)

        results = await self._transaction(key, queue)
        usage_count = int(results[2])

        logger.debug("Upserted prompt cache entry", parameters_hash=parameters_hash, usage_count=usage_count)
        return usage_count

    async def touch(self, parameters_hash: str, used_at: datetime) -> Optional[CacheEntry]:
        key = self._key(parameters_hash)
        if not await self._run("exists", key):
            return None

        def queue(pipe):
            pipe.hincrby(key, "usage_count", 1)
            pipe.hset(key, "last_used", used_at.isoformat())
            pipe.zadd(self.LAST_USED_INDEX, {parameters_hash: used_at.timestamp()})
            pipe.zincrby(self.USAGE_INDEX, 1, parameters_hash)
            pipe.hgetall(key)

        data = (await self._transaction(key, queue))[-1]
        if "full_prompt" not in data:
            # Deleted between EXISTS and EXEC; drop the fragment the increment left behind
            await self.delete(parameters_hash)
            return None
        return self._parse(parameters_hash, data)

    async def delete_older_than(self, cutoff: datetime) -> int:
        hashes = await self._run("zrangebyscore", self.LAST_USED_INDEX, "-inf", f"({cutoff.timestamp()}")
        return await self._delete_many(hashes)

    async def delete_except_top_used(self, keep: int) -> int:
        if keep < 0:
            raise ValueError("keep must be >= 0")
        usage = await self._run("zrange", self.USAGE_INDEX, 0, -1, withscores=True)
        last_used = dict(await self._run("zrange", self.LAST_USED_INDEX, 0, -1, withscores=True))
        ranked = sorted(usage, key=lambda item: (item[1], last_used.get(item[0], 0.0)), reverse=True)
        return await self._delete_many([member for member, _ in ranked[keep:]])

    async def delete(self, parameters_hash: str) -> bool:
        removed = await self._run("delete", self._key(parameters_hash))
        await self._run("zrem", self.LAST_USED_INDEX, parameters_hash)
        await self._run("zrem", self.USAGE_INDEX, parameters_hash)
        return bool(removed)

    async def clear(self) -> int:
        hashes = await self._run("zrange", self.USAGE_INDEX, 0, -1)
        return await self._delete_many(hashes)

    async def list_entries(self, limit: Optional[int] = None) -> list[CacheEntry]:
        if limit == 0:
            return []
        end = -1 if limit is None else limit - 1
        hashes = await self._run("zrevrange", self.USAGE_INDEX, 0, end)
        entries = []
        for parameters_hash in hashes:
            entry = await self.get(parameters_hash)
            if entry is not None:
                entries.append(entry)
        return entries

    async def _delete_many(self, hashes: list[str]) -> int:
        if not hashes:
            return 0
        await self._run("delete", *[self._key(h) for h in hashes])
        await self._run("zrem", self.LAST_USED_INDEX, *hashes)
        await self._run("zrem", self.USAGE_INDEX, *hashes)
        logger.info("Deleted prompt cache entries", count=len(hashes))
        return len(hashes)
