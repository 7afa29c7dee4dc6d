"""
Unit tests for parameter hashing and the PromptCache service.

The cache runs on the in-memory store with a controllable clock.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.persistence.prompt_cache import PromptCache, hash_parameters
from render_orchestrator.persistence.prompt_store import InMemoryPromptCacheStore

START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InterleavingStore(InMemoryPromptCacheStore):
    """Yields to the event loop after every read, like a network round trip."""

    async def get(self, parameters_hash):
        entry = await super().get(parameters_hash)
        await asyncio.sleep(0)
        return entry


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def store():
    return InMemoryPromptCacheStore()


@pytest.fixture
def cache(store, clock):
    return PromptCache(store, clock=clock)


# ============================================================================
# Hashing
# ============================================================================


def test_hash_is_sha256_hex(valid_params):
    digest = hash_parameters(valid_params)

    assert len(digest) == 64
    assert all(c in "0123456789abcdef" for c in digest)


def test_hash_ignores_key_order():
    a = {"pose": "arms-crossed", "outfit": "hoodie-sweatpants", "footwear": "jordan-1", "prop": "stone-totem"}
    b = {"prop": "stone-totem", "footwear": "jordan-1", "outfit": "hoodie-sweatpants", "pose": "arms-crossed"}

    assert hash_parameters(a) == hash_parameters(b)


def test_hash_treats_omitted_and_none_optionals_alike(valid_params):
    explicit = ParameterSet(
        pose="arms-crossed",
        outfit="hoodie-sweatpants",
        footwear="jordan-1",
        prop=None,
        frame_type=None,
        frame_id=None,
    )

    assert hash_parameters(valid_params) == hash_parameters(explicit)
    assert hash_parameters(valid_params) == hash_parameters(valid_params.model_dump())


def test_hash_differs_for_different_parameters(make_params):
    assert hash_parameters(make_params()) != hash_parameters(make_params(footwear="air-max-90"))
    assert hash_parameters(make_params()) != hash_parameters(make_params(prop="stone-totem"))


# ============================================================================
# Lookup and upsert
# ============================================================================


@pytest.mark.asyncio
async def test_miss_returns_none(cache, valid_params):
    assert await cache.get_cached_entry(valid_params) is None
    assert await cache.get_cached_prompt(valid_params) is None


@pytest.mark.asyncio
async def test_cache_prompt_then_hit_bumps_usage(cache, clock, valid_params):
    parameters_hash = await cache.cache_prompt(valid_params, "PROMPT", "https://img/1.png")
    clock.advance(minutes=5)

    entry = await cache.get_cached_entry(valid_params)

    assert parameters_hash == hash_parameters(valid_params)
    assert entry.full_prompt == "PROMPT"
    assert entry.image_url == "https://img/1.png"
    assert entry.usage_count == 2
    assert entry.created_at == START
    assert entry.last_used == START + timedelta(minutes=5)


@pytest.mark.asyncio
async def test_cache_prompt_is_an_upsert(cache, store, valid_params):
    await cache.cache_prompt(valid_params, "PROMPT")
    await cache.cache_prompt(valid_params, "PROMPT")

    entries = await store.list_entries()
    assert len(entries) == 1
    assert entries[0].usage_count == 2


@pytest.mark.asyncio
async def test_upsert_without_image_keeps_stored_image(cache, valid_params):
    await cache.cache_prompt(valid_params, "PROMPT", "https://img/1.png")
    await cache.cache_prompt(valid_params, "PROMPT")

    entry = await cache.get_entry_by_hash(hash_parameters(valid_params))
    assert entry.image_url == "https://img/1.png"


@pytest.mark.asyncio
async def test_concurrent_hits_and_writes_never_lose_a_count(clock, valid_params):
    store = InterleavingStore()
    cache = PromptCache(store, clock=clock)
    await cache.cache_prompt(valid_params, "PROMPT", "https://img/1.png")

    hits = [cache.get_cached_entry(valid_params) for _ in range(10)]
    writes = [cache.cache_prompt(valid_params, "PROMPT") for _ in range(5)]
    results = await asyncio.gather(*hits, *writes)

    assert all(entry is not None for entry in results[:10])
    entry = await cache.get_entry_by_hash(hash_parameters(valid_params))
    assert entry.usage_count == 16
    assert entry.image_url == "https://img/1.png"


@pytest.mark.asyncio
async def test_would_cache_hit_has_no_side_effect(cache, valid_params):
    await cache.cache_prompt(valid_params, "PROMPT")

    assert await cache.would_cache_hit(valid_params) is True
    assert await cache.would_cache_hit(valid_params) is True

    entry = await cache.get_entry_by_hash(hash_parameters(valid_params))
    assert entry.usage_count == 1


@pytest.mark.asyncio
async def test_get_cached_prompt(cache, valid_params):
    await cache.cache_prompt(valid_params, "PROMPT")

    assert await cache.get_cached_prompt(valid_params) == "PROMPT"


# ============================================================================
# Eviction hooks and maintenance
# ============================================================================


@pytest.mark.asyncio
async def test_cleanup_old_entries_uses_last_used(cache, clock, make_params):
    stale, fresh = make_params(), make_params(footwear="air-max-90")
    await cache.cache_prompt(stale, "OLD")
    await cache.cache_prompt(fresh, "NEW")

    clock.advance(days=10)
    await cache.get_cached_entry(fresh)  # touched now, stays

    deleted = await cache.cleanup_old_entries(7)

    assert deleted == 1
    assert await cache.would_cache_hit(stale) is False
    assert await cache.would_cache_hit(fresh) is True


@pytest.mark.asyncio
async def test_cleanup_old_entries_rejects_negative_age(cache):
    with pytest.raises(ValueError):
        await cache.cleanup_old_entries(-1)


@pytest.mark.asyncio
async def test_cleanup_least_used_keeps_most_used(cache, make_params):
    popular, rare = make_params(), make_params(footwear="ultraboost")
    await cache.cache_prompt(popular, "A")
    await cache.cache_prompt(rare, "B")
    await cache.get_cached_entry(popular)

    deleted = await cache.cleanup_least_used(1)

    assert deleted == 1
    assert await cache.would_cache_hit(popular) is True
    assert await cache.would_cache_hit(rare) is False


@pytest.mark.asyncio
async def test_invalidate_and_clear(cache, make_params):
    await cache.cache_prompt(make_params(), "A")
    await cache.cache_prompt(make_params(footwear="ultraboost"), "B")

    assert await cache.invalidate(make_params()) is True
    assert await cache.invalidate(make_params()) is False
    assert await cache.clear() == 1
    assert (await cache.get_stats()).total_entries == 0


@pytest.mark.asyncio
async def test_warmup_skips_existing_entries(cache, make_params):
    await cache.cache_prompt(make_params(), "EXISTING")

    inserted = await cache.warmup([(make_params(), "REPLACEMENT"), (make_params(prop="stone-totem"), "NEW")])

    assert inserted == 1
    assert await cache.get_cached_prompt(make_params()) == "EXISTING"


@pytest.mark.asyncio
async def test_get_stats(cache, clock, make_params):
    await cache.cache_prompt(make_params(), "A")
    clock.advance(hours=1)
    await cache.cache_prompt(make_params(footwear="ultraboost"), "B")
    await cache.get_cached_entry(make_params())

    stats = await cache.get_stats()

    assert stats.total_entries == 2
    assert stats.total_usage == 3
    assert stats.average_usage == 1.5
    assert stats.oldest_entry == START
    assert stats.newest_entry == START + timedelta(hours=1)


@pytest.mark.asyncio
async def test_get_stats_empty(cache):
    stats = await cache.get_stats()

    assert stats.total_entries == 0
    assert stats.oldest_entry is None
