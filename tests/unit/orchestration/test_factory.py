"""Unit tests for the orchestrator wiring helpers."""

from unittest.mock import AsyncMock

import pytest

from render_orchestrator.orchestration.factory import (
    build_orchestrator,
    build_prompt_cache_store,
    build_providers,
    parse_provider_endpoint,
)
from render_orchestrator.persistence.prompt_store import InMemoryPromptCacheStore, RedisPromptCacheStore
from render_orchestrator.providers.http_provider import HTTPImageProvider
from render_orchestrator.providers.mock_provider import MockImageProvider


def test_parse_provider_endpoint():
    assert parse_provider_endpoint(" primary = https://img-a.internal/v1/generate ") == (
        "primary",
        "https://img-a.internal/v1/generate",
    )


@pytest.mark.parametrize("spec", ["https://no-name", "=https://x", "name=", ""])
def test_parse_provider_endpoint_rejects_malformed(spec):
    with pytest.raises(ValueError):
        parse_provider_endpoint(spec)


def test_build_providers_defaults_to_mocks(test_settings):
    providers = build_providers(test_settings)

    assert [p.name for p in providers] == ["mock-primary", "mock-secondary"]
    assert all(isinstance(p, MockImageProvider) for p in providers)


def test_build_providers_from_endpoints(test_settings):
    settings = test_settings.model_copy(
        update={"PROVIDER_ENDPOINTS": ["a=https://a.example/gen", "b=https://b.example/gen"]}
    )

    providers = build_providers(settings)

    assert [p.name for p in providers] == ["a", "b"]
    assert all(isinstance(p, HTTPImageProvider) for p in providers)


def test_build_providers_without_any_source(test_settings):
    settings = test_settings.model_copy(update={"USE_MOCK_PROVIDERS": False})

    with pytest.raises(ValueError):
        build_providers(settings)


def test_build_prompt_cache_store_backends(test_settings):
    assert isinstance(build_prompt_cache_store(test_settings), InMemoryPromptCacheStore)

    redis_settings = test_settings.model_copy(update={"CACHE_BACKEND": "redis"})
    store = build_prompt_cache_store(redis_settings, redis_client=AsyncMock())
    assert isinstance(store, RedisPromptCacheStore)

    with pytest.raises(ValueError):
        build_prompt_cache_store(test_settings.model_copy(update={"CACHE_BACKEND": "sqlite"}))


def test_build_orchestrator_applies_settings(test_settings):
    settings = test_settings.model_copy(update={"CIRCUIT_FAILURE_THRESHOLD": 7})

    orchestrator = build_orchestrator(settings)

    failover = orchestrator.failover
    assert failover.retry_manager.get_config().max_attempts == 3
    assert failover.breakers["mock-primary"].config.failure_threshold == 7
    assert orchestrator.prompt_cache is not None
    assert isinstance(orchestrator.prompt_cache.store, InMemoryPromptCacheStore)
