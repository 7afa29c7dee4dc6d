"""
Wiring helpers that build the orchestrator graph from Settings.

Shared by the FastAPI dependencies and the Celery maintenance tasks so both
processes assemble identical components.
"""

from pathlib import Path
from typing import Optional

import structlog
from redis.asyncio import Redis as AsyncRedis

from render_orchestrator.config import Settings
from render_orchestrator.models.catalog import CompatibilityCatalog, load_catalog
from render_orchestrator.orchestration.failover import FailoverManager
from render_orchestrator.orchestration.orchestrator import GenerationOrchestrator
from render_orchestrator.persistence.prompt_cache import PromptCache
from render_orchestrator.persistence.prompt_store import (
    InMemoryPromptCacheStore,
    PromptCacheStore,
    RedisPromptCacheStore,
)
from render_orchestrator.persistence.redis_client import RedisClient
from render_orchestrator.providers.base_provider import BaseImageProvider
from render_orchestrator.providers.http_provider import HTTPImageProvider
from render_orchestrator.providers.mock_provider import MockImageProvider
from render_orchestrator.providers.prompt_builder import PromptBuilder
from render_orchestrator.retry.circuit_breaker import CircuitBreakerConfig
from render_orchestrator.retry.manager import RetryConfig, RetryManager
from render_orchestrator.validation.pipeline import ValidationPipeline

logger = structlog.get_logger(__name__)


def parse_provider_endpoint(spec: str) -> tuple[str, str]:
    """
    Split a "name=url" provider spec.

    Raises:
        ValueError: Missing name or URL
    """
    name, sep, url = spec.partition("=")
    if not sep or not name.strip() or not url.strip():
        raise ValueError(f"Invalid provider endpoint {spec!r}, expected 'name=url'")
    return name.strip(), url.strip()


def build_providers(settings: Settings) -> list[BaseImageProvider]:
    """HTTP providers from PROVIDER_ENDPOINTS, or mocks when none are configured."""
    if settings.PROVIDER_ENDPOINTS:
        providers: list[BaseImageProvider] = []
        for spec in settings.PROVIDER_ENDPOINTS:
            name, url = parse_provider_endpoint(spec)
            providers.append(
                HTTPImageProvider(
                    name=name,
                    endpoint=url,
                    api_key=settings.PROVIDER_API_KEY,
                    timeout=settings.PROVIDER_TIMEOUT,
                )
            )
        return providers

    if not settings.USE_MOCK_PROVIDERS:
        raise ValueError("No PROVIDER_ENDPOINTS configured and USE_MOCK_PROVIDERS is disabled")

    logger.warning("No provider endpoints configured, using mock providers")
    return [
        MockImageProvider(name="mock-primary", failure_rate=settings.MOCK_PROVIDER_FAILURE_RATE),
        MockImageProvider(name="mock-secondary", failure_rate=settings.MOCK_PROVIDER_FAILURE_RATE),
    ]


def build_prompt_cache_store(settings: Settings, redis_client: Optional[AsyncRedis] = None) -> PromptCacheStore:
    backend = settings.CACHE_BACKEND.lower()
    if backend == "memory":
        return InMemoryPromptCacheStore()
    if backend == "redis":
        return RedisPromptCacheStore(redis_client or RedisClient.get_async_client(settings))
    raise ValueError(f"Unknown CACHE_BACKEND {settings.CACHE_BACKEND!r}")


def build_orchestrator(
    settings: Settings,
    catalog: Optional[CompatibilityCatalog] = None,
    providers: Optional[list[BaseImageProvider]] = None,
    prompt_cache: Optional[PromptCache] = None,
) -> GenerationOrchestrator:
    """
    Assemble a GenerationOrchestrator.

    Args:
        settings: Application settings
        catalog: Preloaded catalog, loaded from CATALOG_PATH when omitted
        providers: Provider list, built from settings when omitted
        prompt_cache: Prompt cache, built from settings when omitted and CACHE_ENABLED
    """
    catalog = catalog or load_catalog(settings.CATALOG_PATH)
    failover = FailoverManager(
        providers if providers is not None else build_providers(settings),
        retry_manager=RetryManager(RetryConfig.from_settings(settings)),
        breaker_config=CircuitBreakerConfig.from_settings(settings),
    )
    if prompt_cache is None and settings.CACHE_ENABLED:
        prompt_cache = PromptCache(build_prompt_cache_store(settings))

    orchestrator = GenerationOrchestrator(
        validator=ValidationPipeline(catalog, enable_quality_checks=settings.ENABLE_ENHANCED_VALIDATION),
        prompt_builder=PromptBuilder(Path(settings.PROMPT_TEMPLATES_DIR), catalog),
        failover=failover,
        prompt_cache=prompt_cache,
    )
    logger.info(
        "Orchestrator assembled",
        providers=[p.name for p in failover.providers],
        cache_backend=settings.CACHE_BACKEND if prompt_cache else "disabled",
    )
    return orchestrator
