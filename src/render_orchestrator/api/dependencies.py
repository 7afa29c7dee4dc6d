"""
FastAPI dependency injection for the render orchestrator.

The orchestrator owns long-lived state (provider clients, circuit breakers,
the sticky failover index), so it is built once per process and shared.
Tests swap it out through `app.dependency_overrides`.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status

from render_orchestrator.config import Settings, settings
from render_orchestrator.models.catalog import CompatibilityCatalog, load_catalog
from render_orchestrator.orchestration.factory import build_orchestrator
from render_orchestrator.orchestration.failover import FailoverManager
from render_orchestrator.orchestration.orchestrator import GenerationOrchestrator
from render_orchestrator.persistence.prompt_cache import PromptCache
from render_orchestrator.validation.pipeline import ValidationPipeline


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_catalog() -> CompatibilityCatalog:
    """Load the compatibility catalog once per process."""
    return load_catalog(get_settings().CATALOG_PATH)


@lru_cache()
def get_orchestrator() -> GenerationOrchestrator:
    """
    Get singleton orchestrator.

    Providers, retry manager, circuit breakers and prompt cache are all
    created here and live as long as the process.

    Returns:
        GenerationOrchestrator instance
    """
    return build_orchestrator(get_settings(), catalog=get_catalog())


def get_validation_pipeline(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> ValidationPipeline:
    return orchestrator.validator


def get_failover_manager(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> FailoverManager:
    return orchestrator.failover


def get_prompt_cache(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> PromptCache:
    """
    Prompt cache of the shared orchestrator.

    Raises:
        HTTPException: 404 when caching is disabled
    """
    cache: Optional[PromptCache] = orchestrator.prompt_cache
    if cache is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Prompt cache is disabled",
        )
    return cache
