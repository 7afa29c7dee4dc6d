"""
Operational routes: provider health, circuit breakers and prompt cache
maintenance.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from render_orchestrator.api.dependencies import get_failover_manager, get_prompt_cache, get_settings
from render_orchestrator.api.models import (
    CacheCleanupRequest,
    CacheCleanupResponse,
    CircuitBreakersResponse,
    HealthResponse,
)
from render_orchestrator.config import Settings
from render_orchestrator.models.enums import CircuitState
from render_orchestrator.models.generation import CacheStats, CircuitBreakerStatus
from render_orchestrator.orchestration.failover import FailoverManager
from render_orchestrator.persistence.prompt_cache import PromptCache

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Check every provider and report its status with its circuit breaker.

    The service is healthy while at least one provider is available and
    its circuit is not open; otherwise it reports degraded with 503.
    """,
    responses={
        200: {"description": "At least one provider can take traffic"},
        503: {"description": "No provider can take traffic"},
    },
)
async def health_check(
    failover: FailoverManager = Depends(get_failover_manager),
    settings: Settings = Depends(get_settings),
):
    providers = await failover.get_health_status()
    healthy = any(
        h.status.available and h.circuit.state is not CircuitState.OPEN
        for h in providers.values()
    )
    body = HealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.APP_VERSION,
        current_provider=failover.current_provider.name,
        providers=providers,
    )
    if not healthy:
        logger.warning("Health check degraded", providers=list(providers))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(mode="json"),
        )
    return body


@router.get(
    "/circuit-breakers",
    response_model=CircuitBreakersResponse,
    summary="Circuit breaker state for every provider",
)
async def list_circuit_breakers(
    failover: FailoverManager = Depends(get_failover_manager),
) -> CircuitBreakersResponse:
    return CircuitBreakersResponse(breakers=failover.get_circuit_breaker_status())


@router.post(
    "/circuit-breakers/{name}/reset",
    response_model=CircuitBreakerStatus,
    summary="Force a provider's circuit breaker back to CLOSED",
    responses={404: {"description": "Unknown provider"}},
)
async def reset_circuit_breaker(
    name: str,
    failover: FailoverManager = Depends(get_failover_manager),
) -> CircuitBreakerStatus:
    try:
        breaker_status = failover.reset_circuit_breaker(name)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Provider '{name}' not found",
        )
    logger.info("Circuit breaker reset via API", provider=name)
    return breaker_status


@router.get(
    "/cache/stats",
    response_model=CacheStats,
    summary="Prompt cache statistics",
    responses={503: {"description": "Cache storage unavailable"}},
)
async def cache_stats(cache: PromptCache = Depends(get_prompt_cache)) -> CacheStats:
    return await cache.get_stats()


@router.post(
    "/cache/cleanup",
    response_model=CacheCleanupResponse,
    summary="Evict stale and least-used prompt cache entries",
    responses={503: {"description": "Cache storage unavailable"}},
)
async def cache_cleanup(
    request: CacheCleanupRequest,
    cache: PromptCache = Depends(get_prompt_cache),
    settings: Settings = Depends(get_settings),
) -> CacheCleanupResponse:
    max_age_days = request.max_age_days if request.max_age_days is not None else settings.CACHE_MAX_AGE_DAYS
    keep_count = request.keep_count if request.keep_count is not None else settings.CACHE_KEEP_COUNT

    deleted_old = await cache.cleanup_old_entries(max_age_days)
    deleted_least_used = await cache.cleanup_least_used(keep_count)
    return CacheCleanupResponse(
        deleted_old=deleted_old,
        deleted_least_used=deleted_least_used,
        max_age_days=max_age_days,
        keep_count=keep_count,
    )
