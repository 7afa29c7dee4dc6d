"""
API-specific request and response models.

Domain models (ParameterSet, GenerationOutcome, ValidationReport) are used
directly as bodies; these wrap the admin endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from render_orchestrator.models.generation import CircuitBreakerStatus, ProviderHealth, utc_now


class HealthResponse(BaseModel):
    """Response for the health endpoint."""

    status: str = Field(
        description="healthy when at least one provider is available with a non-open circuit",
        examples=["healthy", "degraded"],
    )
    version: str
    current_provider: Optional[str] = Field(
        default=None,
        description="Provider the next request will be dispatched to first",
    )
    providers: dict[str, ProviderHealth] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class CircuitBreakersResponse(BaseModel):
    breakers: dict[str, CircuitBreakerStatus]


class CacheCleanupRequest(BaseModel):
    """
    Request for an on-demand cache cleanup.

    Omitted fields fall back to CACHE_MAX_AGE_DAYS / CACHE_KEEP_COUNT.
    """

    max_age_days: Optional[int] = Field(default=None, ge=0)
    keep_count: Optional[int] = Field(default=None, ge=0)


class CacheCleanupResponse(BaseModel):
    deleted_old: int = Field(ge=0, description="Entries not used within max_age_days")
    deleted_least_used: int = Field(ge=0, description="Entries beyond the keep_count most used")
    max_age_days: int
    keep_count: int
