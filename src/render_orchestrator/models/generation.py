"""
Generation, provider and cache data models.

These are the shapes exchanged between the orchestrator and its
collaborators (providers, cache store) and returned to callers.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from render_orchestrator.models.enums import CircuitState, GenerationErrorType
from render_orchestrator.models.validation import ValidationReport


def utc_now() -> datetime:
    """Current time as an aware UTC datetime; every timestamp in the service uses it."""
    return datetime.now(timezone.utc)


class ProviderResult(BaseModel):
    """
    Result of a single provider call.

    Providers may either raise or return `success=False`; the failover layer
    turns unsuccessful results into GenerationErrors.
    """

    model_config = ConfigDict(extra="forbid")

    success: bool
    image_url: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[GenerationErrorType] = None
    retry_after_ms: Optional[int] = Field(None, ge=0)


class ProviderStatus(BaseModel):
    """Point-in-time health snapshot reported by a provider."""

    model_config = ConfigDict(extra="forbid")

    available: bool
    response_time_ms: float = Field(0.0, ge=0)
    error_rate: float = Field(0.0, ge=0.0, le=1.0)
    last_checked: datetime = Field(default_factory=utc_now)


class CircuitBreakerStatus(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    state: CircuitState
    failures: int = Field(..., ge=0, description="Failures inside the monitoring window")
    successes: int = Field(..., ge=0, description="Successes counted while half-open")
    last_failure_time: Optional[datetime] = None
    next_retry_time: Optional[datetime] = Field(None, description="When an open circuit admits a trial call")


class ProviderHealth(BaseModel):
    """Provider status combined with its circuit breaker state."""

    model_config = ConfigDict(extra="forbid")

    name: str
    status: ProviderStatus
    circuit: CircuitBreakerStatus
    error: Optional[str] = Field(None, description="Set when the status check itself failed")


class CacheEntry(BaseModel):
    """A cached prompt keyed by the canonical parameter hash."""

    model_config = ConfigDict(extra="forbid")

    parameters_hash: str
    full_prompt: str
    created_at: datetime
    last_used: datetime
    usage_count: int = Field(1, ge=1)
    image_url: Optional[str] = None


class CacheStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_entries: int = 0
    total_usage: int = 0
    average_usage: float = 0.0
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None


class GenerationOutcome(BaseModel):
    """
    Caller-facing result of an orchestrated generation.

    Exactly one of `image_url` (success) or `error` (failure) is meaningful.
    `cache_error` is independent of `success`: it reports that the prompt
    cache could not be read or written while the render itself went ahead.
    """

    model_config = ConfigDict(extra="forbid")

    success: bool
    image_url: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[GenerationErrorType] = None
    retry_after_ms: Optional[int] = None
    service_used: Optional[str] = None
    generation_time_ms: int = Field(0, ge=0)
    cache_hit: bool = False
    prompt: Optional[str] = None
    parameters_hash: Optional[str] = None
    validation: Optional[ValidationReport] = None
    cache_error: Optional[str] = None
