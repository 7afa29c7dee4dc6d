"""Monitoring and metrics instrumentation for the render orchestrator.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from render_orchestrator.monitoring.metrics import (
    circuit_breaker_rejections_total,
    circuit_breaker_state,
    circuit_breaker_transitions_total,
    generation_duration_seconds,
    generation_requests_total,
    prompt_cache_errors_total,
    prompt_cache_evictions_total,
    prompt_cache_lookups_total,
    provider_failovers_total,
    provider_latency_seconds,
    provider_requests_total,
    retry_attempts_total,
    validation_issues_total,
)

__all__ = [
    "generation_requests_total",
    "generation_duration_seconds",
    "validation_issues_total",
    "provider_requests_total",
    "provider_latency_seconds",
    "provider_failovers_total",
    "retry_attempts_total",
    "circuit_breaker_state",
    "circuit_breaker_transitions_total",
    "circuit_breaker_rejections_total",
    "prompt_cache_lookups_total",
    "prompt_cache_errors_total",
    "prompt_cache_evictions_total",
]
