"""Custom Prometheus metrics for the render orchestrator.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- generation_requests_total (high failure ratio)
- circuit_breaker_state (any provider stuck OPEN)
- provider_failovers_total (primary provider degrading)
- prompt_cache_errors_total (cache storage unavailable)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Generation Metrics ===

generation_requests_total = Counter(
    "generation_requests_total",
    "Total orchestrated generation requests by outcome",
    ["outcome"],
)
"""
Generation requests counter by outcome.

Labels:
- outcome: success, cache_hit, validation_error, failed

Alert thresholds:
- WARN: failed rate > 5% of total requests
- CRITICAL: failed rate > 20% of total requests
"""

generation_duration_seconds = Histogram(
    "generation_duration_seconds",
    "End-to-end generation latency in seconds",
    ["cache_hit"],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
Generation latency histogram (validation + cache + provider dispatch).

Labels:
- cache_hit: true, false
"""

# === Validation Metrics ===

validation_issues_total = Counter(
    "validation_issues_total",
    "Total parameter validation issues by field and severity",
    ["field", "severity"],
)
"""
Validation issues counter.

Labels:
- field: pose, outfit, footwear, prop, frame_id, frame_type
- severity: error, warning, info
"""

# === Provider Metrics ===

provider_requests_total = Counter(
    "provider_requests_total",
    "Total provider calls by provider and result",
    ["provider", "result"],
)
"""
Provider calls counter (one per attempt, after retry/breaker wrapping).

Labels:
- provider: provider name
- result: success or a GenerationErrorType value
"""

provider_latency_seconds = Histogram(
    "provider_latency_seconds",
    "Provider call latency in seconds",
    ["provider"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

provider_failovers_total = Counter(
    "provider_failovers_total",
    "Total failovers away from a provider",
    ["from_provider"],
)
"""
Failover counter. Incremented each time the sticky index moves past a provider.

Alert thresholds:
- WARN: sustained failovers from the primary provider
"""

# === Retry Metrics ===

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Total retry attempts by operation label and outcome",
    ["label", "outcome"],
)
"""
Retry attempts counter.

Labels:
- label: operation label passed to the retry manager (usually provider name)
- outcome: success, retryable_failure, fatal_failure, timeout
"""

# === Circuit Breaker Metrics ===

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Current circuit breaker state per provider (0=closed, 1=half-open, 2=open)",
    ["provider"],
)

circuit_breaker_transitions_total = Counter(
    "circuit_breaker_transitions_total",
    "Total circuit breaker state transitions",
    ["provider", "from_state", "to_state"],
)

circuit_breaker_rejections_total = Counter(
    "circuit_breaker_rejections_total",
    "Calls rejected without invoking the provider because the circuit was open",
    ["provider"],
)

# === Prompt Cache Metrics ===

prompt_cache_lookups_total = Counter(
    "prompt_cache_lookups_total",
    "Total prompt cache lookups by result",
    ["result"],
)
"""
Prompt cache lookups.

Labels:
- result: hit, miss
"""

prompt_cache_errors_total = Counter(
    "prompt_cache_errors_total",
    "Total prompt cache storage errors by operation",
    ["operation"],
)
"""
Prompt cache storage errors (reported separately from generation failures).

Labels:
- operation: read, write, cleanup
"""

prompt_cache_evictions_total = Counter(
    "prompt_cache_evictions_total",
    "Total prompt cache entries removed by cleanup policy",
    ["policy"],
)
"""
Cache evictions.

Labels:
- policy: max_age, least_used, invalidate, clear
"""
