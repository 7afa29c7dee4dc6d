"""
Resilience primitives for provider calls.

- RetryManager: bounded attempts with exponential backoff and optional timeout
- CircuitBreaker: per-provider CLOSED/OPEN/HALF_OPEN state machine

Both are independent and composable; the failover manager wraps each
provider call as retry(breaker(provider)).

Usage:
    >>> from render_orchestrator.retry import RetryManager, CircuitBreaker
    >>> breaker = CircuitBreaker("provider-a")
    >>> result = await RetryManager().execute_with_retry(
    ...     lambda: breaker.execute(lambda: provider.generate_image(prompt)), "provider-a"
    ... )
"""

from render_orchestrator.retry.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from render_orchestrator.retry.manager import RetryConfig, RetryManager
from render_orchestrator.retry.metadata import RetryAttempt, RetryResult

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "RetryAttempt",
    "RetryConfig",
    "RetryManager",
    "RetryResult",
]
