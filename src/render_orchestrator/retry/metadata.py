"""
Retry attempt tracking.

RetryAttempt and RetryResult capture the attempt history of one
`execute_with_retry` call for diagnostics and test assertions. They are
discarded once the call completes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from render_orchestrator.models.generation import utc_now
from render_orchestrator.providers.exceptions import GenerationError

T = TypeVar("T")


@dataclass
class RetryAttempt:
    """
    A single attempt of a retried operation.

    Recorded when the attempt starts; `error` is filled in if it fails.

    Attributes:
        attempt_number: 1-based attempt index
        delay_ms: Backoff waited before this attempt (0 for the first)
        error: Normalized failure, None while running or on success
        timestamp: When the attempt started (UTC)
    """

    attempt_number: int
    delay_ms: int
    error: Optional[GenerationError] = None
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if self.attempt_number < 1:
            raise ValueError("attempt_number must be >= 1")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")


@dataclass
class RetryResult(Generic[T]):
    """
    Outcome of a retried operation.

    Attributes:
        success: Whether some attempt succeeded
        result: Return value of the successful attempt
        error: Final normalized error when unsuccessful
        attempts: Full attempt history, regardless of outcome
        total_time_ms: Wall time of the whole call including backoff
    """

    success: bool
    result: Optional[T] = None
    error: Optional[GenerationError] = None
    attempts: list[RetryAttempt] = field(default_factory=list)
    total_time_ms: int = 0

    @property
    def total_attempts(self) -> int:
        return len(self.attempts)

    def summary(self) -> dict[str, Any]:
        """Loggable view of the attempt history."""
        return {
            "success": self.success,
            "total_attempts": self.total_attempts,
            "total_time_ms": self.total_time_ms,
            "delays_ms": [a.delay_ms for a in self.attempts],
            "errors": [a.error.error_type.value for a in self.attempts if a.error],
        }
