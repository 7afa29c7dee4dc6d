"""
Enumerations for the render orchestrator data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class FrameType(str, Enum):
    """Rendering mode requested for a frame."""

    STANDARD = "standard"
    ONBOARDING = "onboarding"
    SEQUENCE = "sequence"

    @property
    def requires_frame_id(self) -> bool:
        """Onboarding and sequence renders are tied to a concrete frame."""
        return self in (FrameType.ONBOARDING, FrameType.SEQUENCE)


class PoseCategory(str, Enum):
    PRIMARY = "primary"
    ONBOARDING = "onboarding"
    SEQUENCE = "sequence"


class VisualWeight(str, Enum):
    """How visually prominent a garment is in the final render."""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


class Severity(str, Enum):
    """
    Validation issue severity.

    Only ERROR blocks generation. WARNING and INFO are surfaced to the caller.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class GenerationErrorType(str, Enum):
    """
    Failure taxonomy shared by providers, retry manager and circuit breaker.

    VALIDATION_ERROR never comes out of a provider: it only tags orchestrator
    outcomes rejected before dispatch.
    """

    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    @property
    def retryable_by_default(self) -> bool:
        return self in (
            GenerationErrorType.SERVICE_UNAVAILABLE,
            GenerationErrorType.RATE_LIMITED,
            GenerationErrorType.TIMEOUT,
        )


class CircuitState(str, Enum):
    """Circuit breaker states. Ordered by severity for the state gauge."""

    CLOSED = "CLOSED"
    HALF_OPEN = "HALF_OPEN"
    OPEN = "OPEN"

    @property
    def gauge_value(self) -> int:
        """0=closed, 1=half-open, 2=open."""
        order = [CircuitState.CLOSED, CircuitState.HALF_OPEN, CircuitState.OPEN]
        return order.index(self)
