"""
Generation error taxonomy.

Every failure coming out of a provider is normalized into a GenerationError
exactly once, so the retry manager, circuit breaker and failover manager
share one vocabulary. `normalize_error` is that boundary.
"""

import asyncio
import re
from typing import Any, Optional

import httpx

from render_orchestrator.models.enums import GenerationErrorType
from render_orchestrator.models.generation import ProviderResult

DEFAULT_RATE_LIMIT_RETRY_MS = 60_000
DEFAULT_SERVER_ERROR_RETRY_MS = 30_000

_TRY_AGAIN_PATTERN = re.compile(r"try again in (\d+(?:\.\d+)?)\s*s", re.IGNORECASE)


class GenerationError(Exception):
    """
    Normalized provider failure.

    `retryable` defaults from the error type (service unavailable, rate
    limited and timeout are retryable; everything else is not) unless the
    caller states it explicitly.
    """

    def __init__(
        self,
        error_type: GenerationErrorType,
        message: str,
        retryable: Optional[bool] = None,
        retry_after_ms: Optional[int] = None,
        provider: Optional[str] = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.retryable = error_type.retryable_by_default if retryable is None else retryable
        self.retry_after_ms = retry_after_ms
        self.provider = provider
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"type={self.error_type.value}, "
            f"retryable={self.retryable}, "
            f"retry_after_ms={self.retry_after_ms})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.error_type.value,
            "message": self.message,
            "retryable": self.retryable,
            "retry_after_ms": self.retry_after_ms,
            "provider": self.provider,
            "details": self.details,
        }


class CircuitOpenError(GenerationError):
    """
    Raised by an open circuit breaker without invoking the provider.

    Never retryable: retrying cannot bypass an open breaker, the failover
    manager moves on to the next provider instead.
    """

    def __init__(self, provider: str, remaining_ms: int):
        super().__init__(
            GenerationErrorType.SERVICE_UNAVAILABLE,
            f"Circuit breaker is OPEN for {provider}",
            retryable=False,
            provider=provider,
            details={"remaining_recovery_ms": remaining_ms},
        )
        self.remaining_ms = remaining_ms


def parse_retry_after(response: httpx.Response, default_ms: int) -> int:
    """
    Extract a retry delay from a rate-limit response.

    Honors the Retry-After header (seconds) first, then a "try again in Ns"
    hint in the body, then falls back to `default_ms`.
    """
    header = response.headers.get("retry-after")
    if header:
        try:
            return int(float(header) * 1000)
        except ValueError:
            pass
    match = _TRY_AGAIN_PATTERN.search(response.text or "")
    if match:
        return int(float(match.group(1)) * 1000)
    return default_ms


def classify_http_status(response: httpx.Response, provider: Optional[str] = None) -> GenerationError:
    """
    Map an HTTP error response onto the taxonomy.

    400/413/422 -> INVALID_REQUEST, 401/403 -> AUTHENTICATION_ERROR,
    408/504 -> TIMEOUT, 429 -> RATE_LIMITED, other 5xx -> SERVICE_UNAVAILABLE,
    anything else -> UNKNOWN_ERROR.
    """
    status = response.status_code
    details = {"status": status, "body": (response.text or "")[:500]}

    if status in (400, 413, 422):
        return GenerationError(
            GenerationErrorType.INVALID_REQUEST,
            f"Request rejected by provider (HTTP {status})",
            provider=provider,
            details=details,
        )
    if status in (401, 403):
        return GenerationError(
            GenerationErrorType.AUTHENTICATION_ERROR,
            f"Provider authentication failed (HTTP {status})",
            provider=provider,
            details=details,
        )
    if status in (408, 504):
        return GenerationError(
            GenerationErrorType.TIMEOUT,
            f"Provider timed out (HTTP {status})",
            provider=provider,
            details=details,
        )
    if status == 429:
        return GenerationError(
            GenerationErrorType.RATE_LIMITED,
            "Provider rate limit exceeded",
            retry_after_ms=parse_retry_after(response, DEFAULT_RATE_LIMIT_RETRY_MS),
            provider=provider,
            details=details,
        )
    if status >= 500:
        return GenerationError(
            GenerationErrorType.SERVICE_UNAVAILABLE,
            f"Provider server error (HTTP {status})",
            retry_after_ms=DEFAULT_SERVER_ERROR_RETRY_MS,
            provider=provider,
            details=details,
        )
    return GenerationError(
        GenerationErrorType.UNKNOWN_ERROR,
        f"Unexpected provider response (HTTP {status})",
        provider=provider,
        details=details,
    )


def error_from_result(result: ProviderResult, provider: Optional[str] = None) -> GenerationError:
    """
    Build the error for a provider call that returned success=False.

    Without an explicit type, a retry hint implies rate limiting; otherwise
    the failure is unclassified.
    """
    error_type = result.error_type
    if error_type is None:
        error_type = (
            GenerationErrorType.RATE_LIMITED
            if result.retry_after_ms is not None
            else GenerationErrorType.UNKNOWN_ERROR
        )
    return GenerationError(
        error_type,
        result.error or "Provider reported failure",
        retry_after_ms=result.retry_after_ms,
        provider=provider,
    )


def normalize_error(exc: BaseException, provider: Optional[str] = None) -> GenerationError:
    """
    Normalize any raised exception into a GenerationError.

    Args:
        exc: Exception raised by a provider call
        provider: Provider name to attach when the error has none

    Returns:
        GenerationError (the same instance when already normalized)
    """
    if isinstance(exc, GenerationError):
        if exc.provider is None:
            exc.provider = provider
        return exc

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return GenerationError(
            GenerationErrorType.TIMEOUT,
            f"Provider request timed out: {exc}" if str(exc) else "Provider request timed out",
            provider=provider,
            details={"exception": type(exc).__name__},
        )

    if isinstance(exc, httpx.HTTPStatusError):
        return classify_http_status(exc.response, provider)

    if isinstance(exc, httpx.TransportError):
        return GenerationError(
            GenerationErrorType.SERVICE_UNAVAILABLE,
            f"Network error: {exc}",
            provider=provider,
            details={"exception": type(exc).__name__},
        )

    return GenerationError(
        GenerationErrorType.UNKNOWN_ERROR,
        str(exc) or type(exc).__name__,
        retryable=False,
        provider=provider,
        details={"exception": type(exc).__name__},
    )
