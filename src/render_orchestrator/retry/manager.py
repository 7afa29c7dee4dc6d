"""
Retry manager: bounded attempts with exponential backoff.

The manager is a leaf utility. It knows nothing about the operation it
wraps beyond the normalized GenerationError it raises:

- attempt 1 runs immediately
- a non-retryable error stops the loop at once
- a retryable error waits max(base * multiplier^(attempt-1), retry_after_ms)
  (capped at max_delay_ms) and tries again while attempts remain
- an optional timeout bounds the whole loop, backoff included
"""

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field

from render_orchestrator.config import Settings
from render_orchestrator.models.enums import GenerationErrorType
from render_orchestrator.monitoring.metrics import retry_attempts_total
from render_orchestrator.providers.exceptions import GenerationError, normalize_error
from render_orchestrator.retry.metadata import RetryAttempt, RetryResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryConfig(BaseModel):
    """Retry policy. Every field is defaulted; build once and share."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: int = Field(4, ge=1)
    base_delay_ms: int = Field(1000, ge=0)
    backoff_multiplier: float = Field(2.0, ge=1.0)
    timeout_ms: Optional[int] = Field(None, gt=0, description="Bounds the whole retry loop")
    max_delay_ms: Optional[int] = Field(30000, ge=0, description="Cap for a single backoff delay")
    jitter_factor: float = Field(0.0, ge=0.0, le=1.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryConfig":
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            base_delay_ms=settings.RETRY_BASE_DELAY_MS,
            backoff_multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
            timeout_ms=settings.RETRY_TIMEOUT_MS,
            max_delay_ms=settings.RETRY_MAX_DELAY_MS,
            jitter_factor=settings.RETRY_JITTER_FACTOR,
        )


class RetryManager:
    """
    Executes async operations under a retry policy.

    Example:
        >>> manager = RetryManager(RetryConfig(max_attempts=3))
        >>> result = await manager.execute_with_retry(lambda: provider.generate_image(prompt), "provider-a")
        >>> result.success, result.total_attempts
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize retry manager.

        Args:
            config: Default policy, used when a call passes none
            sleep: Coroutine used for backoff waits (seconds)
            rng: Random source for jitter
        """
        self.config = config or RetryConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def get_config(self) -> RetryConfig:
        return self.config

    def update_config(self, **changes) -> RetryConfig:
        """Replace the default policy with a copy carrying `changes`."""
        self.config = RetryConfig(**{**self.config.model_dump(), **changes})
        logger.info("Retry config updated", **changes)
        return self.config

    def calculate_delay(
        self,
        failed_attempt: int,
        error: GenerationError,
        config: Optional[RetryConfig] = None,
    ) -> int:
        """
        Delay in ms before the attempt following `failed_attempt`.

        Args:
            failed_attempt: 1-based number of the attempt that just failed
            error: Its normalized error (may carry retry_after_ms)
            config: Policy to apply, defaults to the manager's

        Returns:
            Delay in milliseconds
        """
        config = config or self.config
        backoff = config.base_delay_ms * config.backoff_multiplier ** (failed_attempt - 1)
        if config.jitter_factor:
            backoff += backoff * config.jitter_factor * self._rng.random()
        delay = max(backoff, error.retry_after_ms or 0)
        if config.max_delay_ms is not None:
            delay = min(delay, config.max_delay_ms)
        return int(delay)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str = "operation",
        config: Optional[RetryConfig] = None,
    ) -> RetryResult[T]:
        """
        Run `operation` until it succeeds, fails fatally or attempts run out.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            label: Name used in logs and metrics
            config: Per-call policy overriding the manager default

        Returns:
            RetryResult with the full attempt history. Never raises for
            operation failures; task cancellation propagates.
        """
        config = config or self.config
        attempts: list[RetryAttempt] = []
        start = time.perf_counter()

        loop = self._run_attempts(operation, label, config, attempts)
        if config.timeout_ms is None:
            result = await loop
        else:
            try:
                result = await asyncio.wait_for(loop, timeout=config.timeout_ms / 1000)
            except asyncio.TimeoutError:
                error = GenerationError(
                    GenerationErrorType.TIMEOUT,
                    f"{label} timed out after {config.timeout_ms}ms",
                    details={"attempts": len(attempts)},
                )
                if attempts and attempts[-1].error is None:
                    attempts[-1].error = error
                retry_attempts_total.labels(label=label, outcome="timeout").inc()
                logger.warning(
                    "Retry loop timed out",
                    label=label,
                    timeout_ms=config.timeout_ms,
                    attempts=len(attempts),
                )
                result = RetryResult(success=False, error=error, attempts=attempts)

        result.total_time_ms = int((time.perf_counter() - start) * 1000)
        return result

    async def _run_attempts(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        config: RetryConfig,
        attempts: list[RetryAttempt],
    ) -> RetryResult[T]:
        delay_ms = 0
        last_error: Optional[GenerationError] = None

        for attempt_number in range(1, config.max_attempts + 1):
            if delay_ms:
                await self._sleep(delay_ms / 1000)

            attempt = RetryAttempt(attempt_number=attempt_number, delay_ms=delay_ms)
            attempts.append(attempt)

            try:
                value = await operation()
            except Exception as exc:
                error = normalize_error(exc)
                attempt.error = error
                last_error = error
            else:
                retry_attempts_total.labels(label=label, outcome="success").inc()
                if attempt_number > 1:
                    logger.info("Operation succeeded after retry", label=label, attempt=attempt_number)
                return RetryResult(success=True, result=value, attempts=attempts)

            if not error.retryable:
                retry_attempts_total.labels(label=label, outcome="fatal_failure").inc()
                logger.warning(
                    "Non-retryable error, giving up",
                    label=label,
                    attempt=attempt_number,
                    error_type=error.error_type.value,
                    error=error.message,
                )
                break

            retry_attempts_total.labels(label=label, outcome="retryable_failure").inc()
            if attempt_number == config.max_attempts:
                logger.warning(
                    "Retry attempts exhausted",
                    label=label,
                    attempts=attempt_number,
                    error_type=error.error_type.value,
                    error=error.message,
                )
                break

            delay_ms = self.calculate_delay(attempt_number, error, config)
            logger.info(
                "Retryable error, backing off",
                label=label,
                attempt=attempt_number,
                max_attempts=config.max_attempts,
                delay_ms=delay_ms,
                error_type=error.error_type.value,
            )

        return RetryResult(success=False, error=last_error, attempts=attempts)
