"""
Per-provider circuit breaker.

CLOSED -> OPEN once failures inside the monitoring window reach the
threshold. OPEN rejects calls without invoking the provider until the
recovery timeout has elapsed since the last failure; the next call then
moves the breaker to HALF_OPEN and runs. In HALF_OPEN, enough successes
close the circuit and any failure reopens it with a fresh timer.

State is only touched in short synchronous sections (never across an
await), each guarded by a per-breaker lock so the breaker is also safe to
share between threads.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field

from render_orchestrator.config import Settings
from render_orchestrator.models.enums import CircuitState
from render_orchestrator.models.generation import CircuitBreakerStatus
from render_orchestrator.monitoring.metrics import (
    circuit_breaker_rejections_total,
    circuit_breaker_state,
    circuit_breaker_transitions_total,
)
from render_orchestrator.providers.exceptions import CircuitOpenError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitBreakerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    failure_threshold: int = Field(5, ge=1)
    recovery_timeout_ms: int = Field(30000, ge=0)
    success_threshold: int = Field(2, ge=1)
    monitoring_window_ms: int = Field(60000, gt=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CircuitBreakerConfig":
        return cls(
            failure_threshold=settings.CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout_ms=settings.CIRCUIT_RECOVERY_TIMEOUT_MS,
            success_threshold=settings.CIRCUIT_SUCCESS_THRESHOLD,
            monitoring_window_ms=settings.CIRCUIT_MONITORING_WINDOW_MS,
        )


class CircuitBreaker:
    """
    Circuit breaker guarding one named provider.

    Args:
        name: Provider name (metric label and error attribution)
        config: Thresholds and timers
        clock: Returns current time in seconds since the epoch
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failures: list[float] = []
        self._successes = 0
        self._last_failure_time: Optional[float] = None
        circuit_breaker_state.labels(provider=name).set(self._state.gauge_value)

    @property
    def state(self) -> CircuitState:
        return self._state

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run `operation` through the breaker.

        Raises:
            CircuitOpenError: Circuit is open; the operation was not invoked
            Exception: Whatever the operation raised, unchanged
        """
        self._before_call()
        try:
            result = await operation()
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _before_call(self) -> None:
        with self._lock:
            if self._state is not CircuitState.OPEN:
                return
            now = self._clock()
            remaining = self._remaining_recovery_ms(now)
            if remaining > 0:
                circuit_breaker_rejections_total.labels(provider=self.name).inc()
                raise CircuitOpenError(self.name, remaining)
            self._successes = 0
            self._transition(CircuitState.HALF_OPEN)

    def _on_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._successes += 1
                if self._successes >= self.config.success_threshold:
                    self._failures.clear()
                    self._successes = 0
                    self._transition(CircuitState.CLOSED)
            else:
                self._prune(self._clock())

    def _on_failure(self) -> None:
        with self._lock:
            now = self._clock()
            self._failures.append(now)
            self._last_failure_time = now

            if self._state is CircuitState.HALF_OPEN:
                self._successes = 0
                self._transition(CircuitState.OPEN)
                return

            self._prune(now)
            if self._state is CircuitState.CLOSED and len(self._failures) >= self.config.failure_threshold:
                self._transition(CircuitState.OPEN)

    def _prune(self, now: float) -> None:
        """Drop failures older than the monitoring window."""
        window_start = now - self.config.monitoring_window_ms / 1000
        self._failures = [t for t in self._failures if t > window_start]

    def _remaining_recovery_ms(self, now: float) -> int:
        if self._state is not CircuitState.OPEN or self._last_failure_time is None:
            return 0
        elapsed_ms = (now - self._last_failure_time) * 1000
        return max(0, int(self.config.recovery_timeout_ms - elapsed_ms))

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        circuit_breaker_state.labels(provider=self.name).set(new_state.gauge_value)
        circuit_breaker_transitions_total.labels(
            provider=self.name, from_state=old_state.value, to_state=new_state.value
        ).inc()
        log = logger.warning if new_state is CircuitState.OPEN else logger.info
        log(
            "Circuit breaker state changed",
            provider=self.name,
            from_state=old_state.value,
            to_state=new_state.value,
            failures=len(self._failures),
        )

    def get_status(self) -> CircuitBreakerStatus:
        """Snapshot of the breaker. Read-only: does not prune stored failures."""
        with self._lock:
            now = self._clock()
            window_start = now - self.config.monitoring_window_ms / 1000
            in_window = sum(1 for t in self._failures if t > window_start)
            next_retry = None
            if self._state is CircuitState.OPEN and self._last_failure_time is not None:
                next_retry = _to_datetime(self._last_failure_time + self.config.recovery_timeout_ms / 1000)
            return CircuitBreakerStatus(
                name=self.name,
                state=self._state,
                failures=in_window,
                successes=self._successes,
                last_failure_time=_to_datetime(self._last_failure_time),
                next_retry_time=next_retry,
            )

    def reset(self) -> None:
        """Force the breaker back to CLOSED and forget all history."""
        with self._lock:
            self._failures.clear()
            self._successes = 0
            self._last_failure_time = None
            self._transition(CircuitState.CLOSED)
        logger.info("Circuit breaker reset", provider=self.name)

    def update_config(self, config: CircuitBreakerConfig) -> None:
        with self._lock:
            self.config = config

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, state={self._state.value})"


def _to_datetime(timestamp: Optional[float]) -> Optional[datetime]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
