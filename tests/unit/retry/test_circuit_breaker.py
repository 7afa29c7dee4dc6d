"""Unit tests for CircuitBreaker state transitions."""

import pytest

from render_orchestrator.models.enums import CircuitState, GenerationErrorType
from render_orchestrator.providers.exceptions import CircuitOpenError, GenerationError
from render_orchestrator.retry.circuit_breaker import CircuitBreaker, CircuitBreakerConfig


@pytest.fixture
def breaker(fake_clock):
    config = CircuitBreakerConfig(
        failure_threshold=3,
        recovery_timeout_ms=1000,
        success_threshold=2,
        monitoring_window_ms=5000,
    )
    return CircuitBreaker("provider-a", config, clock=fake_clock)


async def succeed():
    return "image"


async def fail():
    raise GenerationError(GenerationErrorType.SERVICE_UNAVAILABLE, "down")


async def fail_n(breaker, n):
    for _ in range(n):
        with pytest.raises(GenerationError):
            await breaker.execute(fail)


@pytest.mark.asyncio
async def test_closed_passes_results_through(breaker):
    assert await breaker.execute(succeed) == "image"
    assert breaker.state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_operation_error_is_reraised_unchanged(breaker):
    error = GenerationError(GenerationErrorType.RATE_LIMITED, "slow", retry_after_ms=10)

    async def raise_it():
        raise error

    with pytest.raises(GenerationError) as exc_info:
        await breaker.execute(raise_it)

    assert exc_info.value is error


@pytest.mark.asyncio
async def test_opens_at_failure_threshold(breaker):
    await fail_n(breaker, 2)
    assert breaker.state is CircuitState.CLOSED

    await fail_n(breaker, 1)
    assert breaker.state is CircuitState.OPEN


@pytest.mark.asyncio
async def test_open_rejects_without_invoking(breaker, fake_clock):
    await fail_n(breaker, 3)
    calls = []

    async def tracked():
        calls.append(1)
        return "image"

    fake_clock.advance_ms(400)
    with pytest.raises(CircuitOpenError) as exc_info:
        await breaker.execute(tracked)

    assert calls == []
    assert exc_info.value.retryable is False
    assert exc_info.value.provider == "provider-a"
    assert 599 <= exc_info.value.remaining_ms <= 600


@pytest.mark.asyncio
async def test_recovery_moves_to_half_open_then_closed(breaker, fake_clock):
    await fail_n(breaker, 3)
    fake_clock.advance_ms(1000)

    assert await breaker.execute(succeed) == "image"
    assert breaker.state is CircuitState.HALF_OPEN

    await breaker.execute(succeed)
    assert breaker.state is CircuitState.CLOSED
    assert breaker.get_status().failures == 0


@pytest.mark.asyncio
async def test_half_open_failure_reopens_with_fresh_timer(breaker, fake_clock):
    await fail_n(breaker, 3)
    fake_clock.advance_ms(1500)

    await fail_n(breaker, 1)
    assert breaker.state is CircuitState.OPEN

    fake_clock.advance_ms(900)
    with pytest.raises(CircuitOpenError):
        await breaker.execute(succeed)

    fake_clock.advance_ms(100)
    await breaker.execute(succeed)
    assert breaker.state is CircuitState.HALF_OPEN


@pytest.mark.asyncio
async def test_failures_outside_window_do_not_count(breaker, fake_clock):
    await fail_n(breaker, 2)
    fake_clock.advance_ms(6000)

    await fail_n(breaker, 2)

    assert breaker.state is CircuitState.CLOSED
    assert breaker.get_status().failures == 2


@pytest.mark.asyncio
async def test_get_status_reports_open_timing(breaker, fake_clock):
    await fail_n(breaker, 3)

    status = breaker.get_status()

    assert status.name == "provider-a"
    assert status.state is CircuitState.OPEN
    assert status.failures == 3
    assert status.last_failure_time is not None
    assert (status.next_retry_time - status.last_failure_time).total_seconds() == pytest.approx(1.0, abs=1e-3)


@pytest.mark.asyncio
async def test_reset_closes_and_clears(breaker):
    await fail_n(breaker, 3)

    breaker.reset()

    status = breaker.get_status()
    assert status.state is CircuitState.CLOSED
    assert status.failures == 0
    assert status.last_failure_time is None
    assert await breaker.execute(succeed) == "image"


def test_closed_status_has_no_retry_time(breaker):
    status = breaker.get_status()

    assert status.state is CircuitState.CLOSED
    assert status.next_retry_time is None
