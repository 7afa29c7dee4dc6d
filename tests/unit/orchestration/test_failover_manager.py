"""Unit tests for FailoverManager."""

import asyncio

import pytest

from render_orchestrator.models.enums import CircuitState, GenerationErrorType
from render_orchestrator.models.generation import ProviderResult
from render_orchestrator.orchestration.failover import FailoverManager
from render_orchestrator.providers.base_provider import BaseImageProvider
from render_orchestrator.providers.mock_provider import MockImageProvider
from render_orchestrator.retry.circuit_breaker import CircuitBreakerConfig
from render_orchestrator.retry.manager import RetryConfig, RetryManager

PROMPT = "portrait of the character, arms crossed"


class ResultProvider(BaseImageProvider):
    """Returns a fixed ProviderResult instead of raising."""

    def __init__(self, name, result):
        super().__init__(name)
        self.result = result
        self.calls = 0

    async def generate_image(self, prompt):
        self.calls += 1
        return self.result

    async def health_check(self):
        return True


class BrokenStatusProvider(MockImageProvider):
    async def health_check(self):
        raise RuntimeError("status endpoint exploded")


def make_manager(providers, retry_manager, fake_clock, failure_threshold=5):
    return FailoverManager(
        providers,
        retry_manager=retry_manager,
        breaker_config=CircuitBreakerConfig(failure_threshold=failure_threshold, recovery_timeout_ms=1000),
        clock=fake_clock,
    )


@pytest.mark.asyncio
async def test_first_provider_success(fast_retry_manager, fake_clock):
    a, b = MockImageProvider("a"), MockImageProvider("b")
    manager = make_manager([a, b], fast_retry_manager, fake_clock)

    result = await manager.generate_image(PROMPT)

    assert result.success is True
    assert result.service_used == "a"
    assert result.image_url.startswith("https://images.example.com/renders/a/")
    assert b.calls == []
    assert manager.current_service_index == 0


@pytest.mark.asyncio
async def test_fails_over_and_stays_on_working_provider(fast_retry_manager, fake_clock):
    a, b = MockImageProvider("a", should_fail=True), MockImageProvider("b")
    manager = make_manager([a, b], fast_retry_manager, fake_clock)

    first = await manager.generate_image(PROMPT)
    second = await manager.generate_image(PROMPT)

    assert first.service_used == "b"
    assert second.service_used == "b"
    assert len(a.calls) == 3
    assert len(b.calls) == 2
    assert manager.current_service_index == 1
    assert list(first.provider_results) == ["a", "b"]
    assert first.provider_results["a"].total_attempts == 3


@pytest.mark.asyncio
async def test_non_retryable_error_moves_on_after_one_call(fast_retry_manager, fake_clock):
    a = MockImageProvider("a", should_fail=True, failure_type=GenerationErrorType.AUTHENTICATION_ERROR)
    b = MockImageProvider("b")
    manager = make_manager([a, b], fast_retry_manager, fake_clock)

    result = await manager.generate_image(PROMPT)

    assert result.service_used == "b"
    assert len(a.calls) == 1


@pytest.mark.asyncio
async def test_all_providers_failed_composite_error(fast_retry_manager, fake_clock):
    a = MockImageProvider("a", should_fail=True)
    b = MockImageProvider("b", should_fail=True, failure_type=GenerationErrorType.RATE_LIMITED, retry_after_ms=0)
    manager = make_manager([a, b], fast_retry_manager, fake_clock)

    result = await manager.generate_image(PROMPT)

    assert result.success is False
    assert result.error.message == "All providers failed. Last error: Mock service failure from b"
    assert result.error.error_type is GenerationErrorType.RATE_LIMITED
    assert result.error.details["last_error"]["provider"] == "b"
    # One full rotation lands back on the starting provider
    assert manager.current_service_index == 0


@pytest.mark.asyncio
async def test_unsuccessful_result_becomes_error(fast_retry_manager, recording_sleep, fake_clock):
    limited = ResultProvider(
        "a", ProviderResult(success=False, error="quota", retry_after_ms=250)
    )
    b = MockImageProvider("b")
    manager = make_manager([limited, b], fast_retry_manager, fake_clock)

    result = await manager.generate_image(PROMPT)

    assert result.service_used == "b"
    assert limited.calls == 3
    assert result.provider_results["a"].error.error_type is GenerationErrorType.RATE_LIMITED
    assert recording_sleep.delays_ms == [250, 250]


@pytest.mark.asyncio
async def test_success_without_image_url_is_failure(fast_retry_manager, fake_clock):
    empty = ResultProvider("a", ProviderResult(success=True))
    manager = make_manager([empty, MockImageProvider("b")], fast_retry_manager, fake_clock)

    result = await manager.generate_image(PROMPT)

    assert result.service_used == "b"
    assert empty.calls == 1


@pytest.mark.asyncio
async def test_open_breaker_skips_provider(fast_retry_manager, fake_clock):
    a, b = MockImageProvider("a", should_fail=True), MockImageProvider("b")
    manager = make_manager([a, b], fast_retry_manager, fake_clock, failure_threshold=2)

    await manager.generate_image(PROMPT)

    # Third retry attempt was rejected by the open breaker
    assert len(a.calls) == 2
    assert manager.breakers["a"].state is CircuitState.OPEN

    manager.current_service_index = 0
    result = await manager.generate_image(PROMPT)

    assert result.service_used == "b"
    assert len(a.calls) == 2


@pytest.mark.asyncio
async def test_concurrent_requests_each_walk_every_provider_once(recording_sleep, fake_clock):
    a = MockImageProvider("a", should_fail=True, response_delay_ms=10)
    b = MockImageProvider("b")
    single_attempt = RetryManager(RetryConfig(max_attempts=1), sleep=recording_sleep)
    manager = make_manager([a, b], single_attempt, fake_clock)

    results = await asyncio.gather(manager.generate_image(PROMPT), manager.generate_image(PROMPT))

    assert [r.service_used for r in results] == ["b", "b"]
    assert len(a.calls) == 2
    assert len(b.calls) == 2
    for result in results:
        assert list(result.provider_results) == ["a", "b"]
        assert result.provider_results["a"].success is False
    assert manager.current_service_index == 1


@pytest.mark.asyncio
async def test_late_failure_does_not_move_index_off_recovered_provider(recording_sleep, fake_clock):
    a = MockImageProvider("a", should_fail=True, response_delay_ms=20)
    b = MockImageProvider("b")
    single_attempt = RetryManager(RetryConfig(max_attempts=1), sleep=recording_sleep)
    manager = make_manager([a, b], single_attempt, fake_clock)

    slow = asyncio.create_task(manager.generate_image(PROMPT))
    while not a.calls:
        await asyncio.sleep(0)
    manager.current_service_index = 1
    fast = await manager.generate_image(PROMPT)
    slow_result = await slow

    assert fast.service_used == "b"
    assert slow_result.service_used == "b"
    assert list(fast.provider_results) == ["b"]
    assert manager.current_service_index == 1


@pytest.mark.asyncio
async def test_managers_do_not_share_breakers(fast_retry_manager, fake_clock):
    first = make_manager([MockImageProvider("a", should_fail=True)], fast_retry_manager, fake_clock, 1)
    second = make_manager([MockImageProvider("a")], fast_retry_manager, fake_clock, 1)

    await first.generate_image(PROMPT)
    result = await second.generate_image(PROMPT)

    assert first.breakers["a"].state is CircuitState.OPEN
    assert second.breakers["a"].state is CircuitState.CLOSED
    assert result.success is True


def test_requires_providers():
    with pytest.raises(ValueError):
        FailoverManager([])


def test_register_rejects_duplicate_names():
    manager = FailoverManager([MockImageProvider("a")])

    with pytest.raises(ValueError):
        manager.register_provider(MockImageProvider("a"))


def test_unregister_keeps_current_provider():
    a, b, c = MockImageProvider("a"), MockImageProvider("b"), MockImageProvider("c")
    manager = FailoverManager([a, b, c])
    manager.current_service_index = 2

    removed = manager.unregister_provider("a")

    assert removed is a
    assert manager.current_provider is c
    assert "a" not in manager.breakers


def test_unregister_errors():
    manager = FailoverManager([MockImageProvider("a")])

    with pytest.raises(KeyError):
        manager.unregister_provider("missing")
    with pytest.raises(ValueError):
        manager.unregister_provider("a")


@pytest.mark.asyncio
async def test_health_status_survives_failing_status_check():
    healthy = MockImageProvider("a")
    broken = BrokenStatusProvider("b")
    manager = FailoverManager([healthy, broken])

    health = await manager.get_health_status()

    assert health["a"].status.available is True
    assert health["a"].error is None
    assert health["b"].status.available is False
    assert health["b"].error == "status endpoint exploded"
    assert health["b"].circuit.state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_reset_circuit_breaker(fast_retry_manager, fake_clock):
    manager = make_manager([MockImageProvider("a", should_fail=True)], fast_retry_manager, fake_clock, 1)
    await manager.generate_image(PROMPT)

    status = manager.reset_circuit_breaker("a")

    assert status.state is CircuitState.CLOSED
    assert manager.get_circuit_breaker_status()["a"].failures == 0
    with pytest.raises(KeyError):
        manager.reset_circuit_breaker("missing")
