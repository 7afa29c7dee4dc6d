"""
Provider failover manager.

Holds an ordered list of providers and a sticky index. Each call starts at
the provider that last succeeded (or the one after the last failure) and
walks the list at most once, wrapping every provider call as
retry(circuit_breaker(provider)). A provider that exhausts its retries is
not fatal; only exhausting every provider is.

The manager owns its breaker registry, so two managers never share state.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

import structlog

from render_orchestrator.models.enums import GenerationErrorType
from render_orchestrator.models.generation import CircuitBreakerStatus, ProviderHealth, ProviderStatus
from render_orchestrator.monitoring.metrics import provider_failovers_total, provider_requests_total
from render_orchestrator.providers.base_provider import BaseImageProvider
from render_orchestrator.providers.exceptions import GenerationError, error_from_result, normalize_error
from render_orchestrator.retry.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from render_orchestrator.retry.manager import RetryManager
from render_orchestrator.retry.metadata import RetryResult

logger = structlog.get_logger(__name__)


@dataclass
class FailoverResult:
    """
    Outcome of a failover dispatch.

    Attributes:
        success: Whether some provider rendered the image
        image_url: Rendered image on success
        service_used: Name of the provider that succeeded
        error: Composite error when every provider failed
        provider_results: Retry history per provider tried, in call order
    """

    success: bool
    image_url: Optional[str] = None
    service_used: Optional[str] = None
    error: Optional[GenerationError] = None
    provider_results: dict[str, RetryResult] = field(default_factory=dict)


class FailoverManager:
    """
    Sticky failover across interchangeable providers.

    Args:
        providers: Providers in preference order (names must be unique)
        retry_manager: Retry policy applied to each provider call
        breaker_config: Config for the per-provider circuit breakers
        clock: Time source for the breakers
    """

    def __init__(
        self,
        providers: Sequence[BaseImageProvider],
        retry_manager: Optional[RetryManager] = None,
        breaker_config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        if not providers:
            raise ValueError("FailoverManager needs at least one provider")
        self.retry_manager = retry_manager or RetryManager()
        self.breaker_config = breaker_config or CircuitBreakerConfig()
        self._clock = clock
        self._providers: list[BaseImageProvider] = []
        self.breakers: dict[str, CircuitBreaker] = {}
        self.current_service_index = 0
        for provider in providers:
            self.register_provider(provider)

    @property
    def providers(self) -> list[BaseImageProvider]:
        return list(self._providers)

    @property
    def current_provider(self) -> BaseImageProvider:
        return self._providers[self.current_service_index]

    def register_provider(self, provider: BaseImageProvider) -> None:
        """Append a provider and create its circuit breaker."""
        if provider.name in self.breakers:
            raise ValueError(f"Provider '{provider.name}' is already registered")
        self._providers.append(provider)
        self.breakers[provider.name] = CircuitBreaker(provider.name, self.breaker_config, self._clock)
        logger.info("Registered provider", provider=provider.name, position=len(self._providers) - 1)

    def unregister_provider(self, name: str) -> BaseImageProvider:
        """
        Remove a provider and its breaker.

        The sticky index keeps pointing at the same provider when possible.

        Raises:
            KeyError: Unknown provider
            ValueError: Removing the last provider
        """
        index = next((i for i, p in enumerate(self._providers) if p.name == name), None)
        if index is None:
            raise KeyError(name)
        if len(self._providers) == 1:
            raise ValueError("Cannot unregister the last provider")

        provider = self._providers.pop(index)
        del self.breakers[name]
        if index < self.current_service_index:
            self.current_service_index -= 1
        self.current_service_index %= len(self._providers)
        logger.info("Unregistered provider", provider=name)
        return provider

    async def generate_image(self, prompt: str) -> FailoverResult:
        """
        Render `prompt` on the first provider that succeeds.

        The provider list and the sticky index are read once on entry, so a
        request walks its own snapshot and tries each provider at most once
        even while concurrent requests move the shared index. A success
        pins the index to the winning provider; a failure advances it only
        if it still points at the provider that failed.

        Returns:
            FailoverResult; on total failure its error message is
            "All providers failed. Last error: <message>"
        """
        providers = list(self._providers)
        breakers = [self.breakers[p.name] for p in providers]
        start = self.current_service_index % len(providers)

        provider_results: dict[str, RetryResult] = {}
        last_error: Optional[GenerationError] = None

        for offset in range(len(providers)):
            idx = (start + offset) % len(providers)
            provider, breaker = providers[idx], breakers[idx]

            result = await self.retry_manager.execute_with_retry(
                lambda: breaker.execute(lambda: self._call_provider(provider, prompt)),
                label=provider.name,
            )
            provider_results[provider.name] = result

            if result.success:
                self._stick_to(provider)
                return FailoverResult(
                    success=True,
                    image_url=result.result,
                    service_used=provider.name,
                    provider_results=provider_results,
                )

            last_error = result.error
            provider_failovers_total.labels(from_provider=provider.name).inc()
            logger.warning(
                "Provider failed, rotating to next",
                provider=provider.name,
                attempts=result.total_attempts,
                error_type=last_error.error_type.value if last_error else None,
                error=last_error.message if last_error else None,
            )
            self._advance_past(provider)

        return FailoverResult(
            success=False,
            error=self._composite_error(last_error),
            provider_results=provider_results,
        )

    async def _call_provider(self, provider: BaseImageProvider, prompt: str) -> str:
        """One provider call, normalized: returns the image URL or raises GenerationError."""
        try:
            result = await provider.generate_image(prompt)
        except Exception as exc:
            error = normalize_error(exc, provider.name)
            provider_requests_total.labels(provider=provider.name, result=error.error_type.value).inc()
            if error is exc:
                raise
            raise error from exc

        if not result.success or not result.image_url:
            error = error_from_result(result, provider.name)
            provider_requests_total.labels(provider=provider.name, result=error.error_type.value).inc()
            raise error

        provider_requests_total.labels(provider=provider.name, result="success").inc()
        return result.image_url

    def _stick_to(self, provider: BaseImageProvider) -> None:
        """Point the sticky index at `provider` if it is still registered."""
        for i, registered in enumerate(self._providers):
            if registered is provider:
                self.current_service_index = i
                return

    def _advance_past(self, provider: BaseImageProvider) -> None:
        """Advance the sticky index only while it still points at `provider`."""
        if self.current_provider is provider:
            self.current_service_index = (self.current_service_index + 1) % len(self._providers)

    @staticmethod
    def _composite_error(last_error: Optional[GenerationError]) -> GenerationError:
        if last_error is None:
            return GenerationError(GenerationErrorType.UNKNOWN_ERROR, "All providers failed. Last error: none")
        return GenerationError(
            last_error.error_type,
            f"All providers failed. Last error: {last_error.message}",
            retryable=last_error.retryable,
            retry_after_ms=last_error.retry_after_ms,
            provider=last_error.provider,
            details={"last_error": last_error.to_dict()},
        )

    async def get_health_status(self) -> dict[str, ProviderHealth]:
        """
        Check every provider concurrently.

        A status check that raises reports the provider as unavailable instead of
        failing the whole snapshot.
        """
        providers = list(self._providers)
        statuses = await asyncio.gather(
            *(p.get_status() for p in providers),
            return_exceptions=True,
        )

        health: dict[str, ProviderHealth] = {}
        for provider, status in zip(providers, statuses):
            error = None
            if isinstance(status, BaseException):
                if not isinstance(status, Exception):
                    raise status
                logger.warning("Provider status check failed", provider=provider.name, error=str(status))
                error = str(status) or type(status).__name__
                status = ProviderStatus(available=False, error_rate=provider.stats.error_rate)
            health[provider.name] = ProviderHealth(
                name=provider.name,
                status=status,
                circuit=self.breakers[provider.name].get_status(),
                error=error,
            )
        return health

    def get_circuit_breaker_status(self, name: Optional[str] = None) -> dict[str, CircuitBreakerStatus]:
        """Breaker snapshots for one provider or all of them."""
        if name is not None:
            return {name: self.breakers[name].get_status()}
        return {n: b.get_status() for n, b in self.breakers.items()}

    def reset_circuit_breaker(self, name: str) -> CircuitBreakerStatus:
        """
        Force one provider's breaker to CLOSED.

        Raises:
            KeyError: Unknown provider
        """
        breaker = self.breakers[name]
        breaker.reset()
        return breaker.get_status()

    async def close(self) -> None:
        for provider in self._providers:
            await provider.close()
