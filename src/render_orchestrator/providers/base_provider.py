"""
Abstract base for image-generation providers.

Defines the interface that all provider adapters must adhere to. This
abstraction lets the failover manager rotate between backends without
knowing anything about their wire protocols.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import structlog

from render_orchestrator.models.generation import ProviderResult, ProviderStatus, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class ProviderStats:
    """Running request statistics for one provider."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    consecutive_failures: int = 0
    average_response_time_ms: float = 0.0

    def record(self, success: bool, response_time_ms: float) -> None:
        self.total_requests += 1
        if success:
            self.successful_requests += 1
            self.consecutive_failures = 0
        else:
            self.failed_requests += 1
            self.consecutive_failures += 1
        # Incremental mean
        self.average_response_time_ms += (
            response_time_ms - self.average_response_time_ms
        ) / self.total_requests

    @property
    def error_rate(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.failed_requests / self.total_requests


class BaseImageProvider(ABC):
    """
    Abstract base class for image-generation providers.

    Responsibilities:
    - Send a prompt to the backend and return a ProviderResult (or raise)
    - Report health through get_status()

    Does NOT handle:
    - Prompt construction (that's PromptBuilder's job)
    - Retries and circuit breaking (that's FailoverManager's job)
    """

    def __init__(self, name: str, **kwargs):
        """
        Initialize base provider.

        Args:
            name: Unique provider name (breaker key and metric label)
            **kwargs: Additional provider-specific config
        """
        self.name = name
        self.extra_config = kwargs
        self.stats = ProviderStats()

        logger.info(
            "Initialized image provider",
            provider_class=self.__class__.__name__,
            name=name,
        )

    @abstractmethod
    async def generate_image(self, prompt: str) -> ProviderResult:
        """
        Render an image for the prompt.

        Implementations either return a ProviderResult (success or a
        classified failure) or raise; raised exceptions are normalized into
        GenerationErrors by the caller.

        Args:
            prompt: Fully built prompt

        Returns:
            ProviderResult with image_url on success
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check whether the backend is reachable.

        Should NOT raise - return False on error.
        """
        pass

    async def get_status(self) -> ProviderStatus:
        """Health snapshot combining a live health check with request statistics."""
        available = await self.health_check()
        return ProviderStatus(
            available=available,
            response_time_ms=round(self.stats.average_response_time_ms, 2),
            error_rate=self.stats.error_rate,
            last_checked=utc_now(),
        )

    async def close(self):
        """
        Close connections and cleanup resources.

        Default implementation does nothing. Subclasses holding persistent
        connections should override.
        """
        logger.debug("Closing image provider", name=self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
