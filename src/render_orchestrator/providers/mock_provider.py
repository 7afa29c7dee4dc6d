"""
In-process mock provider for development and tests.

Simulates latency, random or forced failures and health without any
network access. Image URLs are deterministic per prompt.
"""

import asyncio
import hashlib
import random
import time
from typing import Optional

import structlog

from render_orchestrator.models.enums import GenerationErrorType
from render_orchestrator.models.generation import ProviderResult
from render_orchestrator.providers.base_provider import BaseImageProvider
from render_orchestrator.providers.exceptions import GenerationError

logger = structlog.get_logger(__name__)

MAX_PROMPT_LENGTH = 5000


class MockImageProvider(BaseImageProvider):
    """
    Configurable fake provider.

    Every call is recorded in `calls` so tests can assert which provider
    was invoked and with which prompt.
    """

    def __init__(
        self,
        name: str = "mock",
        should_fail: bool = False,
        failure_rate: float = 0.0,
        failure_type: GenerationErrorType = GenerationErrorType.SERVICE_UNAVAILABLE,
        retry_after_ms: Optional[int] = None,
        response_delay_ms: int = 0,
        is_healthy: bool = True,
        image_base_url: str = "https://images.example.com/renders",
        rng: Optional[random.Random] = None,
    ):
        super().__init__(name)
        self.should_fail = should_fail
        self.failure_rate = failure_rate
        self.failure_type = failure_type
        self.retry_after_ms = retry_after_ms
        self.response_delay_ms = response_delay_ms
        self.is_healthy = is_healthy
        self.image_base_url = image_base_url.rstrip("/")
        self._rng = rng or random.Random()
        self.calls: list[str] = []

    async def generate_image(self, prompt: str) -> ProviderResult:
        self.calls.append(prompt)
        start = time.perf_counter()

        if self.response_delay_ms:
            await asyncio.sleep(self.response_delay_ms / 1000)

        if len(prompt) > MAX_PROMPT_LENGTH:
            self.stats.record(False, (time.perf_counter() - start) * 1000)
            raise GenerationError(
                GenerationErrorType.INVALID_REQUEST,
                f"Prompt exceeds maximum length of {MAX_PROMPT_LENGTH} characters",
                provider=self.name,
                details={"prompt_length": len(prompt)},
            )

        if self.should_fail or (self.failure_rate and self._rng.random() < self.failure_rate):
            self.stats.record(False, (time.perf_counter() - start) * 1000)
            logger.debug("Mock provider simulating failure", provider=self.name, error_type=self.failure_type.value)
            raise GenerationError(
                self.failure_type,
                f"Mock service failure from {self.name}",
                retry_after_ms=self.retry_after_ms,
                provider=self.name,
            )

        digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
        self.stats.record(True, (time.perf_counter() - start) * 1000)
        return ProviderResult(success=True, image_url=f"{self.image_base_url}/{self.name}/{digest}.png")

    async def health_check(self) -> bool:
        return self.is_healthy
