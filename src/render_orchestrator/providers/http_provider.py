"""
Generic HTTP image provider.

Talks to any backend exposing a JSON endpoint that accepts
`{"prompt": "..."}` and answers with `{"image_url": "..."}` (or `"url"`).
Backend-specific payloads are out of scope; the point of this adapter is
connection pooling, client-side rate limiting and classification of HTTP
failures into the GenerationError taxonomy.
"""

import json
import time
from collections import deque
from typing import Optional

import httpx
import structlog

from render_orchestrator.models.enums import GenerationErrorType
from render_orchestrator.models.generation import ProviderResult
from render_orchestrator.monitoring.metrics import provider_latency_seconds
from render_orchestrator.providers.base_provider import BaseImageProvider
from render_orchestrator.providers.exceptions import GenerationError, normalize_error

logger = structlog.get_logger(__name__)


class HTTPImageProvider(BaseImageProvider):
    """
    httpx-based provider with a persistent AsyncClient.

    Features:
    - Connection pooling via a lazily created AsyncClient
    - Bearer-token authentication
    - Optional client-side requests-per-minute limit
    - HTTP status classification (429 -> RATE_LIMITED with Retry-After, etc.)
    """

    def __init__(
        self,
        name: str,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: int = 120,
        health_url: Optional[str] = None,
        max_requests_per_minute: Optional[int] = None,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ):
        """
        Initialize HTTP provider.

        Args:
            name: Provider name
            endpoint: Full URL of the generation endpoint
            api_key: Sent as a Bearer token when set
            timeout: Request timeout in seconds
            health_url: URL polled by health_check (GET, expects 2xx)
            max_requests_per_minute: Client-side rate limit, None to disable
            connection_limits: httpx pool limits (default: 10 max connections)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(name, **kwargs)
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self.health_url = health_url
        self.max_requests_per_minute = max_requests_per_minute

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            )
        self._connection_limits = connection_limits
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_times: deque[float] = deque()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                headers=headers,
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("Created new httpx AsyncClient", provider=self.name)
        return self._client

    def _check_rate_limit(self) -> Optional[int]:
        """Return ms to wait when the client-side budget is spent, else None."""
        if not self.max_requests_per_minute:
            return None
        now = time.monotonic()
        while self._request_times and now - self._request_times[0] >= 60:
            self._request_times.popleft()
        if len(self._request_times) >= self.max_requests_per_minute:
            return int((60 - (now - self._request_times[0])) * 1000) + 1
        self._request_times.append(now)
        return None

    async def generate_image(self, prompt: str) -> ProviderResult:
        """
        POST the prompt to the endpoint.

        Raises:
            GenerationError: Classified HTTP, network, timeout or payload failure
        """
        wait_ms = self._check_rate_limit()
        if wait_ms is not None:
            logger.warning("Client-side rate limit reached", provider=self.name, retry_after_ms=wait_ms)
            return ProviderResult(
                success=False,
                error=f"Client-side rate limit of {self.max_requests_per_minute}/min reached",
                error_type=GenerationErrorType.RATE_LIMITED,
                retry_after_ms=wait_ms,
            )

        start = time.perf_counter()
        logger.info("Sending generation request", provider=self.name, prompt_length=len(prompt))

        try:
            client = await self._get_client()
            response = await client.post(self.endpoint, json={"prompt": prompt})
            response.raise_for_status()
            image_url = self._extract_image_url(response)
        except (httpx.HTTPError, GenerationError) as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.stats.record(False, elapsed_ms)
            error = normalize_error(e, self.name)
            logger.error(
                "Generation request failed",
                provider=self.name,
                error_type=error.error_type.value,
                error=error.message,
                latency_ms=int(elapsed_ms),
            )
            if error is e:
                raise
            raise error from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        self.stats.record(True, elapsed_ms)
        provider_latency_seconds.labels(provider=self.name).observe(elapsed_ms / 1000.0)
        logger.info("Generation request succeeded", provider=self.name, latency_ms=int(elapsed_ms))
        return ProviderResult(success=True, image_url=image_url)

    def _extract_image_url(self, response: httpx.Response) -> str:
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise GenerationError(
                GenerationErrorType.UNKNOWN_ERROR,
                "Invalid JSON response from provider",
                provider=self.name,
                details={"parse_error": str(e)},
            ) from e

        image_url = (data.get("image_url") or data.get("url")) if isinstance(data, dict) else None
        if not image_url:
            raise GenerationError(
                GenerationErrorType.UNKNOWN_ERROR,
                "Provider response did not contain an image URL",
                provider=self.name,
                details={"keys": sorted(data) if isinstance(data, dict) else []},
            )
        return image_url

    async def health_check(self) -> bool:
        """
        GET health_url, or fall back to recent request outcomes.

        Without a health URL the provider counts as healthy until three
        consecutive requests have failed.
        """
        if not self.health_url:
            return self.stats.consecutive_failures < 3
        try:
            client = await self._get_client()
            response = await client.get(self.health_url, timeout=10.0)
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning("Provider health check failed", provider=self.name, error=str(e))
            return False

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed httpx AsyncClient", provider=self.name)
        self._client = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, endpoint={self.endpoint}, timeout={self.timeout}s)"
