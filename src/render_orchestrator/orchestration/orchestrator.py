"""
Generation orchestrator.

Composes the full request path:
validate -> prompt cache lookup -> build prompt -> failover dispatch -> cache write-back.

Validation errors return before any I/O. A cache entry that already has a
rendered image short-circuits without touching a provider. Cache storage
failures are logged and reported on the outcome as `cache_error`; they
never turn a successful render into a failure.
"""

import time
from typing import Optional

import structlog

from render_orchestrator.models.enums import GenerationErrorType
from render_orchestrator.models.generation import CacheEntry, GenerationOutcome
from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.models.validation import ValidationReport
from render_orchestrator.monitoring.metrics import (
    generation_duration_seconds,
    generation_requests_total,
    prompt_cache_errors_total,
)
from render_orchestrator.orchestration.failover import FailoverManager
from render_orchestrator.persistence.exceptions import DatabaseError
from render_orchestrator.persistence.prompt_cache import PromptCache, hash_parameters
from render_orchestrator.providers.prompt_builder import PromptBuilder
from render_orchestrator.validation.pipeline import ValidationPipeline

logger = structlog.get_logger(__name__)

CACHE_SERVICE_NAME = "cache"


class GenerationOrchestrator:
    """
    Top-level entry point for rendering a parameter set.

    All collaborators are injected; the orchestrator holds no global state,
    so several instances (per test, per tenant) can coexist.
    """

    def __init__(
        self,
        validator: ValidationPipeline,
        prompt_builder: PromptBuilder,
        failover: FailoverManager,
        prompt_cache: Optional[PromptCache] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            validator: Parameter validation pipeline
            prompt_builder: Builds prompts on cache miss
            failover: Provider failover manager (owns retry + breakers)
            prompt_cache: Prompt cache, None disables caching
        """
        self.validator = validator
        self.prompt_builder = prompt_builder
        self.failover = failover
        self.prompt_cache = prompt_cache

    def validate(self, params: ParameterSet) -> ValidationReport:
        """Dry-run validation without generating anything."""
        return self.validator.validate(params)

    async def generate(self, params: ParameterSet) -> GenerationOutcome:
        """
        Render a character image for params.

        Args:
            params: Requested stylistic parameters

        Returns:
            GenerationOutcome (never raises for validation, provider or cache failures)
        """
        start = time.perf_counter()
        parameters_hash = hash_parameters(params)
        log = logger.bind(parameters_hash=parameters_hash[:12])

        report = self.validator.validate(params)
        if not report.is_valid:
            log.info("Rejected invalid parameters", errors=len(report.errors))
            return self._finish(
                GenerationOutcome(
                    success=False,
                    error=report.errors[0].message,
                    error_type=GenerationErrorType.VALIDATION_ERROR,
                    parameters_hash=parameters_hash,
                    validation=report,
                ),
                start,
                "validation_error",
            )

        cache_error: Optional[str] = None
        entry: Optional[CacheEntry] = None
        if self.prompt_cache is not None:
            try:
                entry = await self.prompt_cache.get_cached_entry(params)
            except DatabaseError as e:
                prompt_cache_errors_total.labels(operation="read").inc()
                log.error("Prompt cache read failed, continuing without cache", error=str(e))
                cache_error = e.message

        if entry is not None and entry.image_url:
            log.info("Serving render from prompt cache", usage_count=entry.usage_count)
            return self._finish(
                GenerationOutcome(
                    success=True,
                    image_url=entry.image_url,
                    service_used=CACHE_SERVICE_NAME,
                    cache_hit=True,
                    prompt=entry.full_prompt,
                    parameters_hash=parameters_hash,
                    validation=report,
                ),
                start,
                "cache_hit",
            )

        prompt = entry.full_prompt if entry is not None else self.prompt_builder.build_prompt(params)
        dispatch = await self.failover.generate_image(prompt)

        if not dispatch.success:
            error = dispatch.error
            log.error(
                "Generation failed on all providers",
                error_type=error.error_type.value if error else None,
                error=error.message if error else None,
            )
            return self._finish(
                GenerationOutcome(
                    success=False,
                    error=error.message if error else "Generation failed",
                    error_type=error.error_type if error else GenerationErrorType.UNKNOWN_ERROR,
                    retry_after_ms=error.retry_after_ms if error else None,
                    cache_hit=entry is not None,
                    prompt=prompt,
                    parameters_hash=parameters_hash,
                    validation=report,
                    cache_error=cache_error,
                ),
                start,
                "failed",
            )

        if self.prompt_cache is not None and cache_error is None:
            try:
                await self.prompt_cache.cache_prompt(params, prompt, dispatch.image_url)
            except DatabaseError as e:
                prompt_cache_errors_total.labels(operation="write").inc()
                log.error("Prompt cache write failed", error=str(e))
                cache_error = e.message

        log.info("Generation succeeded", service_used=dispatch.service_used)
        return self._finish(
            GenerationOutcome(
                success=True,
                image_url=dispatch.image_url,
                service_used=dispatch.service_used,
                cache_hit=entry is not None,
                prompt=prompt,
                parameters_hash=parameters_hash,
                validation=report,
                cache_error=cache_error,
            ),
            start,
            "success",
        )

    @staticmethod
    def _finish(outcome: GenerationOutcome, start: float, label: str) -> GenerationOutcome:
        elapsed = time.perf_counter() - start
        outcome.generation_time_ms = int(elapsed * 1000)
        generation_requests_total.labels(outcome=label).inc()
        generation_duration_seconds.labels(cache_hit=str(outcome.cache_hit).lower()).observe(elapsed)
        return outcome
