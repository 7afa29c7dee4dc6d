"""
Generation routes: render, dry-run validation and option discovery.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from render_orchestrator.api.dependencies import get_orchestrator, get_validation_pipeline
from render_orchestrator.models.enums import GenerationErrorType
from render_orchestrator.models.generation import GenerationOutcome
from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.models.validation import CompatibleOptions, ValidationReport
from render_orchestrator.orchestration.orchestrator import GenerationOrchestrator
from render_orchestrator.validation.exceptions import ParameterValidationError
from render_orchestrator.validation.pipeline import ValidationPipeline

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/generate",
    response_model=GenerationOutcome,
    summary="Render a character image",
    description="""
    Validate the parameter set, reuse a cached render or prompt when one
    exists, otherwise dispatch to the image providers with retry,
    circuit breaking and failover.
    """,
    responses={
        200: {"description": "Image generated or served from cache"},
        400: {"description": "Malformed request body"},
        422: {"description": "Parameter set failed compatibility validation"},
        502: {"description": "All providers failed"},
    },
)
async def generate(
    params: ParameterSet,
    response: Response,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationOutcome:
    outcome = await orchestrator.generate(params)

    if outcome.error_type is GenerationErrorType.VALIDATION_ERROR and outcome.validation is not None:
        raise ParameterValidationError(outcome.validation)

    if not outcome.success:
        response.status_code = status.HTTP_502_BAD_GATEWAY
        if outcome.retry_after_ms:
            response.headers["Retry-After"] = str(max(1, outcome.retry_after_ms // 1000))
    return outcome


@router.post(
    "/validate",
    response_model=ValidationReport,
    summary="Validate a parameter set without generating",
)
async def validate(
    params: ParameterSet,
    pipeline: ValidationPipeline = Depends(get_validation_pipeline),
) -> ValidationReport:
    return pipeline.validate(params)


@router.get(
    "/options/{pose_id}",
    response_model=CompatibleOptions,
    summary="List outfits, footwear and props compatible with a pose",
    responses={404: {"description": "Unknown pose"}},
)
async def compatible_options(
    pose_id: str,
    pipeline: ValidationPipeline = Depends(get_validation_pipeline),
) -> CompatibleOptions:
    if pose_id not in pipeline.catalog.poses:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Pose '{pose_id}' not found",
        )
    return pipeline.get_compatible_options(pose_id)

