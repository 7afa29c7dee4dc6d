"""
FastAPI exception handlers for structured error responses.

Maps domain exceptions to HTTP status codes. Every body has the shape
`{error, message, details?, timestamp}`.
"""

from typing import Any, Optional

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from render_orchestrator.models.catalog import CatalogLoadError
from render_orchestrator.models.generation import utc_now
from render_orchestrator.persistence.exceptions import DatabaseError
from render_orchestrator.providers.exceptions import GenerationError
from render_orchestrator.validation.exceptions import ParameterValidationError

logger = structlog.get_logger(__name__)


def error_body(error: str, message: str, details: Optional[Any] = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "error": error,
        "message": message,
        "timestamp": utc_now().isoformat(),
    }
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return body


async def parameter_validation_error_handler(
    request: Request, exc: ParameterValidationError
) -> JSONResponse:
    """
    Handle rejected parameter sets.

    Maps to 422 Unprocessable Entity. The details carry the full
    validation report including alternatives.
    """
    logger.info(
        "Parameter validation failed",
        errors=len(exc.report.errors),
        warnings=len(exc.report.warnings),
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body("validation_failed", exc.message, exc.details),
    )


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    """Prompt cache storage failures map to 503 Service Unavailable."""
    logger.error("Prompt cache unavailable", statement=exc.statement, error=exc.message)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_body("cache_unavailable", exc.message, exc.details),
    )


async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Provider failures that escape the orchestrator map to 502 Bad Gateway."""
    logger.error(
        "Generation error",
        error_type=exc.error_type.value,
        provider=exc.provider,
        error=exc.message,
    )
    headers = {}
    if exc.retry_after_ms:
        headers["Retry-After"] = str(max(1, exc.retry_after_ms // 1000))
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=error_body("generation_failed", exc.message, exc.to_dict()),
        headers=headers or None,
    )


async def catalog_error_handler(request: Request, exc: CatalogLoadError) -> JSONResponse:
    logger.error("Catalog unavailable", error=exc.message, **exc.details)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("catalog_unavailable", exc.message),
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError | PydanticValidationError
) -> JSONResponse:
    """
    Handle malformed request bodies.

    Maps to 400 Bad Request (client error).
    """
    errors = exc.errors()
    logger.warning("Invalid request format", error_count=len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("invalid_request", "Request validation failed", errors),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("internal_error", "An unexpected error occurred"),
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ParameterValidationError: parameter_validation_error_handler,
    DatabaseError: database_error_handler,
    GenerationError: generation_error_handler,
    CatalogLoadError: catalog_error_handler,
    RequestValidationError: request_validation_error_handler,
    PydanticValidationError: request_validation_error_handler,
    Exception: generic_error_handler,
}
