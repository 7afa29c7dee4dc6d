"""
FastAPI application entry point for the render orchestrator.
"""

from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from render_orchestrator.api.dependencies import get_catalog, get_orchestrator
from render_orchestrator.api.error_handlers import EXCEPTION_HANDLERS
from render_orchestrator.api.middleware import RequestTracingMiddleware
from render_orchestrator.api.routes_admin import router as admin_router
from render_orchestrator.api.routes_generation import router as generation_router
from render_orchestrator.config import settings
from render_orchestrator.logging_config import configure_logging
from render_orchestrator.persistence.redis_client import RedisClient

# Configure structured logging before the app starts emitting events
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Render Orchestrator",
    description="Validated, cached and fault-tolerant character image generation across providers",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (must be first for request_id in all logs)
app.add_middleware(RequestTracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.include_router(generation_router, tags=["generation"])
app.include_router(admin_router, tags=["admin"])


@app.on_event("startup")
async def startup():
    """Load the catalog and assemble the orchestrator so config errors fail fast."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        cache_backend=settings.CACHE_BACKEND,
    )

    templates_dir = Path(settings.PROMPT_TEMPLATES_DIR)
    if not templates_dir.exists():
        logger.error("Prompt templates directory not found", path=str(templates_dir))

    catalog = get_catalog()
    logger.info(
        "Compatibility catalog loaded",
        path=settings.CATALOG_PATH,
        poses=len(catalog.poses),
        outfits=len(catalog.outfits),
        footwear=len(catalog.footwear),
        props=len(catalog.props),
        frames=len(catalog.frames),
    )

    orchestrator = get_orchestrator()
    logger.info(
        "Application startup complete",
        providers=[p.name for p in orchestrator.failover.providers],
        cache_enabled=orchestrator.prompt_cache is not None,
    )


@app.on_event("shutdown")
async def shutdown():
    """Close provider clients and the Redis pool."""
    logger.info("Application shutdown")
    if get_orchestrator.cache_info().currsize:
        await get_orchestrator().failover.close()
    await RedisClient.close_async_pool()
    logger.info("Application shutdown complete")


if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Service index: documentation and the main endpoints."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "generate": "/generate",
        "health": "/health",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "render_orchestrator.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
