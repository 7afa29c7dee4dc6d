"""
FastAPI API routes and endpoints.

- routes_generation.py: POST /generate, POST /validate, GET /options/{pose_id}
- routes_admin.py: GET /health, circuit breaker status/reset, cache stats/cleanup
- dependencies.py: Shared orchestrator singleton and its components
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
"""

from render_orchestrator.api import dependencies, error_handlers, models
from render_orchestrator.api.routes_admin import router as admin_router
from render_orchestrator.api.routes_generation import router as generation_router

__all__ = [
    "generation_router",
    "admin_router",
    "dependencies",
    "error_handlers",
    "models",
]
