"""
Celery tasks for background prompt cache maintenance.

- celery_app.py: Celery application configuration (broker, backend, beat schedule)
- cache_tasks.py: Task definitions (cleanup_old_cache_entries, cleanup_least_used_cache_entries)
"""

from render_orchestrator.tasks.cache_tasks import (
    cleanup_least_used_cache_entries,
    cleanup_old_cache_entries,
)
from render_orchestrator.tasks.celery_app import celery_app

__all__ = [
    "celery_app",
    "cleanup_old_cache_entries",
    "cleanup_least_used_cache_entries",
]
