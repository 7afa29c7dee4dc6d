"""
Celery application configuration for background cache maintenance.

Uses the Redis broker and result backend. Beat runs the prompt cache
cleanup tasks defined in cache_tasks.py.
"""

from celery import Celery

from render_orchestrator.config import settings

celery_app = Celery(
    "render_orchestrator",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    # Task execution
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,  # Hard limit (kills task)
    task_soft_time_limit=max(settings.CELERY_TASK_TIME_LIMIT - 30, 1),

    # Worker settings
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    worker_prefetch_multiplier=1,

    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    timezone="UTC",
    enable_utc=True,

    result_expires=3600,
    task_acks_late=True,

    # Periodic cleanup; the two tasks are independent and may run in any order
    beat_schedule={
        "cleanup-old-cache-entries": {
            "task": "cleanup_old_cache_entries",
            "schedule": float(settings.CACHE_CLEANUP_INTERVAL_SECONDS),
            "kwargs": {"max_age_days": settings.CACHE_MAX_AGE_DAYS},
        },
        "cleanup-least-used-cache-entries": {
            "task": "cleanup_least_used_cache_entries",
            "schedule": float(settings.CACHE_CLEANUP_INTERVAL_SECONDS),
            "kwargs": {"keep_count": settings.CACHE_KEEP_COUNT},
        },
    },
)

celery_app.autodiscover_tasks(["render_orchestrator.tasks"], related_name="cache_tasks")
