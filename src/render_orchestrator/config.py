"""
Configuration settings for the render orchestrator.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Character Render Orchestrator"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"  # "production" switches logs to JSON
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === Catalog & Prompts ===
    CATALOG_PATH: str = "config/catalog.json"
    PROMPT_TEMPLATES_DIR: str = "config/prompts"
    ENABLE_ENHANCED_VALIDATION: bool = True  # Brand/visual heuristics (warnings only)

    # === Retry ===
    RETRY_MAX_ATTEMPTS: int = 4
    RETRY_BASE_DELAY_MS: int = 1000
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    RETRY_TIMEOUT_MS: Optional[int] = None  # Bounds the whole retry loop, unset = no timeout
    RETRY_MAX_DELAY_MS: int = 30000
    RETRY_JITTER_FACTOR: float = 0.0  # 0.1 adds up to 10% random delay

    # === Circuit Breaker ===
    CIRCUIT_FAILURE_THRESHOLD: int = 5
    CIRCUIT_RECOVERY_TIMEOUT_MS: int = 30000
    CIRCUIT_SUCCESS_THRESHOLD: int = 2
    CIRCUIT_MONITORING_WINDOW_MS: int = 60000

    # === Providers ===
    PROVIDER_ENDPOINTS: list[str] = []  # e.g., ["primary=https://img-a.internal/v1/generate"]
    PROVIDER_API_KEY: Optional[str] = None
    PROVIDER_TIMEOUT: int = 120  # seconds, per HTTP call
    USE_MOCK_PROVIDERS: bool = True  # Used when no PROVIDER_ENDPOINTS are configured
    MOCK_PROVIDER_FAILURE_RATE: float = 0.0

    # === Prompt Cache ===
    CACHE_ENABLED: bool = True
    CACHE_BACKEND: str = "redis"  # "redis" or "memory"
    CACHE_MAX_AGE_DAYS: int = 30
    CACHE_KEEP_COUNT: int = 1000

    # === Redis & Celery ===
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50  # Connection pool size
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_TIME_LIMIT: int = 300  # seconds
    CELERY_WORKER_CONCURRENCY: int = 2
    CACHE_CLEANUP_INTERVAL_SECONDS: int = 86400  # Beat schedule for cache maintenance

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Global settings instance
settings = Settings()
