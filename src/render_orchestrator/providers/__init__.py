"""
Image-generation provider adapters.

- base_provider.py: BaseImageProvider interface and per-provider stats
- http_provider.py: Generic httpx-based JSON provider
- mock_provider.py: In-process provider for development and tests
- exceptions.py: GenerationError taxonomy and normalization boundary
- prompt_builder.py: Jinja2 prompt rendering from catalog fragments
"""

from render_orchestrator.providers.base_provider import BaseImageProvider, ProviderStats
from render_orchestrator.providers.exceptions import (
    CircuitOpenError,
    GenerationError,
    classify_http_status,
    normalize_error,
)
from render_orchestrator.providers.http_provider import HTTPImageProvider
from render_orchestrator.providers.mock_provider import MockImageProvider
from render_orchestrator.providers.prompt_builder import PromptBuilder

__all__ = [
    "BaseImageProvider",
    "ProviderStats",
    "HTTPImageProvider",
    "MockImageProvider",
    "PromptBuilder",
    "GenerationError",
    "CircuitOpenError",
    "classify_http_status",
    "normalize_error",
]
