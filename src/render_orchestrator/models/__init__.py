"""
Pydantic data models for the render orchestrator.

Includes:
- Enums (FrameType, Severity, GenerationErrorType, CircuitState)
- ParameterSet (request input)
- Compatibility catalog definitions and loader
- Validation report models
- Provider, cache and generation outcome models
"""

from render_orchestrator.models.enums import (
    CircuitState,
    FrameType,
    GenerationErrorType,
    PoseCategory,
    Severity,
    VisualWeight,
)
from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.models.catalog import (
    CatalogLoadError,
    CompatibilityCatalog,
    FootwearDefinition,
    FrameDefinition,
    OutfitDefinition,
    PoseDefinition,
    PropDefinition,
    TechnicalConflict,
    load_catalog,
)
from render_orchestrator.models.validation import (
    AlternativeOptions,
    CompatibleOptions,
    ValidationIssue,
    ValidationReport,
)
from render_orchestrator.models.generation import (
    CacheEntry,
    CacheStats,
    CircuitBreakerStatus,
    GenerationOutcome,
    ProviderHealth,
    ProviderResult,
    ProviderStatus,
)

__all__ = [
    # Enums
    "CircuitState",
    "FrameType",
    "GenerationErrorType",
    "PoseCategory",
    "Severity",
    "VisualWeight",
    # Input
    "ParameterSet",
    # Catalog
    "CatalogLoadError",
    "CompatibilityCatalog",
    "FootwearDefinition",
    "FrameDefinition",
    "OutfitDefinition",
    "PoseDefinition",
    "PropDefinition",
    "TechnicalConflict",
    "load_catalog",
    # Validation
    "AlternativeOptions",
    "CompatibleOptions",
    "ValidationIssue",
    "ValidationReport",
    # Generation
    "CacheEntry",
    "CacheStats",
    "CircuitBreakerStatus",
    "GenerationOutcome",
    "ProviderHealth",
    "ProviderResult",
    "ProviderStatus",
]
