"""
Parameter validation against the compatibility catalog.

- pipeline.py: Orchestrates rule sets and builds the ValidationReport
- compatibility.py: Blocking compatibility rules (errors)
- quality.py: Brand consistency and visual heuristics (warnings only)
- exceptions.py: ParameterValidationError for the HTTP layer
"""

from .exceptions import ParameterValidationError
from .pipeline import ValidationPipeline, validate_parameters
from .compatibility import CompatibilityRules, ValidationContext
from .quality import QualityChecks

__all__ = [
    # Main pipeline
    "ValidationPipeline",
    "validate_parameters",
    "ValidationContext",
    # Rule sets
    "CompatibilityRules",
    "QualityChecks",
    # Exceptions (API error handling)
    "ParameterValidationError",
]
