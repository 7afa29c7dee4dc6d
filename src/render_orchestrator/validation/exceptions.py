"""
Validation-specific exceptions.

Validation itself never raises: it returns a ValidationReport. The strict
HTTP path raises ParameterValidationError so the API layer can map a
rejected parameter set to a 422 response.
"""

from typing import Any

from render_orchestrator.models.validation import ValidationReport


class ParameterValidationError(Exception):
    """
    Raised when a parameter set has blocking validation errors.

    Carries the full report so callers get every problem in one response.
    """

    def __init__(self, report: ValidationReport, message: str | None = None):
        """
        Initialize parameter validation error.

        Args:
            report: Report with at least one error-severity issue
            message: Optional override, defaults to the primary error message
        """
        primary = report.primary_error
        self.report = report
        self.message = message or (primary.message if primary else "Invalid parameters")
        self.details: dict[str, Any] = report.model_dump(mode="json")
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.message} ({len(self.report.errors)} error(s))"
