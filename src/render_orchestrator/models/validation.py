"""
Validation result models.

ValidationReport is returned by the validation engine and embedded in
orchestrator outcomes when a request is rejected.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from render_orchestrator.models.enums import Severity


class ValidationIssue(BaseModel):
    """A single validation finding tied to one request field."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    field: str = Field(..., description="Request field the issue refers to")
    message: str
    severity: Severity = Severity.ERROR
    suggestion: Optional[str] = None


class AlternativeOptions(BaseModel):
    """Catalog ids the caller could switch to in order to fix an error."""

    model_config = ConfigDict(extra="forbid")

    poses: list[str] = Field(default_factory=list)
    outfits: list[str] = Field(default_factory=list)
    footwear: list[str] = Field(default_factory=list)
    props: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.poses or self.outfits or self.footwear or self.props)


class ValidationReport(BaseModel):
    """
    Outcome of validating a ParameterSet.

    `errors` holds only blocking issues; `warnings` holds warning and info
    issues. `is_valid` is True exactly when `errors` is empty.
    """

    model_config = ConfigDict(extra="forbid")

    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    alternative_options: Optional[AlternativeOptions] = None

    @property
    def primary_error(self) -> Optional[ValidationIssue]:
        return self.errors[0] if self.errors else None


class CompatibleOptions(BaseModel):
    """Everything that can be combined with a given pose."""

    model_config = ConfigDict(extra="forbid")

    pose: str
    outfits: list[str] = Field(default_factory=list)
    footwear: list[str] = Field(default_factory=list)
    props: list[str] = Field(default_factory=list)
