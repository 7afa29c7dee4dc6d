"""
Validation pipeline: runs compatibility rules and optional quality checks.

Compatibility rules produce blocking errors (plus the occasional warning);
quality checks only add warnings/info. The result is a ValidationReport,
never an exception, so validation is safe to call on every request.
"""

import structlog

from render_orchestrator.models.catalog import CompatibilityCatalog
from render_orchestrator.models.enums import Severity
from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.models.validation import CompatibleOptions, ValidationReport
from render_orchestrator.monitoring.metrics import validation_issues_total
from render_orchestrator.validation.compatibility import CompatibilityRules, ValidationContext
from render_orchestrator.validation.quality import QualityChecks

logger = structlog.get_logger(__name__)


class ValidationPipeline:
    """
    Parameter validation orchestrator.

    Holds the catalog for the process lifetime; it is read-only so a single
    pipeline instance is shared by all requests.
    """

    def __init__(self, catalog: CompatibilityCatalog, enable_quality_checks: bool = True):
        """
        Initialize validation pipeline.

        Args:
            catalog: Compatibility catalog loaded at startup
            enable_quality_checks: Run the brand/visual heuristics after the blocking rules
        """
        self.catalog = catalog
        self.rules = CompatibilityRules(catalog)
        self.quality = QualityChecks(catalog) if enable_quality_checks else None

    def validate(self, params: ParameterSet) -> ValidationReport:
        """
        Validate a parameter set.

        Args:
            params: Parameters to validate

        Returns:
            ValidationReport with errors, warnings, suggestions and alternatives
        """
        ctx = ValidationContext(params=params)
        self.rules.validate(ctx)
        if self.quality is not None:
            self.quality.validate(ctx)

        errors = [i for i in ctx.issues if i.severity is Severity.ERROR]
        warnings = [i for i in ctx.issues if i.severity is not Severity.ERROR]

        for issue in ctx.issues:
            validation_issues_total.labels(field=issue.field, severity=issue.severity.value).inc()

        report = ValidationReport(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=self._suggestions(ctx),
            alternative_options=None if ctx.alternatives.is_empty() else ctx.alternatives,
        )

        if errors:
            logger.info(
                "Parameter validation failed",
                errors=len(errors),
                warnings=len(warnings),
                primary_error=errors[0].message,
            )
        else:
            logger.debug("Parameter validation passed", warnings=len(warnings))

        return report

    def get_compatible_options(self, pose_id: str) -> CompatibleOptions:
        """
        List outfits, footwear and props that can be combined with a pose.

        Footwear is included when it pairs with at least one of the pose's
        outfits in both directions.
        """
        pose = self.catalog.poses.get(pose_id)
        if pose is None:
            return CompatibleOptions(pose=pose_id)

        outfits = [o for o in pose.compatible_outfits if o in self.catalog.outfits]
        footwear: list[str] = []
        for outfit_id in outfits:
            for footwear_id in self.catalog.outfits[outfit_id].compatible_footwear:
                shoe = self.catalog.footwear.get(footwear_id)
                if shoe and outfit_id in shoe.compatible_outfits and footwear_id not in footwear:
                    footwear.append(footwear_id)

        return CompatibleOptions(
            pose=pose_id,
            outfits=outfits,
            footwear=footwear,
            props=self.catalog.props_for_pose(pose_id),
        )

    @staticmethod
    def _suggestions(ctx: ValidationContext) -> list[str]:
        suggestions: list[str] = []
        ordered = sorted(ctx.issues, key=lambda i: i.severity is not Severity.ERROR)
        for issue in ordered:
            if issue.suggestion and issue.suggestion not in suggestions:
                suggestions.append(issue.suggestion)
        return suggestions


def validate_parameters(
    params: ParameterSet,
    catalog: CompatibilityCatalog,
    enable_quality_checks: bool = True,
) -> ValidationReport:
    """Validate params against a catalog without keeping a pipeline around."""
    return ValidationPipeline(catalog, enable_quality_checks).validate(params)
