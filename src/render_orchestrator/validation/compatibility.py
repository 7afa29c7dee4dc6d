"""
Compatibility rules: blocking checks against the catalog.

Checks run in a fixed order and every applicable issue is collected; nothing
short-circuits, so the first error recorded is the primary one while the
caller still receives the complete list.

1. Required fields (pose, outfit, footwear)
2. Frame type requires a frame id
3. Every referenced id exists in the catalog
4. Outfit compatible with pose
5. Footwear compatible with outfit (and the reverse listing, as a warning)
6. Prop compatible with pose
7. Frame required props present
8. Declared frame type matches the frame's category (warning)
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, TypeVar

import structlog

from render_orchestrator.models.catalog import CompatibilityCatalog
from render_orchestrator.models.enums import Severity
from render_orchestrator.models.parameters import ParameterSet
from render_orchestrator.models.validation import AlternativeOptions, ValidationIssue

logger = structlog.get_logger(__name__)

T = TypeVar("T")

REQUIRED_FIELDS = ("pose", "outfit", "footwear")


@dataclass
class ValidationContext:
    """
    Accumulator passed through the rule sets.

    Contains the parameters under validation plus the issues and alternative
    options gathered so far.
    """

    params: ParameterSet
    issues: list[ValidationIssue] = field(default_factory=list)
    alternatives: AlternativeOptions = field(default_factory=AlternativeOptions)

    def add(
        self,
        field_name: str,
        message: str,
        severity: Severity = Severity.ERROR,
        suggestion: Optional[str] = None,
    ) -> None:
        self.issues.append(
            ValidationIssue(field=field_name, message=message, severity=severity, suggestion=suggestion)
        )


class CompatibilityRules:
    """
    Blocking validation against the static compatibility graph.

    Pure: performs no I/O and never raises for invalid input.
    """

    def __init__(self, catalog: CompatibilityCatalog):
        self.catalog = catalog

    def validate(self, ctx: ValidationContext) -> None:
        """
        Run every compatibility rule and record issues on the context.

        Args:
            ctx: Validation context for the current parameter set
        """
        params = ctx.params

        self._check_required_fields(ctx)
        self._check_frame_id_present(ctx)

        pose = self._lookup(ctx, "pose", params.pose, self.catalog.poses)
        outfit = self._lookup(ctx, "outfit", params.outfit, self.catalog.outfits)
        footwear = self._lookup(ctx, "footwear", params.footwear, self.catalog.footwear)
        prop = self._lookup(ctx, "prop", params.prop, self.catalog.props)
        frame = self._lookup(ctx, "frame_id", params.frame_id, self.catalog.frames, label="frame")

        if pose and outfit:
            self._check_pose_outfit(ctx, pose, outfit)
        if outfit and footwear:
            self._check_outfit_footwear(ctx, outfit, footwear)
        if pose and prop:
            self._check_prop_pose(ctx, pose, prop)
        if frame:
            self._check_required_props(ctx, frame)
            self._check_frame_category(ctx, frame)

    def _check_required_fields(self, ctx: ValidationContext) -> None:
        for name in REQUIRED_FIELDS:
            value = getattr(ctx.params, name)
            if not value or not value.strip():
                ctx.add(name, f"{name.capitalize()} is required", suggestion=f"Select a {name} from the catalog")

    def _check_frame_id_present(self, ctx: ValidationContext) -> None:
        frame_type = ctx.params.frame_type
        if frame_type is not None and frame_type.requires_frame_id and not ctx.params.frame_id:
            ctx.add(
                "frame_id",
                f"Frame ID is required for {frame_type.value} frame type",
                suggestion="Select a specific frame for onboarding or sequence renders",
            )

    def _lookup(
        self,
        ctx: ValidationContext,
        field_name: str,
        value: Optional[str],
        definitions: Mapping[str, T],
        label: Optional[str] = None,
    ) -> Optional[T]:
        """Resolve an id, recording a not-found error for unknown ids."""
        if not value or not value.strip():
            return None
        definition = definitions.get(value)
        if definition is None:
            label = label or field_name
            ctx.add(
                field_name,
                f"{label.capitalize()} '{value}' not found",
                suggestion=f"Choose one of: {', '.join(sorted(definitions))}",
            )
        return definition

    def _check_pose_outfit(self, ctx, pose, outfit) -> None:
        if outfit.id in pose.compatible_outfits:
            return
        ctx.add(
            "outfit",
            f"Outfit '{outfit.name}' is not compatible with pose '{pose.name}'",
            suggestion=f"Compatible outfits for this pose: {', '.join(pose.compatible_outfits)}",
        )
        ctx.alternatives.outfits = list(pose.compatible_outfits)

    def _check_outfit_footwear(self, ctx, outfit, footwear) -> None:
        if footwear.id not in outfit.compatible_footwear:
            ctx.add(
                "footwear",
                f"Footwear '{footwear.name}' is not compatible with outfit '{outfit.name}'",
                suggestion=f"Compatible footwear for this outfit: {', '.join(outfit.compatible_footwear)}",
            )
            ctx.alternatives.footwear = list(outfit.compatible_footwear)
        if outfit.id not in footwear.compatible_outfits:
            ctx.add(
                "footwear",
                f"Footwear '{footwear.name}' does not list outfit '{outfit.name}' as compatible",
                severity=Severity.WARNING,
                suggestion="Check the catalog: outfit and footwear compatibility lists disagree",
            )

    def _check_prop_pose(self, ctx, pose, prop) -> None:
        if pose.id in prop.compatible_poses:
            return
        compatible = self.catalog.props_for_pose(pose.id)
        ctx.add(
            "prop",
            f"Prop '{prop.name}' is not compatible with pose '{pose.name}'",
            suggestion=(
                f"Compatible props for this pose: {', '.join(compatible)}"
                if compatible
                else "Remove the prop for this pose"
            ),
        )
        ctx.alternatives.props = compatible

    def _check_required_props(self, ctx, frame) -> None:
        for required in frame.required_props:
            if ctx.params.prop != required:
                ctx.add(
                    "prop",
                    f"Frame '{frame.name}' requires prop '{required}'",
                    suggestion=f"Add the '{required}' prop for frame {frame.id}",
                )

    def _check_frame_category(self, ctx, frame) -> None:
        frame_type = ctx.params.frame_type
        if frame_type is None or frame_type.value == frame.category:
            return
        ctx.add(
            "frame_type",
            f"Frame '{frame.id}' is a {frame.category} frame but frame type is {frame_type.value}",
            severity=Severity.WARNING,
            suggestion=f"Use frame type '{frame.category}' for frame {frame.id}",
        )
