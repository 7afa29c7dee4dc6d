"""
Quality checks: brand consistency and visual optimization heuristics.

Non-blocking. These never produce error-severity issues; they only inform
the caller about combinations that are allowed but may render poorly.
"""

import structlog

from render_orchestrator.models.catalog import CompatibilityCatalog
from render_orchestrator.models.enums import PoseCategory, Severity, VisualWeight
from render_orchestrator.validation.compatibility import ValidationContext

logger = structlog.get_logger(__name__)


class QualityChecks:
    """Advisory checks run after the blocking compatibility rules."""

    def __init__(self, catalog: CompatibilityCatalog):
        self.catalog = catalog

    def validate(self, ctx: ValidationContext) -> None:
        params = ctx.params
        pose = self.catalog.poses.get(params.pose)
        outfit = self.catalog.outfits.get(params.outfit)
        footwear = self.catalog.footwear.get(params.footwear)
        prop = self.catalog.props.get(params.prop) if params.prop else None
        frame = self.catalog.frames.get(params.frame_id) if params.frame_id else None

        before = len(ctx.issues)

        if outfit and footwear:
            self._check_style_consistency(ctx, outfit, footwear)
            self._check_visual_balance(ctx, outfit, footwear)
        if pose and prop:
            self._check_narrative_consistency(ctx, pose, prop)
            self._check_technical_conflicts(ctx, pose, prop)
        if pose and frame:
            self._check_camera_framing(ctx, pose, frame)

        added = len(ctx.issues) - before
        if added:
            logger.debug("Quality checks produced advisories", count=added)

    def _check_style_consistency(self, ctx, outfit, footwear) -> None:
        if not (outfit.style and footwear.style):
            return
        if self.catalog.styles_compatible(outfit.style, footwear.style):
            return
        ctx.add(
            "footwear",
            f"Style mismatch: {footwear.name} ({footwear.style}) may not complement "
            f"{outfit.name} ({outfit.style})",
            severity=Severity.WARNING,
            suggestion=f"Consider footwear that matches the {outfit.style} style",
        )

    def _check_visual_balance(self, ctx, outfit, footwear) -> None:
        if outfit.visual_weight is VisualWeight.HEAVY and footwear.visual_weight is VisualWeight.HEAVY:
            ctx.add(
                "footwear",
                "Visual balance concern: both outfit and footwear are visually prominent",
                severity=Severity.INFO,
                suggestion="Consider simpler footwear to balance the overall look",
            )

    def _check_narrative_consistency(self, ctx, pose, prop) -> None:
        if pose.category is PoseCategory.ONBOARDING and prop.category != PoseCategory.ONBOARDING.value:
            ctx.add(
                "prop",
                "Narrative inconsistency: onboarding pose with a non-onboarding prop may break story flow",
                severity=Severity.WARNING,
                suggestion="Use onboarding-specific props for narrative consistency",
            )

    def _check_technical_conflicts(self, ctx, pose, prop) -> None:
        for conflict in self.catalog.technical_conflicts:
            if conflict.pose == pose.id and conflict.prop == prop.id:
                ctx.add("prop", conflict.message, severity=Severity.WARNING, suggestion=conflict.suggestion)

    def _check_camera_framing(self, ctx, pose, frame) -> None:
        if "close-up" in frame.camera.lower() and "full body" in pose.name.lower():
            ctx.add(
                "pose",
                "Camera-pose mismatch: close-up camera with full body pose may not render optimally",
                severity=Severity.WARNING,
                suggestion="Use upper body focused poses for close-up camera angles",
            )
