"""
Prompt builder for image generation requests.

Responsible for:
- Loading and rendering the Jinja2 character prompt template
- Resolving catalog fragments for pose, outfit, footwear, prop and frame
- Selecting the technical specification for the frame type
- Appending the negative prompt
"""

import re
from pathlib import Path
from typing import Optional

import structlog
from jinja2 import Environment, FileSystemLoader

from render_orchestrator.models.catalog import CompatibilityCatalog
from render_orchestrator.models.enums import FrameType
from render_orchestrator.models.parameters import ParameterSet

logger = structlog.get_logger(__name__)

TECHNICAL_SPECS = {
    FrameType.STANDARD: "Ultra-high-resolution, physically-based render, photorealistic quality, 4K resolution minimum",
    FrameType.ONBOARDING: "Cinematic quality rendering, dramatic lighting, narrative composition, enhanced detail for storytelling",
    FrameType.SEQUENCE: "Consistent lighting and composition across frames, narrative continuity, smooth visual flow",
}

NEGATIVE_PROMPT = (
    "deformed hands, extra fingers, missing fingers, malformed limbs, disproportionate body parts, "
    "unrealistic anatomy, blurry features, low resolution, pixelated, artifacts, floating objects, "
    "inconsistent lighting, sketch-like appearance, incorrect brand colors, character inconsistency"
)

_BLANK_LINES = re.compile(r"\n{3,}")


class PromptBuilder:
    """
    Build full render prompts from validated parameter sets.

    The template is loaded once; building is pure string rendering.
    """

    TEMPLATE_NAME = "character_prompt.txt"

    def __init__(self, templates_dir: Path, catalog: CompatibilityCatalog, negative_prompt: str = NEGATIVE_PROMPT):
        """
        Initialize prompt builder.

        Args:
            templates_dir: Directory containing character_prompt.txt
            catalog: Compatibility catalog providing prompt fragments
            negative_prompt: Text appended as the negative prompt
        """
        self.templates_dir = Path(templates_dir)
        self.catalog = catalog
        self.negative_prompt = negative_prompt

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,  # Plain-text prompts, not HTML
        )
        try:
            self.template = self.jinja_env.get_template(self.TEMPLATE_NAME)
            logger.info("Loaded prompt template", templates_dir=str(self.templates_dir))
        except Exception as e:
            logger.error("Failed to load prompt template", error=str(e), templates_dir=str(self.templates_dir))
            raise

    def build_prompt(self, params: ParameterSet) -> str:
        """
        Render the prompt for a parameter set.

        Args:
            params: Parameters that already passed validation

        Returns:
            Full prompt text

        Raises:
            ValueError: A referenced id is missing from the catalog
        """
        try:
            pose = self.catalog.poses[params.pose]
            outfit = self.catalog.outfits[params.outfit]
            footwear = self.catalog.footwear[params.footwear]
            prop = self.catalog.props[params.prop] if params.prop else None
            frame = self.catalog.frames[params.frame_id] if params.frame_id else None
        except KeyError as e:
            raise ValueError(f"Unknown catalog id {e.args[0]!r}; validate parameters first") from e

        frame_type = self._effective_frame_type(params, frame)
        prompt = self.template.render(
            pose=pose,
            outfit=outfit,
            footwear=footwear,
            prop=prop,
            frame=frame,
            technical_spec=TECHNICAL_SPECS[frame_type],
            negative_prompt=self.negative_prompt,
        )
        prompt = _BLANK_LINES.sub("\n\n", prompt).strip()

        logger.debug(
            "Built prompt",
            pose=params.pose,
            outfit=params.outfit,
            footwear=params.footwear,
            frame_type=frame_type.value,
            prompt_length=len(prompt),
        )
        return prompt

    @staticmethod
    def _effective_frame_type(params: ParameterSet, frame) -> FrameType:
        if params.frame_type is not None:
            return params.frame_type
        if frame is not None:
            return FrameType(frame.category)
        return FrameType.STANDARD
