"""
Compatibility catalog models and loader.

The catalog is the static compatibility graph between poses, outfits,
footwear, props and frames. It is loaded once at startup from JSON and is
read-only afterwards, so it is safe to share between concurrent requests.
"""

import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from render_orchestrator.models.enums import PoseCategory, VisualWeight

logger = structlog.get_logger(__name__)


class CatalogLoadError(Exception):
    """Raised when the compatibility catalog cannot be read or parsed."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PoseDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    description: str = ""
    category: PoseCategory = PoseCategory.PRIMARY
    compatible_outfits: list[str] = Field(default_factory=list)
    prompt_fragment: str = ""


class OutfitDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    description: str = ""
    compatible_footwear: list[str] = Field(default_factory=list)
    prompt_fragment: str = ""
    style: Optional[str] = Field(None, description="Style family used by the style-clash heuristic")
    visual_weight: VisualWeight = VisualWeight.MEDIUM


class FootwearDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    brand: str = ""
    model: str = ""
    compatible_outfits: list[str] = Field(default_factory=list)
    prompt_fragment: str = ""
    style: Optional[str] = None
    visual_weight: VisualWeight = VisualWeight.MEDIUM


class PropDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    description: str = ""
    category: str = "primary"
    compatible_poses: list[str] = Field(default_factory=list)
    prompt_fragment: str = ""


class FrameDefinition(BaseModel):
    """
    A storyboard frame with its staging requirements.

    Frames belong to a named sequence; sequences mentioning "onboarding" are
    onboarding frames, every other frame is a regular sequence frame.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    sequence: str
    location: str = ""
    positioning: str = ""
    camera: str = ""
    lighting: str = ""
    facial_expression: str = ""
    environmental_touches: str = ""
    required_props: list[str] = Field(default_factory=list)
    continuity_notes: Optional[str] = None
    voiceover: Optional[str] = None

    @property
    def category(self) -> str:
        return "onboarding" if "onboarding" in self.sequence.lower() else "sequence"


class TechnicalConflict(BaseModel):
    """A prop/pose pairing that is allowed but renders poorly."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    prop: str
    pose: str
    message: str
    suggestion: Optional[str] = None


class CompatibilityCatalog(BaseModel):
    """
    Static compatibility graph.

    Definitions are keyed by id. `style_compatibility` maps an outfit style to
    the footwear styles that complement it; styles missing from the matrix are
    treated as compatible with everything.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    poses: dict[str, PoseDefinition] = Field(default_factory=dict)
    outfits: dict[str, OutfitDefinition] = Field(default_factory=dict)
    footwear: dict[str, FootwearDefinition] = Field(default_factory=dict)
    props: dict[str, PropDefinition] = Field(default_factory=dict)
    frames: dict[str, FrameDefinition] = Field(default_factory=dict)
    style_compatibility: dict[str, list[str]] = Field(default_factory=dict)
    technical_conflicts: list[TechnicalConflict] = Field(default_factory=list)

    @classmethod
    def from_definitions(cls, data: dict) -> "CompatibilityCatalog":
        """
        Build a catalog from the on-disk layout, where each section is a list
        of definitions carrying their own id.
        """
        keyed = dict(data)
        for section in ("poses", "outfits", "footwear", "props", "frames"):
            items = data.get(section, [])
            if isinstance(items, list):
                keyed[section] = {item["id"]: item for item in items}
        return cls.model_validate(keyed)

    def props_for_pose(self, pose_id: str) -> list[str]:
        return [prop.id for prop in self.props.values() if pose_id in prop.compatible_poses]

    def styles_compatible(self, outfit_style: str, footwear_style: str) -> bool:
        allowed = self.style_compatibility.get(outfit_style)
        if allowed is None:
            return True
        return footwear_style in allowed


def load_catalog(path: Path | str) -> CompatibilityCatalog:
    """
    Load and validate the compatibility catalog from a JSON file.

    Args:
        path: Path to the catalog JSON file

    Returns:
        Immutable CompatibilityCatalog

    Raises:
        CatalogLoadError: File missing, not JSON, or not a valid catalog
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read catalog", path=str(path), error=str(e))
        raise CatalogLoadError(f"Cannot read catalog at {path}", details={"error": str(e)}) from e

    try:
        catalog = CompatibilityCatalog.from_definitions(raw)
    except (PydanticValidationError, KeyError, TypeError) as e:
        logger.error("Invalid catalog definition", path=str(path), error=str(e))
        raise CatalogLoadError(f"Invalid catalog at {path}", details={"error": str(e)}) from e

    logger.info(
        "Loaded compatibility catalog",
        path=str(path),
        poses=len(catalog.poses),
        outfits=len(catalog.outfits),
        footwear=len(catalog.footwear),
        props=len(catalog.props),
        frames=len(catalog.frames),
    )
    return catalog
