"""
Request parameter model.

A ParameterSet is the caller's stylistic selection for one render. It is
deliberately permissive about combinations: compatibility rules are checked
by the validation engine so that every problem is reported in a single pass.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from render_orchestrator.models.enums import FrameType


class ParameterSet(BaseModel):
    """
    Stylistic parameters for a single character render.

    Immutable once constructed; lives for one request.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    pose: str = Field(default="", description="Pose id from the catalog")
    outfit: str = Field(default="", description="Outfit id from the catalog")
    footwear: str = Field(default="", description="Footwear id from the catalog")
    prop: Optional[str] = Field(default=None, description="Optional prop id")
    frame_type: Optional[FrameType] = Field(default=None, description="standard, onboarding or sequence")
    frame_id: Optional[str] = Field(default=None, description="Frame id, required for onboarding/sequence")

    def canonical_dict(self) -> dict[str, Any]:
        """
        Normalized view used for hashing.

        Every key is always present so that an omitted optional field and an
        explicit None hash identically.
        """
        return {
            "pose": self.pose,
            "outfit": self.outfit,
            "footwear": self.footwear,
            "prop": self.prop or None,
            "frame_type": self.frame_type.value if self.frame_type else None,
            "frame_id": self.frame_id or None,
        }
