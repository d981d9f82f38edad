"""
Edit session data models for Open Cutout.

Classes:
    SessionState: Whether a session has an image loaded
    SessionParameters: User-adjustable segmentation, brush and display settings
    AiRequest: Ticket for one outstanding AI background-removal call
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict

from OC_Libs.constants import (
    DEFAULT_BRUSH_RADIUS,
    DEFAULT_SMOOTHING_PASSES,
    DEFAULT_TOLERANCE_PERCENT,
    FIELD_BRUSH_RADIUS,
    FIELD_RENDER_MODE,
    FIELD_SMOOTHING_PASSES,
    FIELD_TOLERANCE_PERCENT,
    MAX_BRUSH_RADIUS,
    MIN_BRUSH_RADIUS,
)
from OC_Libs.RasterLib.image_models import RenderMode
from OC_Libs.RasterLib.segmentation import validate_smoothing, validate_tolerance


class SessionState(Enum):
    EMPTY = "empty"
    LOADED = "loaded"


@dataclass
class SessionParameters:
    """Settings the UI toolbar drives.

    Attributes:
        tolerance_percent: Segmentation tolerance (1-100)
        smoothing_passes: Edge feathering passes (0-10)
        brush_radius: Eraser brush radius in pixels (5-100)
        render_mode: How the mask is displayed
    """
    tolerance_percent: float = DEFAULT_TOLERANCE_PERCENT
    smoothing_passes: int = DEFAULT_SMOOTHING_PASSES
    brush_radius: float = DEFAULT_BRUSH_RADIUS
    render_mode: RenderMode = RenderMode.EDITING_MASK

    def __post_init__(self):
        """Validate parameter ranges."""
        validate_tolerance(self.tolerance_percent)
        self.smoothing_passes = validate_smoothing(self.smoothing_passes)

        if not (MIN_BRUSH_RADIUS <= self.brush_radius <= MAX_BRUSH_RADIUS):
            raise ValueError(
                f"brush_radius must be {MIN_BRUSH_RADIUS}-{MAX_BRUSH_RADIUS}, "
                f"got {self.brush_radius}"
            )

        self.render_mode = RenderMode.from_value(self.render_mode)

    def with_changes(self, **changes: Any) -> "SessionParameters":
        """Return a validated copy with some fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            FIELD_TOLERANCE_PERCENT: self.tolerance_percent,
            FIELD_SMOOTHING_PASSES: self.smoothing_passes,
            FIELD_BRUSH_RADIUS: self.brush_radius,
            FIELD_RENDER_MODE: self.render_mode.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionParameters":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)


@dataclass(frozen=True)
class AiRequest:
    """An AI removal call captured against one session generation.

    Attributes:
        generation: Session generation id when the request was made
        encoded_image: PNG bytes of the base layer sent to the service
    """
    generation: int
    encoded_image: bytes
