"""
Raster data models for Open Cutout.

This module defines core data structures shared by the raster modules.

Classes:
    RenderMode: How the mask layer is drawn over the base layer

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
"""

from enum import Enum
from typing import Tuple

RgbaColor = Tuple[int, int, int, int]


class RenderMode(Enum):
    """Display mode consumed by the compositor.

    EDITING_MASK shows strokes as a translucent overlay; PREVIEW_RESULT shows
    the base with every stroked pixel erased.
    """

    EDITING_MASK = "editing_mask"
    PREVIEW_RESULT = "preview_result"

    @classmethod
    def from_value(cls, value) -> "RenderMode":
        """Accept a RenderMode, its value string, or its name."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for mode in cls:
            if text == mode.value or text.upper() == mode.name:
                return mode
        raise ValueError(f"Unknown render mode: {value!r}")
