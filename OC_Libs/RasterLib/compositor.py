"""
Two-layer compositor for the base image and the erase mask.

The compositor is the only consumer of RenderMode:
    - EDITING_MASK: the mask is drawn source-over at a fixed 60% opacity so
      strokes show as a translucent overlay.
    - PREVIEW_RESULT: the mask acts as an eraser; every pixel with any mask
      coverage becomes fully transparent (destination-out with a binary
      presence test).

All functions are pure: inputs are never modified and a new PixelBuffer is
returned on every call.

Example:
    >>> base = PixelBuffer.from_image(Image.new("RGBA", (100, 100), "blue"))
    >>> mask = MaskLayer.matching(base)
    >>> painted = mask.stamp_circle(50, 50, 10)
    >>> display = ImageCompositor.composite(base, mask, RenderMode.EDITING_MASK)
"""

import numpy as np

from OC_Libs.constants import CHANNEL_MAX, MASK_OVERLAY_OPACITY
from OC_Libs.errors import DimensionMismatch
from OC_Libs.RasterLib.image_models import RenderMode
from OC_Libs.RasterLib.pixel_buffer import PixelBuffer


class ImageCompositor:
    """Combines a base raster and a mask raster for display and commit."""

    @staticmethod
    def composite(base: PixelBuffer, mask: PixelBuffer, mode: RenderMode) -> PixelBuffer:
        """
        Composite the mask onto a copy of the base.

        Args:
            base: Base layer (not modified)
            mask: Mask layer of the same size (not modified)
            mode: RenderMode selecting overlay or erase preview

        Returns:
            New PixelBuffer for display

        Raises:
            TypeError: If base or mask is not a PixelBuffer
            DimensionMismatch: If base and mask sizes differ
            ValueError: If mode is not a RenderMode
        """
        ImageCompositor._check_layers(base, mask)
        mode = RenderMode.from_value(mode)

        if mode is RenderMode.PREVIEW_RESULT:
            return ImageCompositor.apply_erase(base, mask)
        return ImageCompositor.apply_overlay(base, mask, MASK_OVERLAY_OPACITY)

    @staticmethod
    def apply_erase(base: PixelBuffer, mask: PixelBuffer) -> PixelBuffer:
        """Return a copy of base with alpha zeroed wherever mask alpha is non-zero."""
        ImageCompositor._check_layers(base, mask)
        result = base.copy()
        result.alpha[mask.alpha > 0] = 0
        return result

    @staticmethod
    def apply_overlay(base: PixelBuffer, mask: PixelBuffer, opacity: float) -> PixelBuffer:
        """
        Source-over blend of the mask onto a copy of base at reduced opacity.

        Pixels without mask coverage are copied unchanged.

        Args:
            base: Destination layer
            mask: Source layer
            opacity: Global source opacity 0.0-1.0

        Returns:
            New blended PixelBuffer
        """
        ImageCompositor._check_layers(base, mask)
        if not (0.0 <= opacity <= 1.0):
            raise ValueError(f"opacity must be 0.0-1.0, got {opacity}")

        result = base.copy()
        covered = mask.alpha > 0
        if not covered.any() or opacity == 0.0:
            return result

        src = mask.array[covered].astype(np.float64)
        dst = base.array[covered].astype(np.float64)

        src_a = src[:, 3:4] / CHANNEL_MAX * opacity
        dst_a = dst[:, 3:4] / CHANNEL_MAX
        out_a = src_a + dst_a * (1.0 - src_a)

        out_rgb = (src[:, :3] * src_a + dst[:, :3] * dst_a * (1.0 - src_a)) / out_a

        blended = np.empty_like(src)
        blended[:, :3] = out_rgb
        blended[:, 3:4] = out_a * CHANNEL_MAX
        result.array[covered] = np.clip(np.rint(blended), 0, CHANNEL_MAX).astype(np.uint8)
        return result

    @staticmethod
    def _check_layers(base: PixelBuffer, mask: PixelBuffer) -> None:
        if not isinstance(base, PixelBuffer):
            raise TypeError(f"Expected PixelBuffer for base, got {type(base)}")
        if not isinstance(mask, PixelBuffer):
            raise TypeError(f"Expected PixelBuffer for mask, got {type(mask)}")
        if base.size != mask.size:
            raise DimensionMismatch(base.size, mask.size, "composite")


def composite(base: PixelBuffer, mask: PixelBuffer, mode: RenderMode) -> PixelBuffer:
    """Module-level shortcut for ImageCompositor.composite."""
    return ImageCompositor.composite(base, mask, mode)
