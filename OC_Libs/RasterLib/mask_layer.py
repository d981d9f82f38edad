"""
User-painted erase mask.

The mask is a PixelBuffer the size of the base layer. Brush stamps paint the
opaque marker color; any painted pixel means "remove this pixel" once the
mask is committed.

Example:
    >>> mask = MaskLayer.create(100, 100)
    >>> painted = mask.stamp_circle(50, 50, radius=10)
    >>> mask.is_empty()
    False
"""

import math
from typing import Iterable, Tuple

import numpy as np

from OC_Libs.constants import MASK_MARKER_COLOR
from OC_Libs.RasterLib.pixel_buffer import PixelBuffer


class MaskLayer(PixelBuffer):
    """PixelBuffer that accumulates circular brush stamps."""

    __slots__ = ()

    @classmethod
    def matching(cls, buffer: PixelBuffer) -> "MaskLayer":
        """Create an empty mask with the same dimensions as a buffer."""
        return cls(buffer.width, buffer.height)

    def coverage(self) -> np.ndarray:
        """Boolean (height, width) array of painted pixels."""
        return self.alpha > 0

    def stamp_circle(self, x: float, y: float, radius: float) -> int:
        """
        Paint a filled circle of the marker color.

        Pixels whose centers lie within `radius` of (x, y) are painted. The
        marker is opaque, so source-over on an already painted pixel leaves
        it unchanged. Centers outside the buffer are clipped silently.

        Args:
            x: Circle center x in pixel coordinates
            y: Circle center y in pixel coordinates
            radius: Circle radius in pixels (> 0)

        Returns:
            Number of pixels inside the clipped circle

        Raises:
            ValueError: If radius <= 0
        """
        radius = float(radius)
        if radius <= 0:
            raise ValueError(f"radius must be > 0, got {radius}")

        x0 = max(int(math.floor(x - radius)), 0)
        x1 = min(int(math.ceil(x + radius)) + 1, self.width)
        y0 = max(int(math.floor(y - radius)), 0)
        y1 = min(int(math.ceil(y + radius)) + 1, self.height)
        if x0 >= x1 or y0 >= y1:
            return 0

        ys, xs = np.ogrid[y0:y1, x0:x1]
        inside = (xs + 0.5 - x) ** 2 + (ys + 0.5 - y) ** 2 <= radius * radius

        region = self._data[y0:y1, x0:x1]
        region[inside] = MASK_MARKER_COLOR
        return int(inside.sum())

    def stamp_line(self, x0: float, y0: float, x1: float, y1: float, radius: float) -> None:
        """Stamp circles along a segment at half-radius spacing."""
        length = math.hypot(x1 - x0, y1 - y0)
        spacing = max(float(radius) / 2.0, 1.0)
        steps = max(1, int(math.ceil(length / spacing)))
        for step in range(steps + 1):
            t = step / steps
            self.stamp_circle(x0 + (x1 - x0) * t, y0 + (y1 - y0) * t, radius)

    def stamp_path(self, points: Iterable[Tuple[float, float]], radius: float) -> None:
        """Stamp a polyline; a single point stamps one circle."""
        previous = None
        for x, y in points:
            if previous is None:
                self.stamp_circle(x, y, radius)
            else:
                self.stamp_line(previous[0], previous[1], x, y, radius)
            previous = (x, y)
