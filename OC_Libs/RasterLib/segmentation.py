"""
Tolerance-based background segmentation with alpha feathering.

The background is whatever is color-similar to the image border and
connected to it. Pixels are compared against the mean border color using the
largest per-channel RGB difference (Chebyshev distance), and a flood fill
seeded from every border pixel absorbs 4-connected neighbors within
tolerance. Absorbed pixels become fully transparent. Patches of background
color enclosed by the subject are never reached and stay opaque.

Two fill backends produce identical masks:
    - scipy: 4-connected component labelling (scipy.ndimage.label), keeping
      components that touch the border. Default.
    - worklist: explicit deque-based flood fill.

Example:
    >>> from PIL import Image
    >>> img = Image.open("product.jpg")
    >>> buffer = PixelBuffer.from_image(img)
    >>> cutout = segment(buffer, tolerance_percent=15, smoothing_passes=2)
    >>> cutout.to_image().save("cutout.png")
"""

from collections import deque
from dataclasses import dataclass
import logging
from typing import Any, Dict, Tuple

import numpy as np
from scipy import ndimage

from OC_Libs.constants import (
    CHANNEL_MAX,
    DEFAULT_FILL_BACKEND,
    DEFAULT_SMOOTHING_PASSES,
    DEFAULT_TOLERANCE_PERCENT,
    FILL_BACKEND_SCIPY,
    FILL_BACKENDS,
    MAX_SMOOTHING_PASSES,
    MAX_TOLERANCE_PERCENT,
    MIN_SMOOTHING_PASSES,
    MIN_TOLERANCE_PERCENT,
)
from OC_Libs.RasterLib.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

# 4-connectivity: up, down, left, right
_FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)


def validate_tolerance(tolerance_percent: float) -> float:
    if not (MIN_TOLERANCE_PERCENT <= tolerance_percent <= MAX_TOLERANCE_PERCENT):
        raise ValueError(
            f"tolerance_percent must be {MIN_TOLERANCE_PERCENT}-{MAX_TOLERANCE_PERCENT}, "
            f"got {tolerance_percent}"
        )
    return float(tolerance_percent)


def validate_smoothing(smoothing_passes: int) -> int:
    if int(smoothing_passes) != smoothing_passes:
        raise ValueError(f"smoothing_passes must be an integer, got {smoothing_passes}")
    if not (MIN_SMOOTHING_PASSES <= smoothing_passes <= MAX_SMOOTHING_PASSES):
        raise ValueError(
            f"smoothing_passes must be {MIN_SMOOTHING_PASSES}-{MAX_SMOOTHING_PASSES}, "
            f"got {smoothing_passes}"
        )
    return int(smoothing_passes)


def tolerance_to_threshold(tolerance_percent: float) -> float:
    """Map a 1-100 tolerance percentage onto a 0-255 channel distance."""
    return validate_tolerance(tolerance_percent) / 100.0 * CHANNEL_MAX


def border_mask(height: int, width: int) -> np.ndarray:
    """Boolean (height, width) array marking the four image edges."""
    mask = np.zeros((height, width), dtype=bool)
    mask[0, :] = True
    mask[-1, :] = True
    mask[:, 0] = True
    mask[:, -1] = True
    return mask


def estimate_background_color(buffer: PixelBuffer) -> Tuple[float, float, float]:
    """
    Average RGB of the border pixels.

    Each border pixel is counted once, corners included. Assumes the subject
    does not touch the frame edges.
    """
    rgb = buffer.array[:, :, :3]
    edges = rgb[border_mask(buffer.height, buffer.width)].astype(np.float64)
    r, g, b = edges.mean(axis=0)
    return float(r), float(g), float(b)


def color_distance(rgb: np.ndarray, reference: Tuple[float, float, float]) -> np.ndarray:
    """Per-pixel Chebyshev distance (max channel difference) to a reference color."""
    diff = np.abs(rgb.astype(np.float64) - np.asarray(reference, dtype=np.float64))
    return diff.max(axis=-1)


def _fill_from_border_scipy(candidates: np.ndarray) -> np.ndarray:
    labels, count = ndimage.label(candidates, structure=_FOUR_CONNECTED)
    if count == 0:
        return np.zeros(candidates.shape, dtype=bool)

    edge_labels = np.concatenate(
        (labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1])
    )
    edge_labels = np.unique(edge_labels[edge_labels != 0])
    return np.isin(labels, edge_labels)


def _fill_from_border_worklist(candidates: np.ndarray) -> np.ndarray:
    height, width = candidates.shape
    allowed = candidates.ravel().tolist()
    visited = bytearray(height * width)
    worklist = deque()

    seeds = np.flatnonzero(border_mask(height, width) & candidates)
    for index in seeds.tolist():
        visited[index] = 1
        worklist.append(index)

    while worklist:
        index = worklist.popleft()
        y, x = divmod(index, width)
        neighbors = []
        if y > 0:
            neighbors.append(index - width)
        if y < height - 1:
            neighbors.append(index + width)
        if x > 0:
            neighbors.append(index - 1)
        if x < width - 1:
            neighbors.append(index + 1)
        for neighbor in neighbors:
            if not visited[neighbor] and allowed[neighbor]:
                visited[neighbor] = 1
                worklist.append(neighbor)

    return np.frombuffer(bytes(visited), dtype=np.uint8).reshape(height, width).astype(bool)


def background_mask(
    buffer: PixelBuffer,
    tolerance_percent: float,
    backend: str = DEFAULT_FILL_BACKEND,
) -> np.ndarray:
    """
    Compute which pixels the border flood fill absorbs.

    Args:
        buffer: Source raster (not modified)
        tolerance_percent: Similarity tolerance 1-100
        backend: 'scipy' or 'worklist'

    Returns:
        Boolean (height, width) array, True for background pixels

    Raises:
        ValueError: If tolerance or backend is invalid
    """
    if backend not in FILL_BACKENDS:
        raise ValueError(f"Invalid backend: {backend}. Use one of {', '.join(FILL_BACKENDS)}.")

    threshold = tolerance_to_threshold(tolerance_percent)
    reference = estimate_background_color(buffer)
    candidates = color_distance(buffer.array[:, :, :3], reference) <= threshold

    if backend == FILL_BACKEND_SCIPY:
        return _fill_from_border_scipy(candidates)
    return _fill_from_border_worklist(candidates)


def feather_alpha(alpha: np.ndarray, passes: int) -> np.ndarray:
    """
    Soften hard alpha edges with repeated 3x3 box blurs.

    Each pass only updates boundary pixels, i.e. pixels whose 3x3
    neighborhood holds more than one alpha value. Pixels inside uniform
    regions keep their exact alpha.

    Args:
        alpha: (height, width) alpha channel
        passes: Number of blur passes (0-10)

    Returns:
        New uint8 alpha channel
    """
    passes = validate_smoothing(passes)
    result = alpha.astype(np.float64)

    for _ in range(passes):
        local_min = ndimage.minimum_filter(result, size=3, mode="nearest")
        local_max = ndimage.maximum_filter(result, size=3, mode="nearest")
        boundary = local_min != local_max
        if not boundary.any():
            break
        blurred = ndimage.uniform_filter(result, size=3, mode="nearest")
        result = np.where(boundary, blurred, result)

    return np.clip(np.rint(result), 0, CHANNEL_MAX).astype(np.uint8)


def segment(
    buffer: PixelBuffer,
    tolerance_percent: float = DEFAULT_TOLERANCE_PERCENT,
    smoothing_passes: int = DEFAULT_SMOOTHING_PASSES,
    backend: str = DEFAULT_FILL_BACKEND,
) -> PixelBuffer:
    """
    Remove the border-connected background from a raster.

    Args:
        buffer: Source raster (never modified)
        tolerance_percent: Similarity tolerance 1-100
                          1 = near exact color match, 100 = everything
        smoothing_passes: Alpha feathering passes (0-10, 0 = hard edges)
        backend: Flood fill backend ('scipy' or 'worklist')

    Returns:
        New PixelBuffer with background alpha set to 0 and edges feathered

    Raises:
        TypeError: If buffer is not a PixelBuffer
        ValueError: If tolerance, smoothing or backend is invalid
    """
    if not isinstance(buffer, PixelBuffer):
        raise TypeError(f"Expected PixelBuffer, got {type(buffer)}")
    validate_smoothing(smoothing_passes)

    absorbed = background_mask(buffer, tolerance_percent, backend)

    result = buffer.copy()
    result.alpha[absorbed] = 0
    if smoothing_passes > 0:
        result.alpha[...] = feather_alpha(result.alpha, smoothing_passes)

    logger.debug(
        f"Segmented {buffer.width}x{buffer.height} raster: "
        f"{int(absorbed.sum())} background pixels (tolerance={tolerance_percent}, "
        f"smoothing={smoothing_passes}, backend={backend})"
    )
    return result


@dataclass
class SegmentationConfig:
    """Configuration for a segmentation run.

    Attributes:
        tolerance_percent: Similarity tolerance (1-100)
        smoothing_passes: Alpha feathering passes (0-10)
        backend: Flood fill backend ('scipy' or 'worklist')
    """
    tolerance_percent: float = DEFAULT_TOLERANCE_PERCENT
    smoothing_passes: int = DEFAULT_SMOOTHING_PASSES
    backend: str = DEFAULT_FILL_BACKEND

    def __post_init__(self):
        """Validate segmentation parameters."""
        validate_tolerance(self.tolerance_percent)
        validate_smoothing(self.smoothing_passes)
        if self.backend not in FILL_BACKENDS:
            raise ValueError(f"Invalid backend: {self.backend}")

    def apply(self, buffer: PixelBuffer) -> PixelBuffer:
        """Run segment() with this configuration."""
        return segment(buffer, self.tolerance_percent, self.smoothing_passes, self.backend)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tolerance_percent": self.tolerance_percent,
            "smoothing_passes": self.smoothing_passes,
            "backend": self.backend,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SegmentationConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)
