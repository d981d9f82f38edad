"""
Edit session orchestrating the base layer, mask layer and undo history.

An EditSession is an explicit context object: the UI creates one per open
document and calls its operations in response to discrete events. Sessions
are single-threaded; only the AI removal call runs elsewhere, and its result
is applied back on the caller's thread (see ai_removal).

State machine:
    EMPTY --load_image--> LOADED --(any operation)--> LOADED

Every operation builds its new buffers first and swaps them in only once
nothing else can fail, so a raised error leaves the session exactly as it
was.

Example:
    >>> session = EditSession()
    >>> session.load_image("photo.png")
    >>> session.run_auto_segmentation(tolerance_percent=20)
    >>> session.paint_stroke(120, 80)
    >>> session.commit_mask()
    True
    >>> png_bytes = session.export_current()
"""

import io
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

from OC_Libs.constants import (
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_FILL_BACKEND,
    HISTORY_CAPACITY,
    MAX_BRUSH_RADIUS,
    MIN_BRUSH_RADIUS,
)
from OC_Libs.errors import InvalidImageSource, SessionNotLoaded
from OC_Libs.pillow_compat import Image
from OC_Libs.RasterLib.compositor import ImageCompositor
from OC_Libs.RasterLib.image_models import RenderMode
from OC_Libs.RasterLib.mask_layer import MaskLayer
from OC_Libs.RasterLib.pixel_buffer import PixelBuffer
from OC_Libs.RasterLib.segmentation import segment
from OC_Libs.SessionLib.history_stack import HistorySnapshot, HistoryStack
from OC_Libs.SessionLib.session_models import AiRequest, SessionParameters, SessionState

logger = logging.getLogger(__name__)


def open_source_image(source: Any) -> PixelBuffer:
    """
    Decode an uploaded source into an RGBA buffer.

    Args:
        source: PIL Image, encoded image bytes, or a file path

    Returns:
        New PixelBuffer with the decoded pixels

    Raises:
        InvalidImageSource: If the source cannot be read as an image
    """
    try:
        if hasattr(source, "convert"):
            return PixelBuffer.from_image(source)

        if isinstance(source, (bytes, bytearray, memoryview)):
            if not source:
                raise InvalidImageSource("Source image is empty")
            stream = io.BytesIO(bytes(source))
        elif isinstance(source, (str, Path)):
            stream = Path(source)
            if not stream.is_file():
                raise InvalidImageSource(f"Image file not found: {stream}")
        else:
            raise InvalidImageSource(f"Unsupported image source type: {type(source)}")

        with Image.open(stream) as img:
            img.load()
            return PixelBuffer.from_image(img)
    except InvalidImageSource:
        raise
    except Exception as e:
        raise InvalidImageSource(f"Failed to load source image: {str(e)}") from e


class EditSession:
    """
    Aggregate root for one document being edited.

    Owns the immutable original raster, the live base layer, the live mask
    layer, the undo history and the session parameters. Accessors return
    copies; the live buffers never leave the session.
    """

    def __init__(
        self,
        parameters: Optional[SessionParameters] = None,
        history_capacity: int = HISTORY_CAPACITY,
        fill_backend: str = DEFAULT_FILL_BACKEND,
    ):
        self.parameters = parameters if parameters is not None else SessionParameters()
        self.fill_backend = fill_backend
        self._original: Optional[HistorySnapshot] = None
        self._base: Optional[PixelBuffer] = None
        self._mask: Optional[MaskLayer] = None
        self._history = HistoryStack(history_capacity)
        self._generation = 0

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return SessionState.EMPTY if self._base is None else SessionState.LOADED

    @property
    def generation(self) -> int:
        """Id of the current content baseline; stale AI results carry an older one."""
        return self._generation

    @property
    def size(self) -> Tuple[int, int]:
        self._require_loaded()
        return self._base.size

    @property
    def history_depth(self) -> int:
        return len(self._history)

    def can_undo(self) -> bool:
        return self._history.can_undo()

    @property
    def base(self) -> PixelBuffer:
        """Copy of the committed base layer."""
        self._require_loaded()
        return self._base.copy()

    @property
    def mask(self) -> MaskLayer:
        """Copy of the in-progress mask layer."""
        self._require_loaded()
        return self._mask.copy()

    @property
    def original(self) -> PixelBuffer:
        """Copy of the raster as it was loaded."""
        self._require_loaded()
        return self._original.restore()

    def _require_loaded(self) -> None:
        if self._base is None:
            raise SessionNotLoaded("No image loaded in this session")

    def _brush_radius(self, radius: Optional[float]) -> float:
        if radius is None:
            return self.parameters.brush_radius
        if not (MIN_BRUSH_RADIUS <= radius <= MAX_BRUSH_RADIUS):
            raise ValueError(
                f"brush radius must be {MIN_BRUSH_RADIUS}-{MAX_BRUSH_RADIUS}, got {radius}"
            )
        return radius

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def update_parameters(self, **changes: Any) -> SessionParameters:
        """Validate and apply parameter changes; invalid values raise ValueError."""
        self.parameters = self.parameters.with_changes(**changes)
        return self.parameters

    def set_tolerance(self, tolerance_percent: float) -> None:
        self.update_parameters(tolerance_percent=tolerance_percent)

    def set_smoothing(self, smoothing_passes: int) -> None:
        self.update_parameters(smoothing_passes=smoothing_passes)

    def set_brush_radius(self, brush_radius: float) -> None:
        self.update_parameters(brush_radius=brush_radius)

    def set_render_mode(self, render_mode: RenderMode) -> None:
        self.update_parameters(render_mode=RenderMode.from_value(render_mode))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def load_image(self, source: Any) -> None:
        """
        Start a fresh document from a source image.

        Replaces the base, clears the mask and resets history to a single
        snapshot of the loaded image.

        Raises:
            InvalidImageSource: If the source is unreadable
        """
        base = open_source_image(source)

        self._original = HistorySnapshot.capture(base)
        self._base = base
        self._mask = MaskLayer.matching(base)
        self._history.reset(base)
        self._generation += 1
        logger.info(f"Loaded {base.width}x{base.height} image (generation {self._generation})")

    def run_auto_segmentation(
        self,
        tolerance_percent: Optional[float] = None,
        smoothing_passes: Optional[int] = None,
    ) -> None:
        """
        Segment the original image with the current (or given) parameters.

        Always starts from the originally loaded raster, never from the
        processed base, so repeated runs do not compound. Clears the mask
        and pushes the result onto history.

        Args:
            tolerance_percent: Optional new tolerance (stored in parameters)
            smoothing_passes: Optional new smoothing (stored in parameters)
        """
        self._require_loaded()

        changes = {}
        if tolerance_percent is not None:
            changes["tolerance_percent"] = tolerance_percent
        if smoothing_passes is not None:
            changes["smoothing_passes"] = smoothing_passes
        parameters = self.parameters.with_changes(**changes)

        pristine = self._original.restore()
        result = segment(
            pristine,
            parameters.tolerance_percent,
            parameters.smoothing_passes,
            self.fill_backend,
        )

        self.parameters = parameters
        self._base = result
        self._mask = MaskLayer.matching(result)
        self._history.push(result)
        self._generation += 1
        logger.info(
            f"Auto segmentation applied (tolerance={parameters.tolerance_percent}, "
            f"smoothing={parameters.smoothing_passes}, generation {self._generation})"
        )

    def begin_ai_request(self) -> AiRequest:
        """Capture the current base layer and generation for an AI removal call."""
        self._require_loaded()
        return AiRequest(generation=self._generation, encoded_image=self._base.encode())

    def apply_ai_replacement(self, encoded_image: bytes, generation: Optional[int] = None) -> bool:
        """
        Replace the base layer with an externally produced image.

        The replacement becomes a fresh baseline: the base is resized to the
        image, the mask is cleared and history is reset to one snapshot.

        Args:
            encoded_image: Encoded image bytes returned by the AI service
            generation: Generation id the request was made against; a
                        response for an older generation is discarded

        Returns:
            True if applied, False if discarded as stale

        Raises:
            DecodeError: If the bytes are not a valid image (session unchanged)
        """
        self._require_loaded()

        if generation is not None and generation != self._generation:
            logger.warning(
                f"Discarding stale AI result for generation {generation} "
                f"(current generation {self._generation})"
            )
            return False

        replacement = PixelBuffer.decode(encoded_image)

        previous_size = self._base.size
        self._base.copy_from(replacement, resize=True)
        self._mask = MaskLayer.matching(self._base)
        self._history.reset(self._base)
        self._generation += 1
        logger.info(
            f"AI replacement applied: {previous_size[0]}x{previous_size[1]} -> "
            f"{self._base.width}x{self._base.height} (generation {self._generation})"
        )
        return True

    def paint_stroke(self, x: float, y: float, radius: Optional[float] = None) -> int:
        """
        Stamp the brush onto the mask. Strokes stay provisional until committed.

        Returns:
            Number of pixels inside the clipped brush circle
        """
        self._require_loaded()
        brush = self._brush_radius(radius)
        return self._mask.stamp_circle(x, y, brush)

    def paint_path(self, points: Iterable[Tuple[float, float]], radius: Optional[float] = None) -> None:
        """Stamp the brush along a drag path without gaps between samples."""
        self._require_loaded()
        brush = self._brush_radius(radius)
        self._mask.stamp_path(points, brush)

    def clear_mask(self) -> None:
        self._require_loaded()
        self._mask.clear()

    def commit_mask(self) -> bool:
        """
        Erase the base wherever the mask is painted and record the result.

        Returns:
            True if committed, False if the mask was empty (no history push)
        """
        self._require_loaded()
        if self._mask.is_empty():
            logger.debug("Commit skipped: mask is empty")
            return False

        erased = ImageCompositor.apply_erase(self._base, self._mask)

        self._base = erased
        self._mask.clear()
        self._history.push(erased)
        logger.debug(f"Mask committed (history depth {len(self._history)})")
        return True

    def undo(self) -> bool:
        """
        Restore the previous committed base state.

        The mask is left untouched unless the restored snapshot has other
        dimensions, in which case an empty mask of the new size replaces it.

        Returns:
            True if a state was restored, False at the initial state
        """
        self._require_loaded()
        snapshot = self._history.undo()
        if snapshot is None:
            return False

        restored = snapshot.restore()
        if restored.size != self._mask.size:
            self._mask = MaskLayer.matching(restored)
        self._base = restored
        logger.debug(f"Undo applied (history depth {len(self._history)})")
        return True

    def render(self, mode: Optional[RenderMode] = None) -> PixelBuffer:
        """Display raster for the given mode, defaulting to the session's mode."""
        self._require_loaded()
        mode = self.parameters.render_mode if mode is None else mode
        return ImageCompositor.composite(self._base, self._mask, mode)

    def export_current(self, format: str = DEFAULT_EXPORT_FORMAT) -> bytes:
        """Encoded erase-applied result, whatever the current render mode."""
        return self.render(RenderMode.PREVIEW_RESULT).encode(format)
