"""
Owned RGBA raster used by every Open Cutout algorithm.

A PixelBuffer wraps a numpy uint8 array of shape (height, width, 4). All
mutations replace the whole raster; there are no partial writes, which keeps
undo snapshots well defined.

Classes:
    PixelBuffer: Fixed-size RGBA raster with Pillow conversion helpers
"""

import io
from typing import Any, Tuple

import numpy as np

from OC_Libs.constants import DEFAULT_EXPORT_FORMAT
from OC_Libs.errors import DecodeError, DimensionMismatch
from OC_Libs.pillow_compat import DecompressionBombError, Image, UnidentifiedImageError


def _validate_dimensions(width: int, height: int) -> Tuple[int, int]:
    width = int(width)
    height = int(height)
    if width <= 0 or height <= 0:
        raise ValueError(f"width and height must be > 0, got {width}x{height}")
    return width, height


def _as_rgba_image(image: Any) -> Any:
    if not hasattr(image, "convert"):
        raise TypeError(f"Expected PIL Image, got {type(image)}")
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return image


class PixelBuffer:
    """
    Fixed-size RGBA raster.

    The pixel array is owned by the buffer. Constructors always copy their
    input so no two buffers ever alias the same memory.

    Example:
        >>> buffer = PixelBuffer.create(4, 3)
        >>> len(buffer.pixels)
        12
        >>> buffer.is_empty()
        True
    """

    __slots__ = ("_data",)

    def __init__(self, width: int, height: int):
        width, height = _validate_dimensions(width, height)
        self._data = np.zeros((height, width, 4), dtype=np.uint8)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, width: int, height: int) -> "PixelBuffer":
        """Create a fully transparent buffer."""
        return cls(width, height)

    @classmethod
    def from_array(cls, array: Any) -> "PixelBuffer":
        """
        Create a buffer from an (height, width, 4) array.

        Args:
            array: Array-like of RGBA values 0-255

        Returns:
            New PixelBuffer holding a copy of the array

        Raises:
            ValueError: If the array does not have shape (h, w, 4)
        """
        data = np.asarray(array)
        if data.ndim != 3 or data.shape[2] != 4:
            raise ValueError(f"Expected array of shape (h, w, 4), got {data.shape}")
        buffer = cls(data.shape[1], data.shape[0])
        buffer._data[...] = np.clip(data, 0, 255).astype(np.uint8)
        return buffer

    @classmethod
    def from_image(cls, image: Any) -> "PixelBuffer":
        """Create a buffer holding an RGBA copy of a PIL Image."""
        rgba = _as_rgba_image(image)
        return cls.from_array(np.asarray(rgba, dtype=np.uint8))

    @classmethod
    def decode(cls, data: bytes) -> "PixelBuffer":
        """
        Decode encoded image bytes (PNG, JPEG, WebP, ...) into a buffer.

        Raises:
            DecodeError: If the bytes are empty or not a readable image
        """
        if not data:
            raise DecodeError("No image data to decode")
        try:
            with Image.open(io.BytesIO(bytes(data))) as img:
                img.load()
                return cls.from_image(img)
        except (UnidentifiedImageError, DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(f"Failed to decode image: {str(e)}") from e

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._data.shape[1]

    @property
    def height(self) -> int:
        return self._data.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height), matching PIL's convention."""
        return self.width, self.height

    @property
    def array(self) -> np.ndarray:
        """The live (height, width, 4) pixel array."""
        return self._data

    @property
    def pixels(self) -> np.ndarray:
        """Flat (width*height, 4) view of the pixels in row-major order."""
        return self._data.reshape(-1, 4)

    @property
    def alpha(self) -> np.ndarray:
        """Live (height, width) view of the alpha channel."""
        return self._data[:, :, 3]

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self._data[y, x]
        return int(r), int(g), int(b), int(a)

    def is_empty(self) -> bool:
        """True when every pixel is fully transparent."""
        return not self._data[:, :, 3].any()

    # ------------------------------------------------------------------
    # Whole-raster mutations
    # ------------------------------------------------------------------

    def copy(self) -> "PixelBuffer":
        """Return a deep copy."""
        return type(self).from_array(self._data)

    def clear(self) -> None:
        """Reset every pixel to transparent black."""
        self._data[...] = 0

    def resize(self, width: int, height: int) -> None:
        """Resize to new dimensions, discarding all content."""
        width, height = _validate_dimensions(width, height)
        self._data = np.zeros((height, width, 4), dtype=np.uint8)

    def copy_from(self, source: "PixelBuffer", resize: bool = False) -> None:
        """
        Replace this buffer's pixels with a deep copy of another buffer.

        Args:
            source: Buffer to copy
            resize: Adopt the source's dimensions if they differ

        Raises:
            DimensionMismatch: If sizes differ and resize is False
        """
        if source.size != self.size:
            if not resize:
                raise DimensionMismatch(self.size, source.size, "copy_from")
            self.resize(*source.size)
        self._data[...] = source._data

    def draw_source(self, image: Any, resize: bool = False) -> None:
        """
        Clear the buffer and paint a PIL Image at offset (0, 0).

        Args:
            image: PIL Image in any mode (converted to RGBA)
            resize: Adopt the image's dimensions if they differ

        Raises:
            TypeError: If image is not a PIL Image
            DimensionMismatch: If sizes differ and resize is False
        """
        rgba = _as_rgba_image(image)
        if rgba.size != self.size:
            if not resize:
                raise DimensionMismatch(self.size, rgba.size, "draw_source")
            self.resize(*rgba.size)
        self._data[...] = np.asarray(rgba, dtype=np.uint8)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_image(self) -> Any:
        """Return an RGBA PIL Image copy of the buffer."""
        return Image.fromarray(self._data.copy())

    def encode(self, format: str = DEFAULT_EXPORT_FORMAT) -> bytes:
        """Encode the buffer (PNG by default) and return the bytes."""
        output = io.BytesIO()
        self.to_image().save(output, format=format)
        return output.getvalue()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self._data, other._data)

    __hash__ = None

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height})"
