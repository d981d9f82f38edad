"""
Pytest configuration and shared fixtures for Open Cutout tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import io
import struct
import zlib

import pytest
from PIL import Image

from OC_Libs.SessionLib.edit_session import EditSession


def encode_png(image) -> bytes:
    """Encode a PIL Image as PNG bytes."""
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


@pytest.fixture
def opaque_image():
    """
    Provide a 100x100 fully opaque blue image.

    Returns:
        PIL Image in RGBA mode
    """
    return Image.new("RGBA", (100, 100), (0, 0, 255, 255))


@pytest.fixture
def subject_image():
    """
    Provide a 20x20 white image with a black 6x6 subject in the middle.

    Returns:
        PIL Image in RGBA mode
    """
    img = Image.new("RGBA", (20, 20), (255, 255, 255, 255))
    pixels = img.load()
    for y in range(7, 13):
        for x in range(7, 13):
            pixels[x, y] = (0, 0, 0, 255)
    return img


@pytest.fixture
def png_bytes():
    """
    Provide a factory that encodes a solid-color image as PNG bytes.

    Returns:
        Callable (width, height, color) -> bytes
    """
    def _make(width, height, color=(0, 255, 0, 255)):
        return encode_png(Image.new("RGBA", (width, height), color))
    return _make


@pytest.fixture
def loaded_session(opaque_image):
    """
    Provide an EditSession with the 100x100 opaque image loaded.

    Returns:
        EditSession in the LOADED state
    """
    session = EditSession()
    session.load_image(opaque_image)
    return session


@pytest.fixture
def sample_rgba_colors():
    """
    Provide a list of sample RGBA color tuples for testing.

    Returns:
        List of (R, G, B, A) tuples with common test colors
    """
    return [
        (255, 0, 0, 255),    # Red
        (0, 255, 0, 255),    # Green
        (0, 0, 255, 255),    # Blue
        (255, 255, 255, 255),  # White
        (0, 0, 0, 255),      # Black
        (128, 128, 128, 255),  # Gray
    ]


@pytest.fixture
def oversized_png():
    """
    Provide PNG bytes whose IHDR declares a 40000x40000 image.

    The chunk CRC is valid, so Pillow gets as far as its pixel limit
    check before refusing the image.

    Returns:
        bytes
    """
    data = bytearray(encode_png(Image.new("RGBA", (1, 1), (0, 0, 0, 255))))
    data[16:24] = struct.pack(">II", 40000, 40000)
    data[29:33] = struct.pack(">I", zlib.crc32(bytes(data[12:29])) & 0xFFFFFFFF)
    return bytes(data)
