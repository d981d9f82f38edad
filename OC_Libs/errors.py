"""
Error taxonomy for Open Cutout.

Every error derives from CutoutError and from the builtin exception that
generic callers would already catch for the same situation.

Classes:
    CutoutError: Base class for all engine errors
    InvalidImageSource: An uploaded source image could not be read
    DimensionMismatch: Two buffers expected to share a size do not
    DecodeError: An externally supplied image payload is not a valid image
    ExternalServiceFailure: The AI background-removal collaborator failed
    SessionNotLoaded: An operation needs an image but none is loaded
"""


class CutoutError(Exception):
    """Base class for Open Cutout errors."""


class InvalidImageSource(CutoutError, IOError):
    """Raised when a source image cannot be opened or decoded."""


class DimensionMismatch(CutoutError, ValueError):
    """Raised when buffers that must share dimensions do not."""

    def __init__(self, expected, actual, context: str = ""):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        prefix = f"{context}: " if context else ""
        super().__init__(
            f"{prefix}expected {self.expected[0]}x{self.expected[1]}, "
            f"got {self.actual[0]}x{self.actual[1]}"
        )


class DecodeError(CutoutError, ValueError):
    """Raised when image bytes cannot be decoded."""


class ExternalServiceFailure(CutoutError, RuntimeError):
    """Raised when the AI removal collaborator fails or returns no image."""


class SessionNotLoaded(CutoutError, RuntimeError):
    """Raised when an edit operation runs before any image is loaded."""
