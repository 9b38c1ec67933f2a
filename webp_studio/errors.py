"""Error kinds raised by the conversion pipeline.

Every error is terminal for the single request that raised it; the session
keeps the last good result on screen.
"""

from __future__ import annotations


class WebPStudioError(Exception):
    """Base class for all pipeline errors."""


class InvalidInputError(WebPStudioError):
    """Input bytes are not an image; rejected before any decode."""


class DecodeError(WebPStudioError):
    """Image data is corrupt or in an unsupported format."""


class OutOfBoundsError(WebPStudioError, ValueError):
    """Crop region leaves the source bounds or has zero area."""


class InvalidDimensionError(WebPStudioError, ValueError):
    """Target width or height is not a positive integer."""


class RenderingBackendUnavailableError(WebPStudioError, ImportError):
    """The pyvips/libvips drawing backend cannot be loaded."""


class EncodeError(WebPStudioError):
    """The output codec failed to produce a byte stream."""


__all__ = [
    "DecodeError",
    "EncodeError",
    "InvalidDimensionError",
    "InvalidInputError",
    "OutOfBoundsError",
    "RenderingBackendUnavailableError",
    "WebPStudioError",
]
