"""WebP encoding of composited buffers."""

from __future__ import annotations

import math

from .decoder import _get_pyvips_module, raster_to_vips
from .errors import EncodeError
from .logger import get_logger
from .models import EncodedImage, RasterImage

_logger = get_logger("encoder")

OUTPUT_FORMAT = "webp"
DEFAULT_QUALITY = 0.92


def format_size(size_bytes: int) -> str:
    if size_bytes == 0:
        return "0B"
    if size_bytes < 0:
        raise ValueError("size_bytes must be non-negative")
    size_name = ("B", "KB", "MB", "GB", "TB")
    i = min(len(size_name) - 1, math.floor(math.log(size_bytes, 1024)))
    if i == 0:
        return f"{size_bytes} B"
    p = math.pow(1024, i)
    s = round(size_bytes / p, 2)
    return f"{s} {size_name[i]}"


def quality_to_q(quality: float) -> int:
    """Map a (0, 1] quality factor onto the libvips 1..100 Q scale."""
    if not 0 < quality <= 1:
        raise ValueError(f"quality must be in (0, 1], got {quality}")
    return max(1, min(100, round(quality * 100)))


def encode(buffer: RasterImage, quality: float = DEFAULT_QUALITY) -> EncodedImage:
    """Compress `buffer` to WebP, keeping its alpha band.

    Raises:
        ValueError: If quality is outside (0, 1]
        EncodeError: If the codec fails
    """
    q = quality_to_q(quality)
    pyvips = _get_pyvips_module()
    try:
        data = raster_to_vips(buffer).webpsave_buffer(Q=q)
    except pyvips.Error as e:
        _logger.error("webp encode failed (%dx%d, Q=%d): %s", buffer.width, buffer.height, q, e)
        raise EncodeError(f"webp encode failed: {e}") from e
    if not data:
        raise EncodeError("webp encoder returned no data")

    encoded = EncodedImage(bytes(data), OUTPUT_FORMAT)
    _logger.debug("encoded %dx%d Q=%d -> %s", buffer.width, buffer.height, q, format_size(encoded.size))
    return encoded
