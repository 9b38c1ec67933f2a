"""Crop backend.

Pure functions for turning a user-drawn crop region into source pixels,
no Qt dependencies.
"""

from __future__ import annotations

import numpy as np

from .errors import OutOfBoundsError
from .logger import get_logger
from .models import CropRegion, CropUnit, Dimensions, PixelCropRegion, RasterImage

_logger = get_logger("crop")

INITIAL_CROP_PERCENT = 90.0


def validate_crop_bounds(img_width: int, img_height: int, crop: tuple[int, int, int, int]) -> bool:
    """Validate that crop rectangle is within image bounds.

    Args:
        img_width: Original image width
        img_height: Original image height
        crop: (left, top, width, height) crop rectangle

    Returns:
        True if crop is valid, False otherwise
    """
    left, top, width, height = crop
    if left < 0 or top < 0:
        return False
    if width <= 0 or height <= 0:
        return False
    if left + width > img_width:
        return False
    return not top + height > img_height


def initial_region(source: Dimensions, aspect_lock: float | None = None) -> CropRegion:
    """Centered starting region shown when the crop editor opens.

    Without a lock this is the middle 90% of the image. With a lock the region is
    the largest centered rectangle of that aspect ratio, capped at 90% of the
    limiting axis.
    """
    if not aspect_lock:
        margin = (100.0 - INITIAL_CROP_PERCENT) / 2
        return CropRegion(margin, margin, INITIAL_CROP_PERCENT, INITIAL_CROP_PERCENT, CropUnit.PERCENT)

    width = min(INITIAL_CROP_PERCENT, source.height * aspect_lock * INITIAL_CROP_PERCENT / source.width)
    height = width * source.width / (source.height * aspect_lock)
    return CropRegion(
        x=(100.0 - width) / 2,
        y=(100.0 - height) / 2,
        width=width,
        height=height,
        unit=CropUnit.PERCENT,
        aspect_lock=aspect_lock,
    )


def normalize(region: CropRegion, source: Dimensions) -> PixelCropRegion:
    """Convert `region` into integer source-pixel coordinates.

    Raises:
        OutOfBoundsError: If the region leaves the source or has zero area
    """
    if CropUnit(region.unit) is CropUnit.PERCENT:
        left = round(region.x / 100 * source.width)
        top = round(region.y / 100 * source.height)
        width = round(region.width / 100 * source.width)
        height = round(region.height / 100 * source.height)
        # Rounding both edges up can push an in-range region one pixel past the border
        if region.x + region.width <= 100:
            width = min(width, source.width - left)
        if region.y + region.height <= 100:
            height = min(height, source.height - top)
    else:
        left, top = round(region.x), round(region.y)
        width, height = round(region.width), round(region.height)

    pixel = PixelCropRegion(int(left), int(top), int(width), int(height))
    if not validate_crop_bounds(source.width, source.height, pixel.as_tuple()):
        _logger.debug("crop %s rejected for %dx%d", pixel, source.width, source.height)
        raise OutOfBoundsError(f"Crop bounds {pixel.as_tuple()} invalid for image size {source.width}x{source.height}")
    return pixel


def extract(source: RasterImage, region: PixelCropRegion) -> RasterImage:
    """Copy `region` out of `source` into a new buffer, without resampling."""
    if not validate_crop_bounds(source.width, source.height, region.as_tuple()):
        raise OutOfBoundsError(
            f"Crop bounds {region.as_tuple()} invalid for image size {source.width}x{source.height}"
        )
    left, top, width, height = region.as_tuple()
    pixels = np.array(source.pixels[top : top + height, left : left + width], copy=True)
    _logger.debug("extracted %s from %dx%d", region.as_tuple(), source.width, source.height)
    return RasterImage(pixels)
