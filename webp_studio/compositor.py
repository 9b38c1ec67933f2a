"""Cover-fit scaling and mask compositing.

The source is scaled with pyvips so it covers the whole target canvas, the
overflow is cropped around the center, and the clip mask is applied to the
alpha band with numpy.
"""

from __future__ import annotations

import numpy as np

from .decoder import OPAQUE, _get_pyvips_module, raster_to_vips
from .errors import RenderingBackendUnavailableError
from .geometry import cover_fit
from .logger import get_logger
from .models import Dimensions, MaskKind, MaskShape, RasterImage

_logger = get_logger("compositor")

RESAMPLE_KERNEL = "lanczos3"


def build_mask(target: Dimensions, mask: MaskShape) -> np.ndarray:
    """Boolean coverage mask of shape (height, width).

    A pixel is inside when its center lies inside the clip path. The path only
    depends on the target canvas, never on the source.
    """
    w, h = target.width, target.height
    radius = mask.effective_radius(target)
    if mask.kind is MaskKind.NONE or radius <= 0:
        return np.ones((h, w), dtype=bool)

    ys = (np.arange(h, dtype=np.float64) + 0.5)[:, None]
    xs = (np.arange(w, dtype=np.float64) + 0.5)[None, :]

    if mask.kind is MaskKind.CIRCLE:
        return (xs - w / 2) ** 2 + (ys - h / 2) ** 2 <= radius * radius

    # Nearest corner-arc center; points in the inner cross clamp onto themselves
    cx = np.clip(xs, radius, w - radius)
    cy = np.clip(ys, radius, h - radius)
    return (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius


def _scale_to_cover(source: RasterImage, target: Dimensions) -> np.ndarray:
    pyvips = _get_pyvips_module()
    rect = cover_fit(source.size, target)
    hscale = rect.width / source.width
    vscale = rect.height / source.height
    _logger.debug(
        "cover: src=%dx%d dst=%dx%d draw=%.2fx%.2f offset=(%.2f,%.2f)",
        source.width,
        source.height,
        target.width,
        target.height,
        rect.width,
        rect.height,
        rect.offset_x,
        rect.offset_y,
    )
    opaque = bool((source.alpha == OPAQUE).all())
    try:
        image = raster_to_vips(source)
        if opaque:
            scaled = image.extract_band(0, n=3).resize(hscale, vscale=vscale, kernel=RESAMPLE_KERNEL)
        else:
            # Resample premultiplied so transparent pixels don't bleed dark fringes
            scaled = image.premultiply().resize(hscale, vscale=vscale, kernel=RESAMPLE_KERNEL)
            scaled = scaled.unpremultiply().rint().cast("uchar")
        # Centered crop to the canvas; edge-copy covers a 1px rounding shortfall
        canvas = scaled.gravity("centre", target.width, target.height, extend="copy")
        mem = canvas.write_to_memory()
    except pyvips.Error as e:
        _logger.error("compositing failed for %dx%d: %s", target.width, target.height, e)
        raise RenderingBackendUnavailableError(f"cannot render {target.width}x{target.height} canvas: {e}") from e

    array = np.frombuffer(mem, dtype=np.uint8).reshape(target.height, target.width, canvas.bands)
    if opaque:
        alpha = np.full((target.height, target.width, 1), OPAQUE, dtype=np.uint8)
        return np.concatenate([array, alpha], axis=2)
    return array.copy()


def composite(source: RasterImage, target: Dimensions, mask: MaskShape) -> RasterImage:
    """Render `source` into a new `target`-sized RGBA buffer clipped by `mask`.

    Raises:
        InvalidDimensionError: If the target size is not positive
        RenderingBackendUnavailableError: If pyvips cannot be loaded or fails to render
    """
    if not isinstance(target, Dimensions):
        # Dimensions rejects non-positive sizes before anything is rendered
        target = Dimensions(*target)

    pixels = _scale_to_cover(source, target)
    coverage = build_mask(target, mask)
    pixels[..., 3] = np.where(coverage, pixels[..., 3], 0)
    return RasterImage(pixels)
