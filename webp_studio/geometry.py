"""Canvas geometry helpers. Pure functions, no pyvips or Qt dependencies."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Dimensions


@dataclass(frozen=True)
class DrawRect:
    """Where the scaled source lands on the target canvas.

    Offsets are negative when the scaled source overflows the canvas on that axis.
    """

    width: float
    height: float
    offset_x: float
    offset_y: float


def cover_fit(source: Dimensions, target: Dimensions) -> DrawRect:
    """Scale `source` so it fully covers `target`, centering the overflow.

    Args:
        source: Natural size of the image being drawn
        target: Output canvas size

    Returns:
        DrawRect with one axis equal to the target and the other >= target
    """
    source_aspect = source.width / source.height
    target_aspect = target.width / target.height

    if source_aspect > target_aspect:
        draw_width = target.height * source_aspect
        draw_height = float(target.height)
    else:
        draw_width = float(target.width)
        draw_height = target.width / source_aspect

    return DrawRect(
        width=draw_width,
        height=draw_height,
        offset_x=(target.width - draw_width) / 2,
        offset_y=(target.height - draw_height) / 2,
    )


def resize_locked(aspect: float, width: int | None = None, height: int | None = None) -> Dimensions:
    """Derive the missing side from `aspect` (width / height).

    Exactly one of `width`/`height` must be given. The derived side is rounded to
    the nearest pixel and never drops below 1.
    """
    if (width is None) == (height is None):
        raise ValueError("pass exactly one of width or height")
    if aspect <= 0:
        raise ValueError(f"aspect must be > 0, got {aspect}")
    if width is not None:
        return Dimensions(width, max(1, round(width / aspect)))
    assert height is not None
    return Dimensions(max(1, round(height * aspect)), height)
