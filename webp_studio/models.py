"""Value types shared by the conversion pipeline.

Buffers are handed from stage to stage read-only: a `RasterImage` marks its
pixel array non-writeable at construction, and every stage that changes
pixels builds a new one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from .errors import InvalidDimensionError

if TYPE_CHECKING:
    from .output import OutputHandle

RGBA_CHANNELS = 4
_EXPECTED_NDIM = 3
MAX_BORDER_RADIUS = 100


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded RGBA pixels, shape (height, width, 4), dtype uint8."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        arr = np.ascontiguousarray(self.pixels, dtype=np.uint8)
        if arr.ndim != _EXPECTED_NDIM or arr.shape[2] != RGBA_CHANNELS:
            raise ValueError(f"expected (h, w, 4) pixels, got shape {arr.shape}")
        if arr.shape[0] <= 0 or arr.shape[1] <= 0:
            raise ValueError("image must have a positive size")
        arr.setflags(write=False)
        object.__setattr__(self, "pixels", arr)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Dimensions:
        return Dimensions(self.width, self.height)

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[..., 3]


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidDimensionError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise InvalidDimensionError(f"{name} must be > 0, got {value}")
            object.__setattr__(self, name, int(value))

    @property
    def aspect(self) -> float:
        return self.width / self.height


class CropUnit(str, Enum):
    PERCENT = "%"
    PIXEL = "px"


@dataclass(frozen=True)
class CropRegion:
    """Crop rectangle as drawn by the user, relative to the source image.

    `aspect_lock` is width/height; None means free-form.
    """

    x: float
    y: float
    width: float
    height: float
    unit: CropUnit = CropUnit.PERCENT
    aspect_lock: float | None = None


@dataclass(frozen=True)
class PixelCropRegion:
    left: int
    top: int
    width: int
    height: int

    def as_tuple(self) -> tuple[int, int, int, int]:
        return self.left, self.top, self.width, self.height


class MaskKind(str, Enum):
    NONE = "none"
    ROUNDED = "rounded"
    CIRCLE = "circle"


@dataclass(frozen=True)
class MaskShape:
    """Clip shape applied to the target canvas.

    Rounded radii are clamped to [0, MAX_BORDER_RADIUS] here; the clamp to half
    the shorter canvas side happens in `effective_radius`.
    """

    kind: MaskKind = MaskKind.NONE
    radius: int = 0

    def __post_init__(self) -> None:
        kind = MaskKind(self.kind)
        object.__setattr__(self, "kind", kind)
        if kind is MaskKind.ROUNDED:
            r = int(round(self.radius))
            object.__setattr__(self, "radius", max(0, min(MAX_BORDER_RADIUS, r)))
        else:
            object.__setattr__(self, "radius", 0)

    @classmethod
    def none(cls) -> MaskShape:
        return cls(MaskKind.NONE)

    @classmethod
    def rounded(cls, radius: float) -> MaskShape:
        return cls(MaskKind.ROUNDED, radius)  # type: ignore[arg-type]

    @classmethod
    def circle(cls) -> MaskShape:
        return cls(MaskKind.CIRCLE)

    @classmethod
    def from_style(cls, is_circle: bool, border_radius: float = 0) -> MaskShape:
        if is_circle:
            return cls.circle()
        if border_radius and border_radius > 0:
            return cls.rounded(border_radius)
        return cls.none()

    def effective_radius(self, target: Dimensions) -> float:
        half_short = min(target.width, target.height) / 2
        if self.kind is MaskKind.CIRCLE:
            return half_short
        if self.kind is MaskKind.ROUNDED:
            return min(float(self.radius), half_short)
        return 0.0


@dataclass(frozen=True)
class ConversionRequest:
    """Everything needed to produce one output, captured at request time."""

    source: RasterImage
    target: Dimensions
    mask: MaskShape
    quality: float
    sequence: int


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    format: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, eq=False)
class ConversionResult:
    encoded: bytes
    handle: OutputHandle
    sequence: int
    target: Dimensions
    mask: MaskShape

    @property
    def byte_size(self) -> int:
        return len(self.encoded)
