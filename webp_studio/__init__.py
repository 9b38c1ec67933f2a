"""webp_studio - shape and re-encode images as WebP.

Pipeline: probe/decode -> optional crop -> cover-fit composite with a clip
mask -> WebP encode, driven by a request-sequenced `ConversionSession`.

Usage:
    from webp_studio.session import ConversionSession

    session = ConversionSession()
    session.result_ready.connect(on_result)
    session.load_source(data, name="photo.jpg", mime_type="image/jpeg")
    session.set_style(is_circle=True)
"""

from .errors import (
    DecodeError,
    EncodeError,
    InvalidDimensionError,
    InvalidInputError,
    OutOfBoundsError,
    RenderingBackendUnavailableError,
    WebPStudioError,
)
from .models import (
    ConversionRequest,
    ConversionResult,
    CropRegion,
    CropUnit,
    Dimensions,
    MaskKind,
    MaskShape,
    PixelCropRegion,
    RasterImage,
)

__all__ = [
    "ConversionRequest",
    "ConversionResult",
    "CropRegion",
    "CropUnit",
    "DecodeError",
    "Dimensions",
    "EncodeError",
    "InvalidDimensionError",
    "InvalidInputError",
    "MaskKind",
    "MaskShape",
    "OutOfBoundsError",
    "PixelCropRegion",
    "RasterImage",
    "RenderingBackendUnavailableError",
    "WebPStudioError",
]
