"""Image probing and decoding using pyvips.

Input arrives as an in-memory byte buffer. `sniff` validates it cheaply
(declared MIME type plus a header-only libvips load) before any pixels are decoded.
"""

from __future__ import annotations

import contextlib
from typing import Any

import numpy as np

from .errors import DecodeError, InvalidInputError, RenderingBackendUnavailableError
from .logger import get_logger
from .models import RGBA_CHANNELS, Dimensions, RasterImage

_logger = get_logger("decoder")

OPAQUE = 255

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    """Return the pyvips module, importing it on first use."""
    global _pyvips
    if _pyvips is None:
        try:
            import pyvips  # type: ignore
        except (ImportError, OSError) as e:
            _logger.error("pyvips requested but not available: %s", e)
            raise RenderingBackendUnavailableError(f"pyvips is not available: {e}") from e

        # Configure pyvips caches to avoid memory growth across many edits
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


# Markers libvips uses when no loader claims a buffer
_UNKNOWN_FORMAT = ("not in a known format", "not a known buffer format")


def _load_header(data: bytes, mime_type: str | None) -> Any:
    """Open `data` lazily; only the header is read."""
    if mime_type is not None and not mime_type.lower().startswith("image/"):
        raise InvalidInputError(f"not an image upload: {mime_type}")
    if not data:
        raise InvalidInputError("empty input")

    pyvips = _get_pyvips_module()
    try:
        return pyvips.Image.new_from_buffer(bytes(data), "")
    except pyvips.Error as e:
        message = str(e)
        if any(marker in message for marker in _UNKNOWN_FORMAT):
            raise InvalidInputError("input is not a recognised image format") from e
        _logger.debug("header read failed: %s", message)
        raise DecodeError(f"cannot read image header: {e}") from e


def sniff(data: bytes, mime_type: str | None = None) -> str:
    """Check that `data` looks like an image without decoding its pixels.

    Args:
        data: Raw encoded image bytes
        mime_type: Declared type of the upload, if the caller knows it

    Returns:
        Name of the libvips loader that handles the buffer

    Raises:
        InvalidInputError: If the declared type is not image/* or no loader matches
        DecodeError: If a loader matches but the header is corrupt
    """
    image = _load_header(data, mime_type)
    if image.get_typeof("vips-loader") == 0:
        return "unknown"
    return str(image.get("vips-loader"))


def _open(data: bytes, mime_type: str | None) -> Any:
    image = _load_header(data, mime_type)
    pyvips = _get_pyvips_module()
    try:
        # Honour EXIF orientation so probe and decode agree on the natural size
        return image.autorot()
    except pyvips.Error as e:
        _logger.debug("autorot failed: %s", e)
        raise DecodeError(f"cannot read image header: {e}") from e


def probe(data: bytes, mime_type: str | None = None) -> Dimensions:
    """Report the natural width/height of an encoded image."""
    image = _open(data, mime_type)
    _logger.debug("probe: %dx%d", image.width, image.height)
    return Dimensions(image.width, image.height)


def _to_rgba(image: Any) -> Any:
    pyvips = _get_pyvips_module()
    with contextlib.suppress(pyvips.Error):
        image = image.colourspace("srgb")
    if not image.hasalpha():
        image = image.bandjoin(OPAQUE) if image.format == "uchar" else image.cast("uchar").bandjoin(OPAQUE)
    if image.format != "uchar":
        image = image.cast("uchar")
    if image.bands > RGBA_CHANNELS:
        image = image.extract_band(0, n=RGBA_CHANNELS)
    elif image.bands < RGBA_CHANNELS:
        # Grey + alpha left over when the colourspace conversion was skipped
        grey = image.extract_band(0)
        image = pyvips.Image.bandjoin([grey, grey, grey, image.extract_band(image.bands - 1)])
    return image


def vips_to_raster(image: Any) -> RasterImage:
    """Copy a uchar RGBA pyvips image into a new RasterImage."""
    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    return RasterImage(array.copy())


def raster_to_vips(raster: RasterImage) -> Any:
    """Wrap a RasterImage as a pyvips image (pixels are copied, source untouched)."""
    pyvips = _get_pyvips_module()
    return pyvips.Image.new_from_memory(
        raster.pixels.tobytes(), raster.width, raster.height, RGBA_CHANNELS, "uchar"
    ).copy(interpretation="srgb")


def decode_image(data: bytes, mime_type: str | None = None) -> RasterImage:
    """Decode image bytes into an RGBA RasterImage.

    Raises:
        InvalidInputError: Input is not an image
        DecodeError: Image data is corrupt or unsupported
    """
    image = _open(data, mime_type)
    pyvips = _get_pyvips_module()
    try:
        raster = vips_to_raster(_to_rgba(image))
    except pyvips.Error as e:
        _logger.debug("decode failed: %s", e)
        raise DecodeError(f"cannot decode image: {e}") from e
    finally:
        with contextlib.suppress(Exception):
            del image
    _logger.debug("decoded %dx%d", raster.width, raster.height)
    return raster
