"""Conversion session: current source, parameters and the displayed result.

Every parameter change builds an immutable `ConversionRequest` tagged with a
monotonically increasing sequence number and hands it to a worker pool. A
finished result is shown only if no newer request has been issued since;
otherwise it is dropped and its output file released.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path

from PySide6.QtCore import QObject, Signal

from . import geometry
from .compositor import composite
from .crop import extract, initial_region, normalize
from .decoder import decode_image, probe
from .encoder import DEFAULT_QUALITY, OUTPUT_FORMAT, encode, quality_to_q
from .errors import WebPStudioError
from .logger import get_logger
from .models import (
    ConversionRequest,
    ConversionResult,
    CropRegion,
    Dimensions,
    MaskKind,
    MaskShape,
    RasterImage,
)
from .output import OutputHandle, OutputSlot

_logger = get_logger("session")


class ConversionSession(QObject):
    """Owns one source image and the single live output derived from it."""

    result_ready = Signal(object)  # ConversionResult
    conversion_failed = Signal(int, str)  # sequence, message
    source_changed = Signal(int, int)  # natural width, height
    dimensions_changed = Signal(int, int)

    def __init__(
        self,
        executor: Executor | None = None,
        mask: MaskShape | None = None,
        quality: float = DEFAULT_QUALITY,
        output_dir: str | None = None,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        if executor is None:
            executor = ThreadPoolExecutor(max_workers=max(2, min(4, os.cpu_count() or 2)))
            self._owns_executor = True
        else:
            self._owns_executor = False
        self._executor = executor
        self._output_dir = output_dir

        self._lock = threading.Lock()
        self._apply_lock = threading.RLock()
        self._next_seq = 1
        self._latest_seq = 0
        self._shown_seq = 0

        self._original: RasterImage | None = None
        self._cropped: RasterImage | None = None
        self._source_name = ""
        self._source_bytes = 0
        self._dimensions: Dimensions | None = None
        self._mask = mask or MaskShape.none()
        quality_to_q(quality)
        self._quality = quality

        self._slot = OutputSlot()
        self._result: ConversionResult | None = None

    # ---- read-only state ----
    @property
    def original(self) -> RasterImage | None:
        return self._original

    @property
    def cropped(self) -> RasterImage | None:
        return self._cropped

    @property
    def source(self) -> RasterImage | None:
        """The buffer conversions read from: the crop if one is applied, else the original."""
        return self._cropped if self._cropped is not None else self._original

    @property
    def dimensions(self) -> Dimensions | None:
        return self._dimensions

    @property
    def mask(self) -> MaskShape:
        return self._mask

    @property
    def quality(self) -> float:
        return self._quality

    @property
    def result(self) -> ConversionResult | None:
        return self._result

    @property
    def output_handle(self) -> OutputHandle | None:
        return self._slot.current

    @property
    def original_byte_size(self) -> int:
        """Length of the encoded input passed to `load_source`; 0 when nothing is loaded."""
        return self._source_bytes

    @property
    def compression_ratio(self) -> float | None:
        """Fraction of the input size saved by the visible output.

        Negative when the WebP is larger than the input. None until both exist.
        """
        result = self._result
        if result is None or self._source_bytes <= 0:
            return None
        return (self._source_bytes - result.byte_size) / self._source_bytes

    @property
    def download_name(self) -> str:
        base = Path(self._source_name).name.split(".")[0] or "image"
        return f"{base}.{OUTPUT_FORMAT}"

    # ---- sequencing ----
    def next_sequence(self) -> int:
        """Issue a new sequence number; anything issued earlier becomes stale."""
        with self._lock:
            seq = self._next_seq
            self._next_seq += 1
            self._latest_seq = seq
        return seq

    def is_current(self, sequence: int) -> bool:
        with self._lock:
            return sequence == self._latest_seq

    def apply_result(self, result: ConversionResult) -> bool:
        """Show `result` if it belongs to the newest request, else release it.

        Returns True when the result became the visible output.
        """
        # Held across install and emit so listeners see results in install order
        with self._apply_lock:
            with self._lock:
                if result.handle is self._slot.current:
                    return False
                stale = result.sequence != self._latest_seq or result.sequence <= self._shown_seq
                if not stale:
                    self._shown_seq = result.sequence
                    self._result = result
                    self._slot.install(result.handle)
            if stale:
                _logger.debug("result stale: seq=%s latest=%s (dropped)", result.sequence, self._latest_seq)
                result.handle.release()
                return False
            _logger.debug("result applied: seq=%s size=%d", result.sequence, result.byte_size)
            self.result_ready.emit(result)
        return True

    def _build_request(self) -> ConversionRequest | None:
        source = self.source
        if source is None or self._dimensions is None:
            return None
        return ConversionRequest(
            source=source,
            target=self._dimensions,
            mask=self._mask,
            quality=self._quality,
            sequence=self.next_sequence(),
        )

    def _submit(self) -> Future | None:
        request = self._build_request()
        if request is None:
            return None
        _logger.debug(
            "request queued: seq=%s target=%dx%d mask=%s r=%s q=%.2f",
            request.sequence,
            request.target.width,
            request.target.height,
            request.mask.kind.value,
            request.mask.radius,
            request.quality,
        )
        return self._executor.submit(self._run, request)

    def _run(self, request: ConversionRequest) -> ConversionResult | None:
        try:
            buffer = composite(request.source, request.target, request.mask)
            encoded = encode(buffer, request.quality)
            handle = OutputHandle(encoded.data, suffix=f".{encoded.format}", directory=self._output_dir)
        except (WebPStudioError, OSError) as e:
            if not self.is_current(request.sequence):
                _logger.debug("conversion failed for superseded seq=%s: %s", request.sequence, e)
                return None
            _logger.error("conversion failed: seq=%s: %s", request.sequence, e)
            self.conversion_failed.emit(request.sequence, str(e))
            return None

        result = ConversionResult(
            encoded=encoded.data,
            handle=handle,
            sequence=request.sequence,
            target=request.target,
            mask=request.mask,
        )
        self.apply_result(result)
        return result

    # ---- user actions ----
    def load_source(self, data: bytes, name: str = "image", mime_type: str | None = None) -> Future | None:
        """Replace the source image and convert it at its natural size.

        Raises InvalidInputError/DecodeError before any state changes.
        """
        natural = probe(data, mime_type)
        raster = decode_image(data, mime_type)
        _logger.info("source loaded: %s (%dx%d)", name, natural.width, natural.height)

        self._original = raster
        self._cropped = None
        self._source_name = name
        self._source_bytes = len(data)
        self._dimensions = raster.size
        self.source_changed.emit(raster.width, raster.height)
        self.dimensions_changed.emit(raster.width, raster.height)
        return self._submit()

    def set_dimensions(self, width: int, height: int) -> Future | None:
        """Change the target size; non-positive sizes raise InvalidDimensionError."""
        dims = Dimensions(width, height)
        if self.source is None:
            _logger.debug("set_dimensions ignored: no source")
            return None
        self._dimensions = dims
        self.dimensions_changed.emit(dims.width, dims.height)
        return self._submit()

    def resize_locked(self, width: int | None = None, height: int | None = None) -> Future | None:
        """Change one side and derive the other from the source aspect ratio."""
        source = self.source
        if source is None:
            return None
        dims = geometry.resize_locked(source.size.aspect, width=width, height=height)
        return self.set_dimensions(dims.width, dims.height)

    def set_mask(self, mask: MaskShape) -> Future | None:
        self._mask = mask
        return self._submit()

    def set_style(self, is_circle: bool, border_radius: float = 0) -> Future | None:
        return self.set_mask(MaskShape.from_style(is_circle, border_radius))

    def set_quality(self, quality: float) -> Future | None:
        quality_to_q(quality)
        self._quality = quality
        return self._submit()

    def crop_editor_region(self) -> CropRegion | None:
        """Starting region for the crop editor; square when the circle mask is on."""
        if self._original is None:
            return None
        aspect = 1.0 if self._mask.kind is MaskKind.CIRCLE else None
        return initial_region(self._original.size, aspect)

    def apply_crop(self, region: CropRegion) -> Future | None:
        """Crop the original image and convert the crop at its own size.

        Raises OutOfBoundsError before any state changes.
        """
        if self._original is None:
            return None
        pixel = normalize(region, self._original.size)
        cropped = extract(self._original, pixel)
        _logger.info("crop applied: %s", pixel.as_tuple())

        self._cropped = cropped
        self._dimensions = cropped.size
        self.dimensions_changed.emit(cropped.width, cropped.height)
        return self._submit()

    def clear_crop(self) -> Future | None:
        if self._original is None or self._cropped is None:
            return None
        self._cropped = None
        self._dimensions = self._original.size
        self.dimensions_changed.emit(self._original.width, self._original.height)
        return self._submit()

    def save(self, path: str | os.PathLike[str]) -> Path:
        """Write the visible output to `path`."""
        if self._result is None:
            raise RuntimeError("no converted image to save")
        out = Path(path)
        out.write_bytes(self._result.encoded)
        _logger.info("saved %s (%d bytes)", out, self._result.byte_size)
        return out

    def reset(self) -> None:
        """Forget the source and release the live output; in-flight results become stale."""
        self.next_sequence()
        with self._apply_lock, self._lock:
            self._result = None
            self._slot.clear()
        self._original = None
        self._cropped = None
        self._source_name = ""
        self._source_bytes = 0
        self._dimensions = None

    def shutdown(self) -> None:
        self.reset()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
