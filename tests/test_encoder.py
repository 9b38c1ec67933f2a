import numpy as np
import pytest

from tests.helpers.images import solid
from webp_studio import encoder
from webp_studio.errors import EncodeError
from webp_studio.models import RasterImage


def test_format_size():
    assert encoder.format_size(0) == "0B"
    assert encoder.format_size(512) == "512 B"
    assert encoder.format_size(1536) == "1.5 KB"
    assert encoder.format_size(5 * 1024 * 1024) == "5.0 MB"
    with pytest.raises(ValueError):
        encoder.format_size(-1)


@pytest.mark.parametrize(("quality", "q"), [(0.92, 92), (1.0, 100), (0.5, 50), (0.001, 1)])
def test_quality_to_q(quality, q):
    assert encoder.quality_to_q(quality) == q


@pytest.mark.parametrize("quality", [0, -0.1, 1.01, 92])
def test_quality_out_of_range_rejected(quality):
    with pytest.raises(ValueError):
        encoder.quality_to_q(quality)


def test_encode_produces_webp():
    pytest.importorskip("pyvips")
    out = encoder.encode(solid(32, 16))

    assert out.format == "webp"
    assert out.data[:4] == b"RIFF" and out.data[8:12] == b"WEBP"
    assert out.size == len(out.data) > 0


def test_encode_keeps_transparency():
    pyvips = pytest.importorskip("pyvips")
    arr = np.zeros((8, 8, 4), dtype=np.uint8)
    arr[:4, :, 3] = 255
    out = encoder.encode(RasterImage(arr))

    decoded = pyvips.Image.new_from_buffer(out.data, "")
    assert decoded.hasalpha()


def test_lower_quality_is_smaller():
    pytest.importorskip("pyvips")
    rng = np.random.default_rng(7)
    arr = rng.integers(0, 256, size=(64, 64, 4), dtype=np.uint8)
    arr[..., 3] = 255
    img = RasterImage(arr)

    assert encoder.encode(img, 0.1).size < encoder.encode(img, 1.0).size


def test_codec_failure_raises_encode_error(monkeypatch):
    pyvips = pytest.importorskip("pyvips")

    class _Broken:
        def webpsave_buffer(self, **kwargs):
            raise pyvips.Error("webpsave_buffer: no such operation")

    monkeypatch.setattr(encoder, "raster_to_vips", lambda raster: _Broken())

    with pytest.raises(EncodeError):
        encoder.encode(solid(4, 4))
