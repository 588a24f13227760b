from __future__ import annotations

import pytest
from PIL import Image

from conftest import decode, encode, noise_image
from image_converter.config import EngineConfig, SearchConfig
from image_converter.detection import ImageFormat
from image_converter.engine import ConversionEngine, clamp_percent, convert
from image_converter.errors import DecodeError, EncodeError, TraceError, UnsupportedFormatError
from image_converter.models import ConversionRequest


def run(source: bytes, fmt: str, config: EngineConfig | None = None, **kwargs):
    return ConversionEngine(config).run(ConversionRequest.build(source, fmt, **kwargs))


def test_alpha_source_is_flattened_onto_white_for_jpeg(transparent_png: bytes) -> None:
    result = run(transparent_png, "jpg")
    assert result.format is ImageFormat.JPEG
    assert result.mode == "default"
    assert result.attempts == 1
    output = decode(result.data)
    assert output.format == "JPEG"
    assert output.mode == "RGB"
    assert all(channel >= 250 for channel in output.getpixel((0, 0)))
    assert all(channel >= 250 for channel in output.getpixel((20, 15)))


def test_alpha_source_is_flattened_for_tiff(transparent_png: bytes) -> None:
    output = decode(run(transparent_png, "tif").data)
    assert output.format == "TIFF"
    assert output.mode == "RGB"
    assert output.getpixel((5, 5)) == (255, 255, 255)


def test_webp_keeps_alpha(transparent_png: bytes) -> None:
    output = decode(run(transparent_png, "webp").data)
    assert output.mode == "RGBA"


@pytest.mark.parametrize("fmt", ["png", "jpeg", "webp"])
def test_float_tiff_source_encodes(fmt: str) -> None:
    source = encode(Image.new("F", (12, 8), 128.0), "TIFF")
    output = decode(run(source, fmt).data)
    assert output.size == (12, 8)
    assert output.mode in {"L", "RGB"}
    if fmt == "png":
        assert output.getpixel((0, 0)) == (128, 128, 128)


def test_palette_with_transparency_encodes_to_jpeg() -> None:
    image = Image.new("P", (16, 16), 0)
    image.putpalette([0, 0, 0, 255, 0, 0] + [0] * 762)
    source = encode(image, "PNG", transparency=0)
    output = decode(run(source, "jpeg").data)
    assert output.mode == "RGB"
    assert all(channel >= 250 for channel in output.getpixel((0, 0)))


def test_resize_fits_inside_bounds(landscape_png: bytes) -> None:
    result = run(landscape_png, "png", resize=(100, 100))
    assert (result.width, result.height) == (100, 75)
    assert decode(result.data).size == (100, 75)


def test_resize_never_enlarges(landscape_png: bytes) -> None:
    result = run(landscape_png, "png", resize=(1000, 1000))
    assert decode(result.data).size == (400, 300)


def test_resize_keeps_both_bounds(landscape_png: bytes) -> None:
    width, height = decode(run(landscape_png, "jpeg", resize=(300, 120)).data).size
    assert width <= 300
    assert height <= 120
    assert abs(width / height - 4 / 3) < 0.05


def test_percent_mode_clamps_and_changes_size(noise_png: bytes) -> None:
    low = run(noise_png, "jpeg", quality_percent=10)
    high = run(noise_png, "jpeg", quality_percent=150)
    assert low.mode == "percent"
    assert low.quality == 10
    assert high.quality == 100
    assert low.size_bytes < high.size_bytes


def test_clamp_percent() -> None:
    assert clamp_percent(-4) == 1
    assert clamp_percent(55) == 55
    assert clamp_percent(250) == 100


def test_target_size_takes_priority_over_percent(noise_png: bytes) -> None:
    result = run(noise_png, "jpeg", target_size_kb=10_000, quality_percent=10)
    assert result.mode == "target_size"
    assert result.quality == 95


def test_target_size_search_is_bounded(noise_png: bytes) -> None:
    reference_kb = len(encode(noise_image(256, 256), "JPEG", quality=75)) / 1024
    target = reference_kb + 2
    result = run(noise_png, "jpeg", target_size_kb=target)
    search = SearchConfig()
    assert result.attempts <= search.max_attempts
    if result.converged:
        assert target - search.undershoot_margin_kb < result.size_kb <= target
    else:
        assert result.quality in (search.min_quality, search.max_quality) or result.attempts == search.max_attempts


def test_unreachable_small_target_returns_oversized_output(noise_png: bytes) -> None:
    config = EngineConfig(search=SearchConfig(initial_quality=60))
    result = run(noise_png, "jpeg", config, target_size_kb=1)
    assert result.quality == 50
    assert result.attempts == 6
    assert result.converged is False
    assert result.size_kb > 1


def test_generous_target_saturates_at_max_quality(noise_png: bytes) -> None:
    result = run(noise_png, "webp", target_size_kb=50_000)
    assert result.quality == 95
    assert result.attempts == 1
    assert result.converged is False


def test_target_size_on_quality_insensitive_codec_encodes_once(noise_png: bytes) -> None:
    result = run(noise_png, "png", target_size_kb=5)
    assert result.attempts == 1
    assert result.quality is None
    assert result.converged is False


def test_garbage_source_raises_decode_error_for_raster_target() -> None:
    with pytest.raises(DecodeError) as exc:
        run(b"definitely not an image", "jpeg")
    assert exc.value.code == "DECODE_FAILED"


def test_svg_source_cannot_be_rasterized(svg_document: str) -> None:
    with pytest.raises(DecodeError):
        run(svg_document.encode("utf-8"), "png")


def test_garbage_source_raises_trace_error_for_vector_target() -> None:
    with pytest.raises(TraceError) as exc:
        run(b"\x00\x01\x02 not an image", "svg")
    assert exc.value.code == "TRACE_FAILED"


def test_raster_source_is_traced_to_svg(two_color_png: bytes) -> None:
    result = run(two_color_png, "svg")
    assert result.format is ImageFormat.SVG
    assert result.media_type == "image/svg+xml"
    assert b"<svg" in result.data
    assert b"<path" in result.data


def test_svg_source_is_reoptimized(svg_document: str) -> None:
    result = run(svg_document.encode("utf-8"), "svg", resize=(200, 100))
    text = result.data.decode("utf-8")
    assert result.mode == "vector"
    assert 'width="200"' in text
    assert 'height="100"' in text
    assert "exported by a drawing tool" not in text


def test_unsupported_format_is_an_encode_error(noise_png: bytes) -> None:
    with pytest.raises(UnsupportedFormatError) as exc:
        run(noise_png, "bmp")
    assert isinstance(exc.value, EncodeError)
    assert exc.value.code == "UNSUPPORTED_FORMAT"


def test_invalid_resize_is_rejected(noise_png: bytes) -> None:
    with pytest.raises(EncodeError) as exc:
        run(noise_png, "png", resize=(0, 10))
    assert exc.value.code == "INVALID_RESIZE"


def test_convert_returns_bytes(landscape_png: bytes) -> None:
    data = convert(landscape_png, "JPG", quality_percent=80, resize=(40, 40))
    output = decode(data)
    assert output.format == "JPEG"
    assert output.size == (40, 30)
