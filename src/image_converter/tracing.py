"""vtracer integration for raster-to-SVG conversion."""

from __future__ import annotations

from io import BytesIO

import vtracer

from .config import TraceConfig
from .errors import DecodeError, TraceError
from .raster import decode_image


def to_png_blob(data: bytes) -> bytes:
    """Re-encode any readable raster buffer as an RGBA PNG for the tracer."""

    try:
        image = decode_image(data)
    except DecodeError as exc:
        raise TraceError(f"Cannot trace source: {exc}") from exc
    buffer = BytesIO()
    image.convert("RGBA").save(buffer, format="PNG")
    return buffer.getvalue()


def trace_raster(data: bytes, config: TraceConfig | None = None) -> bytes:
    config = config or TraceConfig()
    blob = to_png_blob(data)
    try:
        svg = vtracer.convert_raw_image_to_svg(blob, img_format="png", **config.as_kwargs())
    except Exception as exc:  # vtracer raises plain exceptions from its Rust core
        raise TraceError(f"Tracing failed: {exc}") from exc
    if not svg or "<svg" not in svg:
        raise TraceError("Tracer returned no SVG markup")
    return svg.encode("utf-8")


__all__ = ["to_png_blob", "trace_raster"]
