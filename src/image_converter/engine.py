"""Conversion engine: routes each request to the vector, tracing or raster path."""

from __future__ import annotations

from functools import partial

from PIL import Image

from .config import EngineConfig
from .detection import DetectionResult, ImageFormat, detect_source
from .models import ConversionRequest, ConversionResult
from .raster import QUALITY_AWARE, decode_image, encode_image, fit_inside, prepare_for_format
from .search import search_quality, within_window
from .tracing import trace_raster
from .vector import reoptimize


def clamp_percent(percent: int) -> int:
    return max(1, min(100, int(percent)))


class ConversionEngine:
    """Stateless converter; one instance may serve concurrent requests."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()

    @property
    def config(self) -> EngineConfig:
        return self._config

    def run(self, request: ConversionRequest, detection: DetectionResult | None = None) -> ConversionResult:
        if request.target_format is ImageFormat.SVG:
            if detection is None:
                detection = detect_source(request.source)
            if detection.is_vector:
                return self._reoptimize_vector(request)
            return self._trace(request)
        return self._encode_raster(request)

    def _reoptimize_vector(self, request: ConversionRequest) -> ConversionResult:
        data = reoptimize(request.source, request.resize, self._config.vector)
        width, height = request.resize or (None, None)
        return ConversionResult(data=data, format=ImageFormat.SVG, mode="vector", width=width, height=height)

    def _trace(self, request: ConversionRequest) -> ConversionResult:
        data = trace_raster(request.source, self._config.trace)
        return ConversionResult(data=data, format=ImageFormat.SVG, mode="vector")

    def _encode_raster(self, request: ConversionRequest) -> ConversionResult:
        fmt = request.target_format
        image = decode_image(request.source)
        if request.resize:
            image = fit_inside(image, *request.resize)
        image = prepare_for_format(image, fmt, self._config.background)

        if request.target_size_kb is not None:
            return self._search(image, fmt, request.target_size_kb)

        quality = clamp_percent(request.quality_percent) if request.quality_percent is not None else None
        data = encode_image(image, fmt, quality)
        return ConversionResult(
            data=data,
            format=fmt,
            mode=request.mode,
            quality=quality if fmt in QUALITY_AWARE else None,
            width=image.width,
            height=image.height,
        )

    def _search(self, image: Image.Image, fmt: ImageFormat, target_kb: float) -> ConversionResult:
        search = self._config.search
        if fmt not in QUALITY_AWARE:
            # quality has no effect on this encoder; every attempt would be identical
            data = encode_image(image, fmt)
            return ConversionResult(
                data=data,
                format=fmt,
                mode="target_size",
                converged=within_window(len(data) / 1024, target_kb, search.undershoot_margin_kb),
                width=image.width,
                height=image.height,
            )
        outcome = search_quality(partial(encode_image, image, fmt), target_kb, search)
        return ConversionResult(
            data=outcome.data,
            format=fmt,
            mode="target_size",
            quality=outcome.quality,
            attempts=len(outcome.attempts),
            converged=outcome.converged,
            width=image.width,
            height=image.height,
        )


def convert(
    source: bytes,
    target_format: str | ImageFormat,
    target_size_kb: float | None = None,
    quality_percent: int | None = None,
    resize: tuple[int, int] | None = None,
    *,
    config: EngineConfig | None = None,
) -> bytes:
    """Convert ``source`` to ``target_format`` and return the output bytes.

    Raises:
        DecodeError: the source is not a readable image and the target is raster.
        EncodeError: the encoder rejected the image or its parameters.
        TraceError: raster-to-vector tracing failed.
    """

    request = ConversionRequest.build(
        source,
        target_format,
        target_size_kb=target_size_kb,
        quality_percent=quality_percent,
        resize=resize,
    )
    return ConversionEngine(config).run(request).data


__all__ = ["ConversionEngine", "clamp_percent", "convert"]
