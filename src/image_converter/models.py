"""Domain models for image conversion requests and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .detection import ImageFormat, normalize_format
from .errors import ConversionError, EncodeError
from .logging import BatchSummary

ConversionMode = Literal["target_size", "percent", "default", "vector"]


def _positive_or_none(value: float | int | None) -> float | None:
    if value is None or value <= 0:
        return None
    return float(value)


def _resize_pair(resize: tuple[int, int] | None) -> tuple[int, int] | None:
    if resize is None:
        return None
    try:
        width, height = (int(item) for item in resize)
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"Invalid resize dimensions: {resize!r}", code="INVALID_RESIZE") from exc
    if width <= 0 or height <= 0:
        raise EncodeError(f"Resize dimensions must be positive: {resize!r}", code="INVALID_RESIZE")
    return (width, height)


@dataclass(frozen=True, slots=True)
class ConversionRequest:
    """A single, self-contained conversion of one source buffer."""

    source: bytes
    target_format: ImageFormat
    target_size_kb: float | None = None
    quality_percent: int | None = None
    resize: tuple[int, int] | None = None

    @classmethod
    def build(
        cls,
        source: bytes,
        target_format: str | ImageFormat,
        target_size_kb: float | None = None,
        quality_percent: int | None = None,
        resize: tuple[int, int] | None = None,
    ) -> "ConversionRequest":
        percent = int(quality_percent) if quality_percent else None
        return cls(
            source=source,
            target_format=normalize_format(target_format),
            target_size_kb=_positive_or_none(target_size_kb),
            quality_percent=percent,
            resize=_resize_pair(resize),
        )

    @property
    def mode(self) -> ConversionMode:
        if self.target_format.is_vector:
            return "vector"
        if self.target_size_kb is not None:
            return "target_size"
        if self.quality_percent is not None:
            return "percent"
        return "default"


@dataclass(slots=True)
class ConversionOptions:
    """Caller-level parameters shared by every file of a request."""

    target_format: str | ImageFormat = ImageFormat.JPEG
    target_size_kb: float | None = None
    quality_percent: int | None = None
    resize: tuple[int, int] | None = None

    def to_request(self, source: bytes) -> ConversionRequest:
        return ConversionRequest.build(
            source,
            self.target_format,
            target_size_kb=self.target_size_kb,
            quality_percent=self.quality_percent,
            resize=self.resize,
        )


@dataclass(slots=True)
class ConversionResult:
    """Output of one conversion plus what the engine did to produce it."""

    data: bytes
    format: ImageFormat
    mode: ConversionMode
    quality: int | None = None
    attempts: int = 1
    converged: bool | None = None
    width: int | None = None
    height: int | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024

    @property
    def media_type(self) -> str:
        return self.format.media_type


@dataclass(slots=True)
class BatchItem:
    name: str
    result: ConversionResult | None = None
    error: ConversionError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None


@dataclass(slots=True)
class BatchConversionResult:
    """Aggregate results for a batch conversion request."""

    items: list[BatchItem]
    summary: BatchSummary = field(default_factory=BatchSummary)

    @property
    def successes(self) -> list[BatchItem]:
        return [item for item in self.items if item.ok]

    @property
    def failures(self) -> list[BatchItem]:
        return [item for item in self.items if not item.ok]


__all__ = [
    "BatchConversionResult",
    "BatchItem",
    "ConversionMode",
    "ConversionOptions",
    "ConversionRequest",
    "ConversionResult",
]
