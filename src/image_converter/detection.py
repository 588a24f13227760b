from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from xml.etree import ElementTree

from PIL import Image, UnidentifiedImageError

from .errors import UnsupportedFormatError


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    TIFF = "tiff"
    SVG = "svg"

    @property
    def extension(self) -> str:
        return EXTENSIONS[self]

    @property
    def media_type(self) -> str:
        return MEDIA_TYPES[self]

    @property
    def is_vector(self) -> bool:
        return self is ImageFormat.SVG


class SourceKind(str, Enum):
    VECTOR = "vector"
    RASTER = "raster"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class DetectionResult:
    kind: SourceKind
    format_name: str | None = None

    @property
    def is_vector(self) -> bool:
        return self.kind is SourceKind.VECTOR


FORMAT_ALIASES: dict[str, ImageFormat] = {
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "png": ImageFormat.PNG,
    "webp": ImageFormat.WEBP,
    "tif": ImageFormat.TIFF,
    "tiff": ImageFormat.TIFF,
    "svg": ImageFormat.SVG,
    "svg+xml": ImageFormat.SVG,
}

EXTENSIONS: dict[ImageFormat, str] = {
    ImageFormat.JPEG: ".jpg",
    ImageFormat.PNG: ".png",
    ImageFormat.WEBP: ".webp",
    ImageFormat.TIFF: ".tiff",
    ImageFormat.SVG: ".svg",
}

MEDIA_TYPES: dict[ImageFormat, str] = {
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.WEBP: "image/webp",
    ImageFormat.TIFF: "image/tiff",
    ImageFormat.SVG: "image/svg+xml",
}

SVG_SNIFF_BYTES = 4096
_SVG_TAG_RE = re.compile(rb"<(?:[A-Za-z_][\w.-]*:)?svg[\s>/]")


def normalize_format(name: str | ImageFormat) -> ImageFormat:
    if isinstance(name, ImageFormat):
        return name
    key = str(name).strip().lower()
    if key.startswith("image/"):
        key = key[len("image/"):]
    try:
        return FORMAT_ALIASES[key]
    except KeyError:
        raise UnsupportedFormatError(f"Unsupported target format: {name!r}") from None


def looks_like_svg(data: bytes) -> bool:
    head = data[:SVG_SNIFF_BYTES].lstrip(b"\xef\xbb\xbf \t\r\n")
    if not head.startswith(b"<") or b"\x00" in head:
        return False
    if not _SVG_TAG_RE.search(head):
        return False
    try:
        root = ElementTree.fromstring(data)
    except ElementTree.ParseError:
        return False
    return root.tag.rsplit("}", 1)[-1] == "svg"


def sniff_raster(data: bytes) -> str | None:
    try:
        with Image.open(BytesIO(data)) as image:
            return (image.format or "").lower() or None
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError):
        return None


def detect_source(data: bytes) -> DetectionResult:
    if looks_like_svg(data):
        return DetectionResult(kind=SourceKind.VECTOR, format_name="svg")
    format_name = sniff_raster(data)
    if format_name is None:
        return DetectionResult(kind=SourceKind.UNKNOWN)
    return DetectionResult(kind=SourceKind.RASTER, format_name=format_name)


__all__ = [
    "DetectionResult",
    "ImageFormat",
    "SourceKind",
    "detect_source",
    "looks_like_svg",
    "normalize_format",
    "sniff_raster",
]
