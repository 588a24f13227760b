from __future__ import annotations

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .detection import ImageFormat
from .errors import DecodeError, EncodeError

PIL_FORMATS: dict[ImageFormat, str] = {
    ImageFormat.JPEG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.WEBP: "WEBP",
    ImageFormat.TIFF: "TIFF",
}

# Formats whose encoders have no per-pixel transparency.
ALPHA_INCAPABLE = frozenset({ImageFormat.JPEG, ImageFormat.TIFF})

# Formats whose encoders honour a quality setting.
QUALITY_AWARE = frozenset({ImageFormat.JPEG, ImageFormat.WEBP})

_JPEG_MODES = frozenset({"L", "RGB", "CMYK"})
_WEBP_MODES = frozenset({"RGB", "RGBA"})
_PNG_MODES = frozenset({"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"})


def decode_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Source is not a readable raster image: {exc}") from exc
    return image


def fit_inside(image: Image.Image, width: int, height: int) -> Image.Image:
    """Shrink ``image`` to fit within ``width`` x ``height``; never enlarges."""

    resized = image.copy()
    resized.thumbnail((width, height), Image.Resampling.LANCZOS)
    return resized


def has_alpha(image: Image.Image) -> bool:
    return image.has_transparency_data


def flatten(image: Image.Image, background: tuple[int, int, int] = (255, 255, 255)) -> Image.Image:
    rgba = image.convert("RGBA")
    canvas = Image.new("RGB", rgba.size, background)
    canvas.paste(rgba, mask=rgba.getchannel("A"))
    return canvas


def prepare_for_format(
    image: Image.Image,
    fmt: ImageFormat,
    background: tuple[int, int, int] = (255, 255, 255),
) -> Image.Image:
    if fmt in ALPHA_INCAPABLE and has_alpha(image):
        image = flatten(image, background)
    if fmt is ImageFormat.JPEG and image.mode not in _JPEG_MODES:
        return image.convert("RGB")
    if fmt is ImageFormat.WEBP and image.mode not in _WEBP_MODES:
        return image.convert("RGBA" if has_alpha(image) else "RGB")
    if fmt is ImageFormat.PNG and image.mode not in _PNG_MODES:
        return image.convert("RGBA" if has_alpha(image) else "RGB")
    return image


def encode_image(image: Image.Image, fmt: ImageFormat, quality: int | None = None) -> bytes:
    pil_format = PIL_FORMATS.get(fmt)
    if pil_format is None:
        raise EncodeError(f"{fmt.value} is not a raster format")
    params: dict[str, object] = {}
    if quality is not None and fmt in QUALITY_AWARE:
        params["quality"] = quality
    buffer = BytesIO()
    try:
        image.save(buffer, format=pil_format, **params)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"{pil_format} encoder rejected the image: {exc}") from exc
    return buffer.getvalue()


__all__ = [
    "ALPHA_INCAPABLE",
    "PIL_FORMATS",
    "QUALITY_AWARE",
    "decode_image",
    "encode_image",
    "fit_inside",
    "flatten",
    "has_alpha",
    "prepare_for_format",
]
