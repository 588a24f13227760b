from __future__ import annotations

import random
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from image_converter.config import AppConfig, RuntimeConfig

SAMPLE_SVG = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<!-- exported by a drawing tool -->\n"
    '<svg xmlns="http://www.w3.org/2000/svg" width="400" height="300" viewBox="0 0 400 300">\n'
    "  <metadata>tool metadata</metadata>\n"
    '  <rect id="background-rectangle" x="0" y="0" width="400" height="300" fill="#ff0000"/>\n'
    '  <circle cx="200" cy="150" r="80" fill="#0000ff" stroke="#000000" stroke-width="3"/>\n'
    "</svg>\n"
)


def encode(image: Image.Image, fmt: str = "PNG", **params: object) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=fmt, **params)
    return buffer.getvalue()


def noise_image(width: int, height: int, seed: int = 7) -> Image.Image:
    rng = random.Random(seed)
    return Image.frombytes("RGB", (width, height), rng.randbytes(width * height * 3))


def decode(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


@pytest.fixture
def noise_png() -> bytes:
    return encode(noise_image(256, 256))


@pytest.fixture
def transparent_png() -> bytes:
    image = Image.new("RGBA", (40, 30), (0, 0, 0, 0))
    return encode(image)


@pytest.fixture
def two_color_png() -> bytes:
    image = Image.new("RGB", (32, 32), (255, 255, 255))
    for x in range(8, 24):
        for y in range(8, 24):
            image.putpixel((x, y), (200, 20, 20))
    return encode(image)


@pytest.fixture
def landscape_png() -> bytes:
    return encode(Image.new("RGB", (400, 300), (30, 120, 200)))


@pytest.fixture
def svg_document() -> str:
    return SAMPLE_SVG


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    runtime = RuntimeConfig(output_dir=tmp_path / "runs", enable_local_api=True)
    runtime.batch.default_parallelism = 2
    return AppConfig(runtime=runtime)
