from __future__ import annotations

import re
from xml.parsers.expat import ExpatError

from scour import scour

from .config import VectorConfig
from .errors import EncodeError

SCOUR_ARGS: tuple[str, ...] = (
    "--quiet",
    "--enable-id-stripping",
    "--enable-comment-stripping",
    "--shorten-ids",
    "--remove-metadata",
    "--indent=none",
    "--no-line-breaks",
)

# Leading XML declaration, processing instructions, comments and doctype.
_PROLOG_RE = re.compile(
    r"""\s*(?:<\?.*?\?>|<!--.*?-->|<!DOCTYPE(?:[^>\[]|\[[^\]]*\])*>)""",
    re.DOTALL | re.IGNORECASE,
)
_ROOT_TAG_RE = re.compile(r"""\s*(<((?:[A-Za-z_][\w.-]*:)?svg)\b(?:[^>"']|"[^"]*"|'[^']*')*>)""")


def _attribute_pattern(name: str) -> re.Pattern[str]:
    return re.compile(rf"""(\s){name}\s*=\s*(?:"[^"]*"|'[^']*')""")


def _set_attribute(tag: str, tag_name: str, name: str, value: int) -> str:
    pattern = _attribute_pattern(name)
    if pattern.search(tag):
        return pattern.sub(lambda match: f'{match.group(1)}{name}="{value}"', tag, count=1)
    split = len(tag_name) + 1
    return f'{tag[:split]} {name}="{value}"{tag[split:]}'


def _skip_prolog(text: str) -> int:
    position = 0
    while True:
        match = _PROLOG_RE.match(text, position)
        if match is None:
            return position
        position = match.end()


def resize_document(text: str, width: int, height: int) -> str:
    """Set width/height on the root ``<svg>`` tag; viewBox and children are untouched."""

    match = _ROOT_TAG_RE.match(text, _skip_prolog(text))
    if match is None:
        raise EncodeError("Document has no <svg> root element", code="VECTOR_OPTIMIZE_FAILED")
    tag_name = match.group(2)
    tag = _set_attribute(match.group(1), tag_name, "width", width)
    tag = _set_attribute(tag, tag_name, "height", height)
    return text[: match.start(1)] + tag + text[match.end(1):]


def _scour_once(text: str, options: object) -> str:
    try:
        return scour.scourString(text, options)
    except (ExpatError, ValueError) as exc:
        raise EncodeError(f"SVG optimization failed: {exc}", code="VECTOR_OPTIMIZE_FAILED") from exc


def optimize_document(text: str, config: VectorConfig | None = None) -> str:
    config = config or VectorConfig()
    options = scour.parse_args(list(SCOUR_ARGS))
    current = _scour_once(text, options)
    for _ in range(config.max_passes - 1):
        candidate = _scour_once(current, options)
        if len(candidate) >= len(current):
            break
        current = candidate
    return current


def reoptimize(data: bytes, resize: tuple[int, int] | None = None, config: VectorConfig | None = None) -> bytes:
    text = data.decode("utf-8-sig", errors="replace")
    if resize:
        text = resize_document(text, *resize)
    return optimize_document(text, config).encode("utf-8")


__all__ = ["SCOUR_ARGS", "optimize_document", "reoptimize", "resize_document"]
