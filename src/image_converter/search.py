"""Size-targeting quality search for lossy raster encoders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .config import SearchConfig

Encoder = Callable[[int], bytes]


@dataclass(slots=True)
class EncodeAttempt:
    quality: int
    size_bytes: int

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024


@dataclass(slots=True)
class SearchOutcome:
    data: bytes
    quality: int
    attempts: list[EncodeAttempt]
    converged: bool

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024


def within_window(size_kb: float, target_kb: float, margin_kb: float) -> bool:
    """Return True when ``size_kb`` lies in ``(target_kb - margin_kb, target_kb]``."""

    return target_kb - margin_kb < size_kb <= target_kb


def next_quality(quality: int, size_kb: float, target_kb: float, config: SearchConfig) -> int:
    if size_kb > target_kb:
        return max(config.min_quality, quality - config.step_down)
    return min(config.max_quality, quality + config.step_up)


def search_quality(encode: Encoder, target_kb: float, config: SearchConfig | None = None) -> SearchOutcome:
    """Hill-climb the encoder quality until the output fits the acceptance window.

    Oversized output steps quality down by ``step_down``; output undershooting
    the window steps it up by ``step_up``. The search stops on the first of:

    * the output size lands in the window,
    * ``max_attempts`` encode calls have been made,
    * quality reaches ``min_quality`` or ``max_quality`` (saturation).

    The result is best effort. Callers that need the size to be exact must
    check ``outcome.converged`` or measure the returned bytes.
    """

    config = config or SearchConfig()
    quality = config.initial_quality
    data = encode(quality)
    attempts = [EncodeAttempt(quality=quality, size_bytes=len(data))]

    while True:
        size_kb = len(data) / 1024
        if within_window(size_kb, target_kb, config.undershoot_margin_kb):
            break
        if len(attempts) >= config.max_attempts:
            break
        candidate = next_quality(quality, size_kb, target_kb, config)
        if candidate == quality:
            # already pinned at a bound, re-encoding would repeat the last output
            break
        quality = candidate
        data = encode(quality)
        attempts.append(EncodeAttempt(quality=quality, size_bytes=len(data)))
        if quality in (config.min_quality, config.max_quality):
            break

    converged = within_window(len(data) / 1024, target_kb, config.undershoot_margin_kb)
    return SearchOutcome(data=data, quality=quality, attempts=attempts, converged=converged)


__all__ = [
    "EncodeAttempt",
    "Encoder",
    "SearchOutcome",
    "next_quality",
    "search_quality",
    "within_window",
]
