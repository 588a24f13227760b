from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping


CONFIG_FILE = Path("config.toml")


@dataclass(slots=True)
class SearchConfig:
    """Tuning constants for the size-targeting quality search.

    Changing any of these changes how fast (and whether) the search lands in
    the acceptance window.
    """

    initial_quality: int = 95
    min_quality: int = 50
    max_quality: int = 95
    max_attempts: int = 20
    undershoot_margin_kb: float = 5.0
    step_down: int = 2
    step_up: int = 1

    def validate(self) -> None:
        if not 1 <= self.min_quality <= self.initial_quality <= self.max_quality <= 100:
            raise ValueError(
                "Search qualities must satisfy 1 <= min_quality <= initial_quality <= max_quality <= 100"
            )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.undershoot_margin_kb < 0:
            raise ValueError("undershoot_margin_kb must not be negative")
        if self.step_down < 1 or self.step_up < 1:
            raise ValueError("Quality steps must be at least 1")


@dataclass(slots=True)
class TraceConfig:
    colormode: str = "color"
    hierarchical: str = "stacked"
    mode: str = "spline"
    filter_speckle: int = 4
    color_precision: int = 6
    layer_difference: int = 16
    corner_threshold: int = 60
    length_threshold: float = 4.0
    max_iterations: int = 10
    splice_threshold: int = 45
    path_precision: int = 3

    def as_kwargs(self) -> dict[str, object]:
        return {
            "colormode": self.colormode,
            "hierarchical": self.hierarchical,
            "mode": self.mode,
            "filter_speckle": self.filter_speckle,
            "color_precision": self.color_precision,
            "layer_difference": self.layer_difference,
            "corner_threshold": self.corner_threshold,
            "length_threshold": self.length_threshold,
            "max_iterations": self.max_iterations,
            "splice_threshold": self.splice_threshold,
            "path_precision": self.path_precision,
        }


@dataclass(slots=True)
class VectorConfig:
    max_passes: int = 10


@dataclass(slots=True)
class EngineConfig:
    background: tuple[int, int, int] = (255, 255, 255)
    search: SearchConfig = field(default_factory=SearchConfig)
    trace: TraceConfig = field(default_factory=TraceConfig)
    vector: VectorConfig = field(default_factory=VectorConfig)


@dataclass(slots=True)
class BatchConfig:
    default_parallelism: int = 4


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("runs")
    log_file: str = "log.jsonl"
    summary_csv: str = "summary.csv"
    max_file_size_mb: int = 25
    enable_local_api: bool = False
    enable_run_log: bool = True
    batch: BatchConfig = field(default_factory=BatchConfig)


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    formats: tuple[str, ...] = ("jpeg", "png", "webp", "tiff", "svg")
    api: APIConfig = field(default_factory=APIConfig)

    @property
    def allowed_formats(self) -> tuple[str, ...]:
        return self.formats


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(data: Mapping[str, object] | None, key: str) -> Mapping[str, object] | None:
    if not data:
        return None
    value = data.get(key)
    return value if isinstance(value, Mapping) else None


def _build_search(data: Mapping[str, object] | None) -> SearchConfig:
    if not data:
        return SearchConfig()
    search = SearchConfig(
        initial_quality=int(data.get("initial_quality", 95)),
        min_quality=int(data.get("min_quality", 50)),
        max_quality=int(data.get("max_quality", 95)),
        max_attempts=int(data.get("max_attempts", 20)),
        undershoot_margin_kb=float(data.get("undershoot_margin_kb", 5.0)),
        step_down=int(data.get("step_down", 2)),
        step_up=int(data.get("step_up", 1)),
    )
    search.validate()
    return search


def _build_trace(data: Mapping[str, object] | None) -> TraceConfig:
    if not data:
        return TraceConfig()
    defaults = TraceConfig()
    return TraceConfig(
        colormode=str(data.get("colormode", defaults.colormode)),
        hierarchical=str(data.get("hierarchical", defaults.hierarchical)),
        mode=str(data.get("mode", defaults.mode)),
        filter_speckle=int(data.get("filter_speckle", defaults.filter_speckle)),
        color_precision=int(data.get("color_precision", defaults.color_precision)),
        layer_difference=int(data.get("layer_difference", defaults.layer_difference)),
        corner_threshold=int(data.get("corner_threshold", defaults.corner_threshold)),
        length_threshold=float(data.get("length_threshold", defaults.length_threshold)),
        max_iterations=int(data.get("max_iterations", defaults.max_iterations)),
        splice_threshold=int(data.get("splice_threshold", defaults.splice_threshold)),
        path_precision=int(data.get("path_precision", defaults.path_precision)),
    )


def _build_vector(data: Mapping[str, object] | None) -> VectorConfig:
    if not data:
        return VectorConfig()
    return VectorConfig(max_passes=max(1, int(data.get("max_passes", 10))))


def _build_background(value: object | None) -> tuple[int, int, int]:
    if value is None:
        return (255, 255, 255)
    if isinstance(value, Iterable) and not isinstance(value, str):
        channels = tuple(int(item) for item in value)
        if len(channels) == 3 and all(0 <= channel <= 255 for channel in channels):
            return channels  # type: ignore[return-value]
    raise TypeError(f"Unsupported background configuration: {value!r}")


def _build_engine(data: Mapping[str, object] | None) -> EngineConfig:
    if not data:
        return EngineConfig()
    return EngineConfig(
        background=_build_background(data.get("background")),
        search=_build_search(_section(data, "search")),
        trace=_build_trace(_section(data, "trace")),
        vector=_build_vector(_section(data, "vector")),
    )


def _build_batch(data: Mapping[str, object] | None) -> BatchConfig:
    if not data:
        return BatchConfig()
    return BatchConfig(default_parallelism=max(1, int(data.get("default_parallelism", 4))))


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "runs"))),
        log_file=str(data.get("log_file", "log.jsonl")),
        summary_csv=str(data.get("summary_csv", "summary.csv")),
        max_file_size_mb=int(data.get("max_file_size_mb", 25)),
        enable_local_api=bool(data.get("enable_local_api", False)),
        enable_run_log=bool(data.get("enable_run_log", True)),
        batch=_build_batch(_section(data, "batch")),
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def _tuple_of_strings(value: object | None, default: Iterable[str]) -> tuple[str, ...]:
    if not value:
        return tuple(default)
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value)
    raise TypeError(f"Unsupported formats configuration: {value!r}")


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    formats_data = raw.get("formats") if isinstance(raw, Mapping) else None
    runtime = _build_runtime(_section(raw, "runtime"))
    engine = _build_engine(_section(raw, "engine"))
    formats = _tuple_of_strings(formats_data if isinstance(formats_data, Iterable) else None, AppConfig().formats)
    api = _build_api(_section(raw, "api"))
    return AppConfig(runtime=runtime, engine=engine, formats=formats, api=api)


def dump_config(config: AppConfig) -> str:
    search = config.engine.search
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "log_file": config.runtime.log_file,
            "summary_csv": config.runtime.summary_csv,
            "max_file_size_mb": config.runtime.max_file_size_mb,
            "enable_local_api": config.runtime.enable_local_api,
            "enable_run_log": config.runtime.enable_run_log,
            "batch": {
                "default_parallelism": config.runtime.batch.default_parallelism,
            },
        },
        "engine": {
            "background": list(config.engine.background),
            "search": {
                "initial_quality": search.initial_quality,
                "min_quality": search.min_quality,
                "max_quality": search.max_quality,
                "max_attempts": search.max_attempts,
                "undershoot_margin_kb": search.undershoot_margin_kb,
                "step_down": search.step_down,
                "step_up": search.step_up,
            },
            "trace": config.engine.trace.as_kwargs(),
            "vector": {"max_passes": config.engine.vector.max_passes},
        },
        "formats": list(config.allowed_formats),
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)


__all__ = [
    "APIConfig",
    "AppConfig",
    "BatchConfig",
    "EngineConfig",
    "RuntimeConfig",
    "SearchConfig",
    "TraceConfig",
    "VectorConfig",
    "dump_config",
    "load_config",
]
