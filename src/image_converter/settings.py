"""Environment overrides applied on top of ``config.toml`` (prefix ``IMC_``)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_CONFIG_PATH = Path("config.toml")
ENV_PREFIX = "IMC_"


@dataclass(frozen=True, slots=True)
class Settings:
    config_path: Path = DEFAULT_CONFIG_PATH
    enable_local_api: bool | None = None
    output_dir: Path | None = None
    max_file_size_mb: int | None = None


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return None


def _parse_int(value: str | None) -> int | None:
    if value is None or not value.strip().isdigit():
        return None
    return int(value.strip())


def _env(name: str) -> str | None:
    return os.getenv(f"{ENV_PREFIX}{name}")


def _read_settings() -> Settings:
    config_env = _env("CONFIG_PATH")
    output_env = _env("OUTPUT_DIR")
    return Settings(
        config_path=Path(config_env) if config_env else DEFAULT_CONFIG_PATH,
        enable_local_api=_parse_bool(_env("ENABLE_LOCAL_API")),
        output_dir=Path(output_env) if output_env else None,
        max_file_size_mb=_parse_int(_env("MAX_FILE_SIZE_MB")),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return _read_settings()


__all__ = ["DEFAULT_CONFIG_PATH", "ENV_PREFIX", "Settings", "get_settings"]
