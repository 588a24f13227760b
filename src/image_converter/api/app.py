from __future__ import annotations

from fastapi import FastAPI

from ..config import AppConfig, load_config
from ..core import ConversionService
from ..settings import Settings, get_settings
from .routers import convert, health

API_TITLE = "Image Converter"
API_VERSION = "0.1.0"


def create_app(config: AppConfig | None = None, *, require_enabled: bool = True) -> FastAPI:
    config = config or _prepare_config(get_settings())
    if require_enabled and not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via configuration or environment.")

    app = FastAPI(title=API_TITLE, version=API_VERSION)
    app.state.config = config
    app.state.service = ConversionService(config)

    app.include_router(health.router)
    app.include_router(convert.router)
    return app


def _prepare_config(settings: Settings) -> AppConfig:
    config = load_config(settings.config_path)
    runtime = config.runtime
    if settings.enable_local_api is not None:
        runtime.enable_local_api = settings.enable_local_api
    if settings.output_dir is not None:
        runtime.output_dir = settings.output_dir
    if settings.max_file_size_mb is not None:
        runtime.max_file_size_mb = settings.max_file_size_mb
    return config


__all__ = ["API_TITLE", "API_VERSION", "create_app"]
