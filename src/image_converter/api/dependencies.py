"""FastAPI dependency providers: services plus the shared conversion form fields."""

from __future__ import annotations

from fastapi import Form, HTTPException, Request

from ..config import AppConfig
from ..core import ConversionService
from ..models import ConversionOptions


def get_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise HTTPException(status_code=503, detail="CONFIG_UNAVAILABLE")
    return config


def get_service(request: Request) -> ConversionService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="SERVICE_UNAVAILABLE")
    return service


def conversion_options(
    target_format: str = Form(..., alias="format"),
    target_kb: str | None = Form(None, alias="targetKB"),
    percent: str | None = Form(None),
    width: str | None = Form(None),
    height: str | None = Form(None),
) -> ConversionOptions:
    """Build options from the text form fields; resize needs both width and height."""

    resize_width = _parse_number(width, int)
    resize_height = _parse_number(height, int)
    return ConversionOptions(
        target_format=target_format,
        target_size_kb=_parse_number(target_kb, float),
        quality_percent=_parse_number(percent, int),
        resize=(resize_width, resize_height) if resize_width and resize_height else None,
    )


def _parse_number(value: str | None, kind: type):  # type: ignore[no-untyped-def]
    if value is None or not value.strip():
        return None
    try:
        return kind(value.strip())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="INVALID_PARAMETER") from exc


__all__ = ["conversion_options", "get_config", "get_service"]
