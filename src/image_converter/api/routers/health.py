from __future__ import annotations

from fastapi import APIRouter, Request

from ..schemas import HealthStatus

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health(request: Request) -> HealthStatus:
    return HealthStatus(status="ok", version=request.app.version)


__all__ = ["router"]
