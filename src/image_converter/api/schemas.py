from __future__ import annotations

from pydantic import BaseModel


class HealthStatus(BaseModel):
    status: str
    version: str


class BatchFailure(BaseModel):
    name: str
    code: str | None
    message: str


class BatchError(BaseModel):
    code: str
    failures: list[BatchFailure]


__all__ = ["BatchError", "BatchFailure", "HealthStatus"]
