from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from ...config import AppConfig
from ...core import BatchSource, ConversionService, create_archive
from ...errors import ConversionError
from ...models import ConversionOptions, ConversionResult
from ...utils import size_within_limit
from ..dependencies import conversion_options, get_config, get_service
from ..executors import run_sync
from ..schemas import BatchError, BatchFailure

router = APIRouter(tags=["conversion"])


@router.post("/convert", summary="Convert a single image")
async def convert_image(
    image: UploadFile = File(...),
    options: ConversionOptions = Depends(conversion_options),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
) -> Response:
    content = await image.read()
    _enforce_size_limit(content, config)
    try:
        result = await run_sync(
            service.convert_bytes, content, options, source_name=image.filename or "upload"
        )
    except ConversionError as exc:
        raise HTTPException(status_code=400, detail=exc.code) from exc
    return Response(content=result.data, media_type=result.media_type, headers=_result_headers(result))


@router.post("/batch", summary="Convert multiple images into a ZIP archive")
async def batch_convert(
    images: List[UploadFile] = File(...),
    options: ConversionOptions = Depends(conversion_options),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
) -> Response:
    sources: list[BatchSource] = []
    for upload in images:
        content = await upload.read()
        _enforce_size_limit(content, config)
        sources.append(BatchSource(name=upload.filename or "upload", data=content))
    batch_result = await run_sync(service.batch_convert, sources, options)
    failures = [
        BatchFailure(name=item.name, code=item.error_code, message=str(item.error))
        for item in batch_result.failures
    ]
    if not batch_result.successes:
        error = BatchError(code="BATCH_FAILED", failures=failures)
        raise HTTPException(status_code=400, detail=error.model_dump())
    archive = await run_sync(create_archive, batch_result)
    headers = {
        "Content-Disposition": "attachment; filename=converted.zip",
        "X-Batch-Failures": str(len(failures)),
    }
    return Response(content=archive, media_type="application/zip", headers=headers)


def _result_headers(result: ConversionResult) -> dict[str, str]:
    headers = {"X-Encode-Attempts": str(result.attempts)}
    if result.quality is not None:
        headers["X-Output-Quality"] = str(result.quality)
    if result.converged is not None:
        headers["X-Size-Converged"] = "true" if result.converged else "false"
    return headers


def _enforce_size_limit(payload: bytes, config: AppConfig) -> None:
    if not size_within_limit(len(payload), config.runtime.max_file_size_mb):
        raise HTTPException(status_code=413, detail="SIZE_LIMIT")


__all__ = ["router"]
