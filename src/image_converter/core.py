from __future__ import annotations

import concurrent.futures
import csv
import json
import time
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Sequence
from zipfile import ZIP_DEFLATED, ZipFile

from .config import AppConfig
from .detection import DetectionResult, ImageFormat, detect_source
from .engine import ConversionEngine
from .errors import ConversionError, UnsupportedFormatError
from .logging import BatchSummary, RunLogEntry, RunLogger, StageTimings, write_summary_csv
from .models import (
    BatchConversionResult,
    BatchItem,
    ConversionOptions,
    ConversionRequest,
    ConversionResult,
)
from .utils import generate_run_id, iter_files, output_name

FAILURES_ENTRY = "failures.json"


@dataclass(slots=True)
class BatchSource:
    name: str
    data: bytes


class ConversionService:
    def __init__(self, config: AppConfig, engine: ConversionEngine | None = None) -> None:
        self._config = config
        self._engine = engine or ConversionEngine(config.engine)
        self._logger = RunLogger(config.runtime.output_dir / config.runtime.log_file)

    @property
    def config(self) -> AppConfig:
        return self._config

    def convert_bytes(
        self,
        data: bytes,
        options: ConversionOptions,
        *,
        source_name: str = "upload",
        run_id: str | None = None,
    ) -> ConversionResult:
        run_id = run_id or generate_run_id()
        timings = StageTimings()
        try:
            request = self._build_request(data, options)
            detection = self._detect_source(data, timings)
            result = self._run_engine(request, detection, timings)
        except ConversionError as exc:
            self._log_failure(run_id, source_name, data, options, exc, timings)
            raise
        self._log_success(run_id, source_name, data, result, timings)
        return result

    def convert_file(self, path: Path, options: ConversionOptions) -> ConversionResult:
        if not path.is_file():
            raise ConversionError(f"Source file does not exist: {path}", code="NOT_FOUND")
        return self.convert_bytes(path.read_bytes(), options, source_name=str(path))

    def _build_request(self, data: bytes, options: ConversionOptions) -> ConversionRequest:
        request = options.to_request(data)
        if request.target_format.value not in self._config.allowed_formats:
            raise UnsupportedFormatError(f"Target format disabled by configuration: {request.target_format.value}")
        return request

    def _detect_source(self, data: bytes, timings: StageTimings) -> DetectionResult:
        detect_start = time.perf_counter()
        detection = detect_source(data)
        timings.detect_ms = (time.perf_counter() - detect_start) * 1000
        return detection

    def _run_engine(
        self, request: ConversionRequest, detection: DetectionResult, timings: StageTimings
    ) -> ConversionResult:
        convert_start = time.perf_counter()
        try:
            return self._engine.run(request, detection)
        finally:
            timings.convert_ms = (time.perf_counter() - convert_start) * 1000

    def _log_success(
        self, run_id: str, source_name: str, data: bytes, result: ConversionResult, timings: StageTimings
    ) -> None:
        if not self._config.runtime.enable_run_log:
            return
        self._logger.append(
            RunLogEntry(
                run_id=run_id,
                source=source_name,
                status="success",
                target_format=result.format.value,
                mode=result.mode,
                error_code=None,
                input_bytes=len(data),
                output_bytes=result.size_bytes,
                quality=result.quality,
                attempts=result.attempts,
                timings=timings,
            )
        )

    def _log_failure(
        self,
        run_id: str,
        source_name: str,
        data: bytes,
        options: ConversionOptions,
        exc: ConversionError,
        timings: StageTimings,
    ) -> None:
        if not self._config.runtime.enable_run_log:
            return
        target = options.target_format
        self._logger.append(
            RunLogEntry(
                run_id=run_id,
                source=source_name,
                status="failure",
                target_format=target.value if isinstance(target, ImageFormat) else str(target),
                mode="unknown",
                error_code=exc.code,
                input_bytes=len(data),
                output_bytes=0,
                quality=None,
                attempts=0,
                timings=timings,
            )
        )

    def batch_convert(
        self,
        sources: Sequence[BatchSource],
        options: ConversionOptions,
        *,
        parallelism: int | None = None,
    ) -> BatchConversionResult:
        """Convert every source independently; one failure never aborts the rest."""

        batch_id = generate_run_id("batch")
        summary = BatchSummary(total=len(sources))
        parallelism = max(1, parallelism or self._config.runtime.batch.default_parallelism)
        if parallelism == 1 or len(sources) <= 1:
            items = self._run_sequential_batch(sources, options, batch_id)
        else:
            items = self._run_parallel_batch(sources, options, batch_id, parallelism)

        for item in items:
            if item.ok:
                summary.successes += 1
            else:
                summary.record_failure(item.error_code or "UNKNOWN")
        if sources and self._config.runtime.enable_run_log:
            self._write_batch_summary(batch_id, summary)
        return BatchConversionResult(items=items, summary=summary)

    def batch_convert_paths(
        self,
        paths: Sequence[Path],
        options: ConversionOptions,
        *,
        parallelism: int | None = None,
    ) -> BatchConversionResult:
        sources = [BatchSource(name=path.name, data=path.read_bytes()) for path in iter_files(paths)]
        return self.batch_convert(sources, options, parallelism=parallelism)

    def _convert_item(self, source: BatchSource, options: ConversionOptions, batch_id: str) -> BatchItem:
        try:
            result = self.convert_bytes(source.data, options, source_name=source.name, run_id=batch_id)
        except ConversionError as exc:
            return BatchItem(name=source.name, error=exc)
        return BatchItem(name=source.name, result=result)

    def _run_sequential_batch(
        self, sources: Sequence[BatchSource], options: ConversionOptions, batch_id: str
    ) -> list[BatchItem]:
        return [self._convert_item(source, options, batch_id) for source in sources]

    def _run_parallel_batch(
        self, sources: Sequence[BatchSource], options: ConversionOptions, batch_id: str, parallelism: int
    ) -> list[BatchItem]:
        with concurrent.futures.ThreadPoolExecutor(max_workers=parallelism) as executor:
            futures = [executor.submit(self._convert_item, source, options, batch_id) for source in sources]
            return [future.result() for future in futures]

    def _write_batch_summary(self, batch_id: str, summary: BatchSummary) -> None:
        summary_path = self._config.runtime.output_dir / self._config.runtime.summary_csv
        default_header = [
            "batch_id",
            "timestamp",
            "total",
            "successes",
            "failures",
            "errors",
        ]
        header = default_header
        rows: list[list[str]] = []
        if summary_path.exists():
            with summary_path.open("r", encoding="utf-8", newline="") as handle:
                reader = list(csv.reader(handle))
            if reader:
                header = reader[0]
                rows = reader[1:]
        rows.append(summary.as_row(batch_id))
        write_summary_csv(summary_path, header, rows)


def create_archive(batch: BatchConversionResult) -> bytes:
    """Package successful batch outputs into a ZIP; failures go to ``failures.json``."""

    buffer = BytesIO()
    taken: set[str] = {FAILURES_ENTRY}
    with ZipFile(buffer, "w", compression=ZIP_DEFLATED) as archive:
        for item in batch.successes:
            if item.result is None:
                continue
            name = output_name(item.name, item.result.format.extension, taken)
            archive.writestr(name, item.result.data)
        failures = [
            {"name": item.name, "code": item.error_code, "message": str(item.error)}
            for item in batch.failures
        ]
        if failures:
            archive.writestr(FAILURES_ENTRY, json.dumps(failures, indent=2))
    return buffer.getvalue()


__all__ = [
    "BatchSource",
    "ConversionService",
    "create_archive",
]
