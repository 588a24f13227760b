import csv
import json
import time
import zipfile
from io import BytesIO
from pathlib import Path

import pytest

from conftest import decode
from image_converter.config import AppConfig
from image_converter.core import FAILURES_ENTRY, BatchSource, ConversionService, create_archive
from image_converter.detection import DetectionResult, detect_source
from image_converter.errors import ConversionError, DecodeError, UnsupportedFormatError
from image_converter.models import ConversionOptions


def read_log(config: AppConfig) -> list[dict]:
    path = config.runtime.output_dir / config.runtime.log_file
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_convert_bytes_logs_success(app_config: AppConfig, landscape_png: bytes) -> None:
    service = ConversionService(app_config)
    result = service.convert_bytes(landscape_png, ConversionOptions(target_format="jpg"), source_name="a.png")
    assert decode(result.data).format == "JPEG"
    entries = read_log(app_config)
    assert len(entries) == 1
    assert entries[0]["status"] == "success"
    assert entries[0]["source"] == "a.png"
    assert entries[0]["target_format"] == "jpeg"
    assert entries[0]["output_bytes"] == result.size_bytes


def test_convert_bytes_logs_failure_and_reraises(app_config: AppConfig) -> None:
    service = ConversionService(app_config)
    with pytest.raises(DecodeError):
        service.convert_bytes(b"junk", ConversionOptions(target_format="png"))
    entries = read_log(app_config)
    assert len(entries) == 1
    assert entries[0]["status"] == "failure"
    assert entries[0]["error_code"] == "DECODE_FAILED"


def test_run_log_can_be_disabled(app_config: AppConfig, landscape_png: bytes) -> None:
    app_config.runtime.enable_run_log = False
    ConversionService(app_config).convert_bytes(landscape_png, ConversionOptions(target_format="png"))
    assert not (app_config.runtime.output_dir / app_config.runtime.log_file).exists()


def test_disabled_format_is_rejected(app_config: AppConfig, landscape_png: bytes) -> None:
    app_config.formats = ("jpeg", "png")
    service = ConversionService(app_config)
    with pytest.raises(UnsupportedFormatError):
        service.convert_bytes(landscape_png, ConversionOptions(target_format="webp"))


def test_convert_file_missing_source(app_config: AppConfig, tmp_path: Path) -> None:
    service = ConversionService(app_config)
    with pytest.raises(ConversionError) as exc:
        service.convert_file(tmp_path / "nope.png", ConversionOptions())
    assert exc.value.code == "NOT_FOUND"


@pytest.mark.parametrize("parallelism", [1, 3])
def test_batch_isolates_failures(app_config: AppConfig, landscape_png: bytes, parallelism: int) -> None:
    service = ConversionService(app_config)
    sources = [
        BatchSource(name="first.png", data=landscape_png),
        BatchSource(name="broken.png", data=b"not an image"),
        BatchSource(name="third.png", data=landscape_png),
    ]
    batch = service.batch_convert(sources, ConversionOptions(target_format="webp"), parallelism=parallelism)
    assert [item.name for item in batch.items] == ["first.png", "broken.png", "third.png"]
    assert [item.ok for item in batch.items] == [True, False, True]
    assert batch.items[1].error_code == "DECODE_FAILED"
    assert batch.summary.total == 3
    assert batch.summary.successes == 2
    assert batch.summary.failures == 1
    assert batch.summary.errors == {"DECODE_FAILED": 1}
    summary_csv = app_config.runtime.output_dir / app_config.runtime.summary_csv
    assert summary_csv.exists()
    assert len(read_log(app_config)) == 3


def test_create_archive_names_and_failures(app_config: AppConfig, landscape_png: bytes) -> None:
    service = ConversionService(app_config)
    sources = [
        BatchSource(name="photo.png", data=landscape_png),
        BatchSource(name="photo.png", data=landscape_png),
        BatchSource(name="bad.gif", data=b"not an image either"),
    ]
    batch = service.batch_convert(sources, ConversionOptions(target_format="jpg"))
    with zipfile.ZipFile(BytesIO(create_archive(batch))) as archive:
        names = sorted(archive.namelist())
        failures = json.loads(archive.read(FAILURES_ENTRY))
        assert decode(archive.read("photo.jpg")).format == "JPEG"
    assert names == sorted(["photo.jpg", "photo-1.jpg", FAILURES_ENTRY])
    assert failures[0]["name"] == "bad.gif"
    assert failures[0]["code"] == "DECODE_FAILED"


def test_batch_convert_paths_expands_directories(app_config: AppConfig, tmp_path: Path, landscape_png: bytes) -> None:
    folder = tmp_path / "images"
    (folder / "nested").mkdir(parents=True)
    (folder / "a.png").write_bytes(landscape_png)
    (folder / "nested" / "b.png").write_bytes(landscape_png)
    service = ConversionService(app_config)
    batch = service.batch_convert_paths([folder], ConversionOptions(target_format="png", resize=(40, 40)))
    assert [item.name for item in batch.items] == ["a.png", "b.png"]
    assert all(item.result is not None and item.result.width == 40 for item in batch.items)


def test_run_log_records_measured_detection_time(
    app_config: AppConfig, landscape_png: bytes, monkeypatch: pytest.MonkeyPatch
) -> None:
    def slow_detect(data: bytes) -> DetectionResult:
        time.sleep(0.02)
        return detect_source(data)

    monkeypatch.setattr("image_converter.core.detect_source", slow_detect)
    service = ConversionService(app_config)
    service.convert_bytes(landscape_png, ConversionOptions(target_format="png"))
    with pytest.raises(DecodeError):
        service.convert_bytes(b"junk", ConversionOptions(target_format="png"))
    success, failure = read_log(app_config)
    assert success["timings"]["detect_ms"] >= 15
    assert success["timings"]["convert_ms"] > 0
    assert failure["timings"]["detect_ms"] >= 15


def test_batch_summary_row_shares_run_log_batch_id(app_config: AppConfig, landscape_png: bytes) -> None:
    service = ConversionService(app_config)
    sources = [
        BatchSource(name="one.png", data=landscape_png),
        BatchSource(name="two.png", data=b"broken"),
    ]
    service.batch_convert(sources, ConversionOptions(target_format="jpeg"), parallelism=2)
    summary_csv = app_config.runtime.output_dir / app_config.runtime.summary_csv
    with summary_csv.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    run_ids = {entry["run_id"] for entry in read_log(app_config)}
    assert rows[0][0] == "batch_id"
    assert run_ids == {rows[1][0]}
