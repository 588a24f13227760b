from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ..config import AppConfig, dump_config, load_config
from ..core import ConversionService, create_archive
from ..errors import ConversionError
from ..models import ConversionOptions
from ..utils import atomic_write, generate_run_id

console = Console()

app = typer.Typer(help="Image conversion and size-targeted compression toolkit")


def _load_config(path: Path | None) -> AppConfig:
    return load_config(path)


def _build_options(
    target_format: str,
    target_kb: float | None,
    percent: int | None,
    width: int | None,
    height: int | None,
) -> ConversionOptions:
    resize = (width, height) if width and height else None
    return ConversionOptions(
        target_format=target_format,
        target_size_kb=target_kb,
        quality_percent=percent,
        resize=resize,
    )


@app.command()
def convert(
    file: Path,
    target_format: str = typer.Option(..., "--format", "-f", help="jpeg, jpg, png, webp, tiff or svg"),
    target_kb: float | None = typer.Option(None, "--target-kb", min=0, help="Target output size in KB"),
    percent: int | None = typer.Option(None, "--percent", min=1, max=100, help="Encoder quality percent"),
    width: int | None = typer.Option(None, "--width", min=1, help="Fit inside this width"),
    height: int | None = typer.Option(None, "--height", min=1, help="Fit inside this height"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output path"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    service = ConversionService(cfg)
    options = _build_options(target_format, target_kb, percent, width, height)
    try:
        result = service.convert_file(file, options)
    except ConversionError as exc:
        console.print(f"[red]Conversion failed[/red]: {exc.code} - {exc}")
        raise typer.Exit(1) from exc
    destination = output or file.with_suffix(result.format.extension)
    atomic_write(destination, result.data)
    console.print(f"[green]Success[/green]: {file.name} -> {destination} ({result.size_kb:.1f} KB)")
    if result.mode == "target_size":
        status = "within target" if result.converged else "best effort"
        console.print(f"Quality {result.quality} after {result.attempts} attempt(s), {status}")


@app.command()
def batch(
    path: list[Path],
    target_format: str = typer.Option(..., "--format", "-f", help="jpeg, jpg, png, webp, tiff or svg"),
    target_kb: float | None = typer.Option(None, "--target-kb", min=0, help="Target output size in KB"),
    percent: int | None = typer.Option(None, "--percent", min=1, max=100, help="Encoder quality percent"),
    width: int | None = typer.Option(None, "--width", min=1, help="Fit inside this width"),
    height: int | None = typer.Option(None, "--height", min=1, help="Fit inside this height"),
    archive: Path = typer.Option(Path("converted.zip"), "--archive", help="Output ZIP archive"),
    parallel: int | None = typer.Option(None, "--parallel", min=1, help="Parallel workers"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    service = ConversionService(cfg)
    options = _build_options(target_format, target_kb, percent, width, height)
    batch_result = service.batch_convert_paths(path, options, parallelism=parallel)
    table = Table(title="Batch summary")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Size (KB)")
    table.add_column("Quality")
    for item in batch_result.items:
        if item.result is not None:
            quality = str(item.result.quality) if item.result.quality is not None else "-"
            table.add_row(item.name, "[green]ok[/green]", f"{item.result.size_kb:.1f}", quality)
        else:
            table.add_row(item.name, f"[red]{item.error_code}[/red]", "-", "-")
    console.print(table)
    summary = batch_result.summary
    console.print(
        f"Processed {summary.total} files: {summary.successes} succeeded, {summary.failures} failed."
    )
    if not batch_result.successes:
        raise typer.Exit(1)
    atomic_write(archive, create_archive(batch_result))
    console.print(f"Output archive: {archive}")


@app.command()
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    typer.echo(dump_config(_load_config(config)))


@app.command()
def new_run_id() -> None:
    console.print(generate_run_id())


if __name__ == "__main__":
    app()
