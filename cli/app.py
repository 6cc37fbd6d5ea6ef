from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from cli.render import render_devices, render_report, render_table
from datastore.report_store import ReportStore
from logging_config import configure_logging
from models.errors import ConfigurationError, LoggerMergeError
from models.schemas import ProcessingStatus
from services.identifiers import device_id_for_path
from services.pipeline import build_pipeline
from services.serializer import read_wide_csv
from settings import Settings, get_settings
from storage.source_files import SourceDirectory


@dataclass
class CLIState:
    settings: Settings


app = typer.Typer(
    help="Merge per-device light logger exports into one wide CSV.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _override(settings: Settings, **overrides: Any) -> Settings:
    changes: Dict[str, Any] = {key: value for key, value in overrides.items() if value is not None}
    return replace(settings, **changes) if changes else settings


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    settings = _override(get_settings(), log_level=log_level.upper() if log_level else None)
    configure_logging(settings.log_level)
    ctx.obj = CLIState(settings=settings)


@app.command("merge")
def merge_command(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Directory scanned recursively for exports."),
    glob: Optional[str] = typer.Option(None, "--glob", help="Filename pattern, matched case-insensitively."),
    tz: Optional[str] = typer.Option(None, "--tz", help="IANA zone the loggers' wall clocks are in."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Destination CSV path."),
    raw: Optional[bool] = typer.Option(None, "--raw/--no-raw", help="Include raw_<device> columns."),
    mode: Optional[str] = typer.Option(None, "--mode", help="Bad line handling: loose or strict."),
    conflicts: Optional[str] = typer.Option(
        None,
        "--conflicts",
        help="Duplicate (device, time) handling: error, keep_first, keep_last or keep_max.",
    ),
    lossy: Optional[bool] = typer.Option(
        None, "--lossy/--no-lossy", help="Write the table even when some lines or files failed."
    ),
    fail_fast: Optional[bool] = typer.Option(
        None, "--fail-fast/--no-fail-fast", help="Stop at the first file that fails."
    ),
    column_prefix: Optional[str] = typer.Option(
        None, "--column-prefix", help="Prefix for device labels in column names, e.g. 'logger_'."
    ),
    report: Optional[Path] = typer.Option(None, "--report", help="Write the run report as JSON here."),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Parallel file parsers."),
) -> None:
    """Parse every logger export and write the merged wide table."""
    state = _get_state(ctx)
    settings = _override(
        state.settings,
        data_root=str(root) if root is not None else None,
        file_glob=glob,
        source_timezone=tz,
        output_path=str(output) if output is not None else None,
        include_raw=raw,
        parse_mode=mode.lower() if mode else None,
        conflict_policy=conflicts.lower() if conflicts else None,
        lossy=lossy,
        fail_fast=fail_fast,
        column_prefix=column_prefix,
        report_path=str(report) if report is not None else None,
        workers=workers,
    )

    try:
        pipeline = build_pipeline(settings)
    except ConfigurationError as exc:
        raise typer.BadParameter(exc.reason) from exc

    typer.echo(f"Merging {settings.file_glob} files under {settings.data_root} ...")
    result = pipeline.run()
    render_report(result)

    if settings.report_path:
        try:
            saved = ReportStore(settings.report_path).save(result)
        except LoggerMergeError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        typer.echo(f"Report written to {saved}")

    if result.status is ProcessingStatus.failed:
        raise typer.Exit(code=1)


@app.command("devices")
def devices_command(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Directory scanned recursively for exports."),
    glob: Optional[str] = typer.Option(None, "--glob", help="Filename pattern, matched case-insensitively."),
) -> None:
    """List discovered exports and the device each one belongs to."""
    state = _get_state(ctx)
    settings = _override(
        state.settings,
        data_root=str(root) if root is not None else None,
        file_glob=glob,
    )
    try:
        paths = SourceDirectory(settings.data_root, settings.file_glob).list_files()
    except LoggerMergeError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    render_devices([(str(path), device_id_for_path(path)) for path in paths])


@app.command("show")
def show_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Merged CSV to read."),
    tz: str = typer.Option(..., "--tz", help="Zone to present the stored UTC timestamps in."),
    limit: int = typer.Option(10, "--limit", "-n", min=0, help="Rows to print."),
) -> None:
    """Print a merged table with its timestamps converted to an explicit zone."""
    try:
        table = read_wide_csv(file, tz)
    except ConfigurationError as exc:
        raise typer.BadParameter(exc.reason) from exc
    except LoggerMergeError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    render_table(table, limit)


@app.command("report")
def report_command(
    file: Path = typer.Argument(..., dir_okay=False, help="Run report JSON written by 'merge --report'."),
) -> None:
    """Print a saved run report."""
    saved = ReportStore(file).load()
    if saved is None:
        typer.secho(f"No readable report at {file}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    render_report(saved)
    if saved.status is ProcessingStatus.failed:
        raise typer.Exit(code=1)
