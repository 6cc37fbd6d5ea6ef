from __future__ import annotations

from typing import Any, Iterable, Sequence

import typer

from models.records import WideTable
from models.schemas import ProcessingStatus, RecordError, RunReport
from services.serializer import format_number

_STATUS_COLORS = {
    ProcessingStatus.processed: typer.colors.GREEN,
    ProcessingStatus.partial: typer.colors.YELLOW,
    ProcessingStatus.failed: typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _describe_error(error: RecordError) -> str:
    location = error.file_path or "run"
    if error.line_number is not None:
        location = f"{location}:{error.line_number}"
    return f"  - {location} [{error.kind}] {error.reason}"


def render_report(report: RunReport) -> None:
    echo_heading("Merge Result")
    typer.secho(f"status: {report.status.value}", fg=_STATUS_COLORS[report.status])
    echo_key_values(
        [
            ("source_timezone", report.source_timezone),
            ("parse_mode", report.parse_mode),
            ("conflict_policy", report.conflict_policy),
            ("output_path", report.output_path or "(not written)"),
            ("records", report.record_count),
            ("rows", report.row_count),
            ("columns", report.column_count),
            ("conflicts_resolved", report.conflicts_resolved),
            ("processing_ms", report.processing_ms),
        ]
    )

    typer.echo()
    echo_heading("Files")
    if report.files:
        for item in report.files:
            typer.echo(
                f"  - {item.file_path} device={item.device_id} "
                f"status={item.status.value} records={item.record_count}"
            )
    else:
        typer.echo("No source files found.")

    errors = list(report.errors)
    for item in report.files:
        errors.extend(item.errors)
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(_describe_error(error))
    else:
        typer.echo("No errors recorded.")


def render_devices(pairs: Sequence[tuple[str, str]]) -> None:
    echo_heading("Source Files")
    if not pairs:
        typer.echo("No source files found.")
        return
    for path, device in pairs:
        typer.echo(f"  - {device}: {path}")


def render_table(table: WideTable, limit: int) -> None:
    typer.echo(",".join(table.columns))
    for index, row in enumerate(table.rows()):
        if index >= limit:
            typer.echo(f"... {table.row_count - limit} more rows")
            break
        cells = [row.timestamp.isoformat()] + [format_number(value) for value in row.values]
        typer.echo(",".join(cells))
