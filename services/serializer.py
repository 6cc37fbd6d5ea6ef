"""CSV encoding of wide tables with UTC ISO-8601 timestamps."""

from __future__ import annotations

import csv
import logging
import os
import tempfile
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from models.errors import FileAccessError, MalformedRecordError
from models.records import Reading, WideTable
from services.timestamps import load_zone

logger = logging.getLogger(__name__)


def format_instant(instant: datetime) -> str:
    if instant.tzinfo is None:
        raise ValueError("Refusing to serialize a naive datetime.")
    # isoformat zero-pads the year, strftime("%Y") does not below 1000
    utc = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="seconds") + "Z"


def format_number(value: Optional[float]) -> str:
    """Plain decimal text: no exponent, no trailing zeros; empty when absent."""
    if value is None:
        return ""
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def write_wide_csv(table: WideTable, path: Union[str, Path]) -> Path:
    """Write ``table`` to ``path`` atomically and return the resolved path."""

    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        )
    except OSError as exc:
        raise FileAccessError(f"Cannot write output: {exc}", path=str(target)) from exc

    try:
        with handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow(table.columns)
            for row in table.rows():
                writer.writerow(
                    [format_instant(row.timestamp)] + [format_number(value) for value in row.values]
                )
        os.replace(handle.name, target)
    except OSError as exc:
        Path(handle.name).unlink(missing_ok=True)
        raise FileAccessError(f"Cannot write output: {exc}", path=str(target)) from exc

    logger.info(
        "Wrote wide table",
        extra={
            "file_path": str(target),
            "row_count": table.row_count,
            "column_count": table.value_column_count,
        },
    )
    return target


def _parse_instant(value: str) -> datetime:
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        raise ValueError("timestamp carries no offset")
    return parsed


def _parse_cell(value: str) -> Optional[float]:
    candidate = value.strip()
    if not candidate:
        return None
    return float(candidate)


def _devices_from_header(header: List[str], source: str) -> Tuple[List[str], bool]:
    if not header or header[0] != "datetime":
        raise MalformedRecordError("First column must be 'datetime'.", path=source, line_number=1)

    include_raw = any(name.startswith("raw_") for name in header[1:])
    step = 2 if include_raw else 1
    devices: List[str] = []
    for index in range(1, len(header), step):
        pair = header[index:index + step]
        calibrated = pair[-1]
        if not calibrated.startswith("calibrated_"):
            raise MalformedRecordError(f"Unexpected column {calibrated!r}.", path=source, line_number=1)
        device = calibrated[len("calibrated_"):]
        if include_raw and pair[0] != f"raw_{device}":
            raise MalformedRecordError(
                f"Column {pair[0]!r} does not pair with {calibrated!r}.", path=source, line_number=1
            )
        devices.append(device)
    return devices, include_raw


def read_wide_csv(path: Union[str, Path], zone: str) -> WideTable:
    """Load a wide table written by :func:`write_wide_csv`.

    ``zone`` is required: instants are converted to it explicitly so that the
    caller always decides how stored UTC times are presented.
    """
    target_zone = load_zone(zone)
    source = str(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as handle:
            rows = list(csv.reader(handle))
    except OSError as exc:
        raise FileAccessError(f"Cannot read file: {exc.strerror or exc}", path=source) from exc

    if not rows:
        raise MalformedRecordError("File has no header row.", path=source)

    devices, include_raw = _devices_from_header(rows[0], source)
    width = len(rows[0])
    instants: List[datetime] = []
    cells: Dict[Tuple[str, datetime], Reading] = {}

    for line_number, row in enumerate(rows[1:], start=2):
        if len(row) != width:
            raise MalformedRecordError(
                f"Expected {width} fields, found {len(row)}.", path=source, line_number=line_number
            )
        try:
            instant = _parse_instant(row[0]).astimezone(target_zone)
            values = [_parse_cell(value) for value in row[1:]]
        except (ValueError, OverflowError) as exc:
            raise MalformedRecordError(str(exc), path=source, line_number=line_number) from exc

        instants.append(instant)
        step = 2 if include_raw else 1
        for offset, device in enumerate(devices):
            chunk = values[offset * step:(offset + 1) * step]
            reading = Reading(raw=chunk[0] if include_raw else None, calibrated=chunk[-1])
            if reading.raw is None and reading.calibrated is None:
                continue
            cells[(device, instant)] = reading

    return WideTable(devices=devices, instants=instants, cells=cells, include_raw=include_raw)
