"""Parsing of logger files: fixed preamble, then five positional fields per line."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.errors import LoggerMergeError, MalformedRecordError
from models.records import DataRecord
from services.timestamps import TimestampNormalizer

logger = logging.getLogger(__name__)

PREAMBLE_LINES = 9
FIELD_NAMES = ("scan_index", "date", "time", "raw", "calibrated")
_FIELD_COUNT = len(FIELD_NAMES)
_PADDING = " \t"


class ParseMode(str, Enum):
    """What to do with a bad data line."""

    loose = "loose"  # record the error, skip the line, keep going
    strict = "strict"  # abort the file and discard its records


@dataclass
class ParseResult:
    records: List[DataRecord] = field(default_factory=list)
    errors: List[LoggerMergeError] = field(default_factory=list)
    aborted: bool = False


def _parse_number(value: str, name: str) -> Optional[float]:
    if not value:
        return None
    try:
        number = float(value)
    except ValueError as exc:
        raise MalformedRecordError(f"Field {name!r} is not numeric: {value!r}.") from exc
    if not math.isfinite(number):
        raise MalformedRecordError(f"Field {name!r} is not a finite number: {value!r}.")
    return number


class RecordParser:
    """Parses the body of one logger file into :class:`DataRecord` rows.

    Columns are positional; the header text in the preamble is never read.
    """

    def __init__(
        self,
        normalizer: TimestampNormalizer,
        mode: ParseMode = ParseMode.loose,
        preamble_lines: int = PREAMBLE_LINES,
        delimiter: str = ",",
    ) -> None:
        self.normalizer = normalizer
        self.mode = ParseMode(mode)
        self.preamble_lines = preamble_lines
        self.delimiter = delimiter

    def split_fields(self, line: str) -> List[str]:
        fields = [value.strip(_PADDING) for value in next(csv.reader([line], delimiter=self.delimiter))]
        # Exports sometimes end every line with a delimiter.
        while len(fields) > _FIELD_COUNT and not fields[-1]:
            fields.pop()
        if len(fields) != _FIELD_COUNT:
            raise MalformedRecordError(
                f"Expected {_FIELD_COUNT} fields, found {len(fields)}."
            )
        return fields

    def parse_line(self, line: str, device: str, source: str = "", line_number: int = 0) -> DataRecord:
        scan_text, date_text, time_text, raw_text, calibrated_text = self.split_fields(line)
        _parse_number(scan_text, "scan_index")
        if not date_text or not time_text:
            raise MalformedRecordError("Date and time fields must not be blank.")
        timestamp = self.normalizer.normalize(date_text, time_text)
        return DataRecord(
            device=device,
            timestamp=timestamp,
            raw=_parse_number(raw_text, "raw"),
            calibrated=_parse_number(calibrated_text, "calibrated"),
            source=source,
            line_number=line_number,
        )

    def parse_text(self, text: str, device: str, source: str = "") -> ParseResult:
        result = ParseResult()
        lines = text.splitlines()
        for line_number, line in enumerate(lines[self.preamble_lines:], start=self.preamble_lines + 1):
            if not line.strip():
                continue
            try:
                record = self.parse_line(line, device, source=source, line_number=line_number)
            except LoggerMergeError as exc:
                error = exc.with_context(source, line_number)
                result.errors.append(error)
                logger.warning(
                    "Rejected data line",
                    extra={
                        "file_path": source,
                        "line_number": line_number,
                        "reason": error.reason,
                    },
                )
                if self.mode is ParseMode.strict:
                    result.records = []
                    result.aborted = True
                    return result
                continue
            result.records.append(record)
        return result
