from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.errors import MalformedRecordError, UnparseableTimestampError
from services.parser import ParseMode, RecordParser
from services.timestamps import TimestampNormalizer

PREAMBLE = "\n".join(f"header line {index}" for index in range(1, 10))


def _parser(mode: ParseMode = ParseMode.loose) -> RecordParser:
    return RecordParser(TimestampNormalizer("UTC"), mode=mode)


def _text(*lines: str) -> str:
    return PREAMBLE + "\n" + "\n".join(lines) + "\n"


def test_parse_text_skips_preamble_and_trims_fields() -> None:
    text = _text(
        "1, 4/12/17 ,\t14:15:00 , 120 ,35.5",
        "2,4/12/17,14:30:00,,",
        "3,4/12/2017,14:45:00,7,0",
    )

    result = _parser().parse_text(text, device="001", source="001_A.CSV")

    assert result.errors == []
    assert not result.aborted
    assert [record.timestamp for record in result.records] == [
        datetime(2017, 12, 4, 14, 15, tzinfo=timezone.utc),
        datetime(2017, 12, 4, 14, 30, tzinfo=timezone.utc),
        datetime(2017, 12, 4, 14, 45, tzinfo=timezone.utc),
    ]
    first, gap, zero = result.records
    assert (first.raw, first.calibrated) == (120.0, 35.5)
    assert gap.raw is None and gap.calibrated is None
    assert zero.calibrated == 0.0
    assert first.device == "001"
    assert first.source == "001_A.CSV"
    assert first.line_number == 10


def test_preamble_lines_are_never_parsed() -> None:
    text = "\n".join(["1,4/12/17,14:15:00,1,2"] * 9) + "\n10,4/12/17,15:00:00,3,4\n"

    result = _parser().parse_text(text, device="d")

    assert len(result.records) == 1
    assert result.records[0].raw == 3.0


def test_short_file_yields_no_records() -> None:
    result = _parser().parse_text("only\nthree\nlines\n", device="d")

    assert result.records == []
    assert result.errors == []


def test_blank_lines_and_trailing_delimiter_are_tolerated() -> None:
    text = _text("1,4/12/17,14:15:00,1,2,", "", "   ", "2,4/12/17,14:30:00,3,4")

    result = _parser().parse_text(text, device="d")

    assert result.errors == []
    assert len(result.records) == 2


def test_loose_mode_collects_row_errors_with_context() -> None:
    text = _text(
        "1,4/12/17,14:15:00,1,2",
        "2,4/12/17,14:30:00,abc,2",
        "3,4/13/2017,14:45:00,1,2",
        "4,4/12/17,15:00:00,1",
        "5,4/12/17,15:15:00,inf,2",
        "6,,15:30:00,1,2",
        "7,4/12/17,15:45:00,5,6",
    )

    result = _parser().parse_text(text, device="d", source="d_1.CSV")

    assert [record.line_number for record in result.records] == [10, 16]
    assert [error.line_number for error in result.errors] == [11, 12, 13, 14, 15]
    assert all(error.path == "d_1.CSV" for error in result.errors)
    assert isinstance(result.errors[0], MalformedRecordError)
    assert isinstance(result.errors[1], UnparseableTimestampError)
    assert "Expected 5 fields" in result.errors[2].reason
    assert "finite" in result.errors[3].reason
    assert not result.aborted


def test_strict_mode_aborts_file_on_first_bad_row() -> None:
    text = _text(
        "1,4/12/17,14:15:00,1,2",
        "2,4/12/17,14:30:00,abc,2",
        "3,4/12/17,14:45:00,1,2",
    )

    result = _parser(ParseMode.strict).parse_text(text, device="d", source="d.CSV")

    assert result.aborted
    assert result.records == []
    assert len(result.errors) == 1
    assert str(result.errors[0]).startswith("d.CSV:11: ")


def test_non_numeric_scan_index_is_malformed() -> None:
    with pytest.raises(MalformedRecordError):
        _parser().parse_line("x,4/12/17,14:15:00,1,2", device="d")


def test_custom_delimiter() -> None:
    parser = RecordParser(TimestampNormalizer("UTC"), delimiter=";")

    record = parser.parse_line("1;4/12/17;14:15:00;1.5;", device="d")

    assert record.raw == 1.5
    assert record.calibrated is None
