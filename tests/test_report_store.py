"""Unit tests for the JSON run report store."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from datastore.report_store import ReportStore
from models.errors import MalformedRecordError
from models.schemas import FileReport, ProcessingStatus, RecordError, RunReport


def _sample_report() -> RunReport:
    return RunReport(
        status=ProcessingStatus.partial,
        started_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        finished_at=datetime(2024, 1, 1, 12, 0, 2, tzinfo=timezone.utc),
        processing_ms=2000,
        source_timezone="Pacific/Honolulu",
        conflict_policy="error",
        parse_mode="loose",
        output_path="data/loggers_wide.csv",
        record_count=5,
        row_count=4,
        column_count=2,
        devices=["001"],
        files=[
            FileReport(
                file_path="data/001_A.CSV",
                device_id="001",
                status=ProcessingStatus.partial,
                record_count=5,
                errors=[
                    RecordError.from_exception(
                        MalformedRecordError("bad", path="data/001_A.CSV", line_number=12)
                    )
                ],
            )
        ],
    )


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    store = ReportStore(tmp_path / "reports" / "run.json")
    report = _sample_report()

    saved = store.save(report)

    assert saved.exists()
    payload = json.loads(saved.read_text(encoding="utf-8"))
    assert payload["status"] == "partial"
    assert payload["files"][0]["errors"][0] == {
        "file_path": "data/001_A.CSV",
        "kind": "malformed_record",
        "line_number": 12,
        "reason": "bad",
    }

    loaded = ReportStore(saved).load()
    assert loaded == report
    assert loaded is not None and loaded.error_count == 1


def test_load_missing_or_corrupt_report_returns_none(tmp_path: Path) -> None:
    path = tmp_path / "run.json"
    assert ReportStore(path).load() is None

    path.write_text("{not json", encoding="utf-8")
    assert ReportStore(path).load() is None

    path.write_text(json.dumps({"status": "unknown"}), encoding="utf-8")
    assert ReportStore(path).load() is None
