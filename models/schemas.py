"""Pydantic schemas for run reports."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.errors import LoggerMergeError


class ProcessingStatus(str, Enum):
    """Outcome states for a single file or a whole run."""

    processed = "processed"
    partial = "partial"
    failed = "failed"


class RecordError(BaseModel):
    """Details about a row or file that failed validation or parsing."""

    file_path: Optional[str] = None
    line_number: Optional[int] = Field(default=None, ge=1)
    kind: str
    reason: str

    @classmethod
    def from_exception(cls, exc: LoggerMergeError) -> "RecordError":
        return cls(
            file_path=exc.path,
            line_number=exc.line_number,
            kind=exc.kind,
            reason=exc.reason,
        )


class FileReport(BaseModel):
    """Per-file ingest outcome."""

    file_path: str
    device_id: str
    status: ProcessingStatus
    record_count: int = Field(default=0, ge=0)
    errors: List[RecordError] = Field(default_factory=list)


class RunReport(BaseModel):
    """Full record of one pipeline run."""

    status: ProcessingStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    source_timezone: str
    conflict_policy: str
    parse_mode: str
    include_raw: bool = True
    output_path: Optional[str] = Field(
        default=None, description="Artifact location; unset when nothing was written."
    )
    record_count: int = Field(default=0, ge=0)
    row_count: int = Field(default=0, ge=0)
    column_count: int = Field(default=0, ge=0)
    devices: List[str] = Field(default_factory=list)
    conflicts_resolved: int = Field(default=0, ge=0)
    files: List[FileReport] = Field(default_factory=list)
    errors: List[RecordError] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors) + sum(len(item.errors) for item in self.files)
