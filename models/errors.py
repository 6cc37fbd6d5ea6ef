"""Exception hierarchy for the ingest and merge pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class LoggerMergeError(Exception):
    """Base class for every error raised by the pipeline."""

    kind = "error"

    def __init__(
        self,
        reason: str,
        path: Optional[str] = None,
        line_number: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.path = path
        self.line_number = line_number
        super().__init__(self._render())

    def _render(self) -> str:
        location = ""
        if self.path:
            location = self.path
            if self.line_number is not None:
                location = f"{location}:{self.line_number}"
            location = f"{location}: "
        return f"{location}{self.reason}"

    def with_context(self, path: str, line_number: Optional[int] = None) -> "LoggerMergeError":
        """Return a copy of this error located at ``path`` (and ``line_number``)."""
        line = line_number if line_number is not None else self.line_number
        return type(self)(self.reason, path=path, line_number=line)


class ConfigurationError(LoggerMergeError):
    kind = "configuration"


class FileAccessError(LoggerMergeError):
    kind = "file_access"


class MalformedRecordError(LoggerMergeError):
    kind = "malformed_record"


class UnparseableTimestampError(LoggerMergeError):
    kind = "unparseable_timestamp"


class PivotConflictError(LoggerMergeError):
    """Two records reported a value for the same device at the same instant."""

    kind = "pivot_conflict"

    def __init__(
        self,
        reason: str,
        path: Optional[str] = None,
        line_number: Optional[int] = None,
        device: Optional[str] = None,
        instant: Optional[datetime] = None,
    ) -> None:
        self.device = device
        self.instant = instant
        super().__init__(reason, path=path, line_number=line_number)
