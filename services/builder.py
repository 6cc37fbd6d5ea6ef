"""Per-file ingest orchestration and long-table assembly."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Union

from models.errors import FileAccessError, LoggerMergeError
from models.records import DataRecord, LongTable
from models.schemas import ProcessingStatus
from services.identifiers import device_id_for_path
from services.parser import RecordParser
from storage.source_files import read_source_text

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class FileOutcome:
    """Records and errors produced by one source file."""

    path: str
    device: str
    status: ProcessingStatus
    records: List[DataRecord] = field(default_factory=list)
    errors: List[LoggerMergeError] = field(default_factory=list)


@dataclass
class BuildResult:
    outcomes: List[FileOutcome] = field(default_factory=list)
    aborted: bool = False

    @property
    def records(self) -> LongTable:
        table: LongTable = []
        for outcome in self.outcomes:
            table.extend(outcome.records)
        return table

    @property
    def has_errors(self) -> bool:
        return self.aborted or any(item.errors for item in self.outcomes)


class LongTableBuilder:
    """Parses every source file and concatenates the rows in sorted-path order.

    Files are independent, so parsing runs on a thread pool when ``workers``
    is above one; completion order never affects the output order.
    """

    def __init__(
        self,
        parser: RecordParser,
        workers: int = 4,
        fail_fast: bool = False,
        reader: Callable[[PathLike], str] = read_source_text,
    ) -> None:
        self.parser = parser
        self.workers = max(1, workers)
        self.fail_fast = fail_fast
        self.reader = reader

    def process_file(self, path: PathLike) -> FileOutcome:
        start_time = time.perf_counter()
        source = str(path)
        device = device_id_for_path(path)

        try:
            text = self.reader(path)
        except FileAccessError as exc:
            logger.error(
                "Source file unreadable",
                extra={"file_path": source, "device_id": device, "reason": exc.reason},
            )
            return FileOutcome(
                path=source, device=device, status=ProcessingStatus.failed, errors=[exc]
            )

        parsed = self.parser.parse_text(text, device=device, source=source)

        if parsed.aborted or (parsed.errors and not parsed.records):
            status = ProcessingStatus.failed
        elif parsed.errors:
            status = ProcessingStatus.partial
        else:
            status = ProcessingStatus.processed

        processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Parsed source file",
            extra={
                "file_path": source,
                "device_id": device,
                "status": status.value,
                "record_count": len(parsed.records),
                "error_count": len(parsed.errors),
                "processing_ms": processing_ms,
            },
        )
        return FileOutcome(
            path=source,
            device=device,
            status=status,
            records=parsed.records,
            errors=parsed.errors,
        )

    def build(self, paths: Iterable[PathLike]) -> BuildResult:
        ordered = sorted((Path(path) for path in paths), key=lambda path: path.as_posix())
        if self.workers == 1 or len(ordered) < 2:
            return self._build_sequential(ordered)
        return self._build_parallel(ordered)

    def _build_sequential(self, paths: List[Path]) -> BuildResult:
        result = BuildResult()
        for path in paths:
            outcome = self.process_file(path)
            result.outcomes.append(outcome)
            if self._should_stop(outcome):
                result.aborted = True
                break
        return result

    def _build_parallel(self, paths: List[Path]) -> BuildResult:
        result = BuildResult()
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures: Dict[Path, Future[FileOutcome]] = {
                path: executor.submit(self.process_file, path) for path in paths
            }
            for path in paths:
                outcome = futures[path].result()
                result.outcomes.append(outcome)
                if self._should_stop(outcome):
                    result.aborted = True
                    for pending in futures.values():
                        pending.cancel()
                    break
        return result

    def _should_stop(self, outcome: FileOutcome) -> bool:
        if not self.fail_fast or outcome.status is not ProcessingStatus.failed:
            return False
        logger.error(
            "Stopping run after failed file",
            extra={"file_path": outcome.path, "error_count": len(outcome.errors)},
        )
        return True
