"""End-to-end merge run: discover, parse, pivot, write, report."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from models.errors import ConfigurationError, LoggerMergeError
from models.schemas import FileReport, ProcessingStatus, RecordError, RunReport
from services.builder import BuildResult, FileOutcome, LongTableBuilder
from services.parser import ParseMode, RecordParser
from services.pivot import ConflictPolicy, PivotEngine
from services.serializer import write_wide_csv
from services.timestamps import TimestampNormalizer
from settings import Settings, get_settings
from storage.source_files import SourceDirectory

logger = logging.getLogger(__name__)


def _parse_mode(value: str) -> ParseMode:
    try:
        return ParseMode(value)
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in ParseMode)
        raise ConfigurationError(f"Unknown parse mode {value!r}; expected one of {choices}.") from exc


def _conflict_policy(value: str) -> ConflictPolicy:
    try:
        return ConflictPolicy(value)
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in ConflictPolicy)
        raise ConfigurationError(
            f"Unknown conflict policy {value!r}; expected one of {choices}."
        ) from exc


def _file_report(outcome: FileOutcome) -> FileReport:
    return FileReport(
        file_path=outcome.path,
        device_id=outcome.device,
        status=outcome.status,
        record_count=len(outcome.records),
        errors=[RecordError.from_exception(error) for error in outcome.errors],
    )


class MergePipeline:
    """Coordinates discovery, the long-table build, the pivot and the write.

    Nothing is written when any file or row failed, unless ``lossy`` is set;
    a fail-fast abort or a pivot conflict never produces an artifact.
    """

    def __init__(
        self,
        sources: SourceDirectory,
        builder: LongTableBuilder,
        pivot: PivotEngine,
        output_path: Path,
        lossy: bool = False,
    ) -> None:
        self.sources = sources
        self.builder = builder
        self.pivot_engine = pivot
        self.output_path = output_path
        self.lossy = lossy

    def discover(self) -> List[Path]:
        return self.sources.list_files()

    def run(self, paths: Optional[Sequence[Path]] = None) -> RunReport:
        start_time = time.perf_counter()
        report = RunReport(
            status=ProcessingStatus.failed,
            started_at=datetime.now(timezone.utc),
            source_timezone=self.builder.parser.normalizer.zone_name,
            conflict_policy=self.pivot_engine.policy.value,
            parse_mode=self.builder.parser.mode.value,
            include_raw=self.pivot_engine.include_raw,
        )

        try:
            if paths is None:
                paths = self.discover()
            if not paths:
                logger.warning("No source files found", extra={"file_path": str(self.sources.root_path)})
            build = self.builder.build(paths)
            report.files = [_file_report(outcome) for outcome in build.outcomes]
            report.record_count = len(build.records)
            self._apply(build, report)
        except LoggerMergeError as exc:
            logger.error("Merge run failed", extra={"reason": str(exc)})
            report.status = ProcessingStatus.failed
            report.output_path = None
            report.errors.append(RecordError.from_exception(exc))

        report.finished_at = datetime.now(timezone.utc)
        report.processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Merge run finished",
            extra={
                "status": report.status.value,
                "record_count": report.record_count,
                "row_count": report.row_count,
                "column_count": report.column_count,
                "error_count": report.error_count,
                "processing_ms": report.processing_ms,
            },
        )
        return report

    def _apply(self, build: BuildResult, report: RunReport) -> None:
        if build.aborted:
            report.status = ProcessingStatus.failed
            return

        pivoted = self.pivot_engine.pivot(build.records)
        table = pivoted.table
        report.conflicts_resolved = pivoted.conflicts_resolved
        report.devices = list(table.devices)
        report.row_count = table.row_count
        report.column_count = table.value_column_count

        if build.has_errors and not self.lossy:
            logger.error(
                "Not writing output: unresolved errors",
                extra={"error_count": sum(len(item.errors) for item in build.outcomes)},
            )
            report.status = ProcessingStatus.failed
            return

        written = write_wide_csv(table, self.output_path)
        report.output_path = str(written)
        report.status = ProcessingStatus.partial if build.has_errors else ProcessingStatus.processed


def build_pipeline(settings: Optional[Settings] = None) -> MergePipeline:
    """Factory that wires the pipeline from settings."""
    settings = settings or get_settings()
    normalizer = TimestampNormalizer(settings.source_timezone)
    parser = RecordParser(normalizer, mode=_parse_mode(settings.parse_mode))
    builder = LongTableBuilder(parser, workers=settings.workers, fail_fast=settings.fail_fast)
    pivot = PivotEngine(
        policy=_conflict_policy(settings.conflict_policy),
        include_raw=settings.include_raw,
        column_prefix=settings.column_prefix,
    )
    return MergePipeline(
        sources=SourceDirectory(settings.data_root, settings.file_glob),
        builder=builder,
        pivot=pivot,
        output_path=Path(settings.output_path),
        lossy=settings.lossy,
    )
