"""Long-to-wide reshaping of logger records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from models.errors import PivotConflictError
from models.records import DataRecord, Reading, WideTable

logger = logging.getLogger(__name__)


class ConflictPolicy(str, Enum):
    """Resolution for two records sharing a (device, instant) pair."""

    error = "error"
    keep_first = "keep_first"
    keep_last = "keep_last"
    keep_max = "keep_max"


def _max_present(left: Optional[float], right: Optional[float]) -> Optional[float]:
    if left is None:
        return right
    if right is None:
        return left
    return max(left, right)


@dataclass
class PivotResult:
    table: WideTable
    conflicts_resolved: int = 0
    conflicts: List[Tuple[str, datetime]] = field(default_factory=list)


class PivotEngine:
    """Outer-joins per-device readings on their instants.

    Every distinct instant becomes one row and every device seen anywhere
    gets its columns; pairs without a record stay absent.
    """

    def __init__(
        self,
        policy: ConflictPolicy = ConflictPolicy.error,
        include_raw: bool = True,
        column_prefix: str = "",
    ) -> None:
        self.policy = ConflictPolicy(policy)
        self.include_raw = include_raw
        self.column_prefix = column_prefix

    def pivot(self, records: Iterable[DataRecord]) -> PivotResult:
        devices: Dict[str, None] = {}
        instants = set()
        cells: Dict[Tuple[str, datetime], Reading] = {}
        origins: Dict[Tuple[str, datetime], DataRecord] = {}
        result = PivotResult(table=WideTable())

        for record in records:
            devices.setdefault(record.device, None)
            instants.add(record.timestamp)
            key = (record.device, record.timestamp)
            reading = Reading(
                raw=record.raw if self.include_raw else None,
                calibrated=record.calibrated,
            )

            existing = cells.get(key)
            if existing is None:
                cells[key] = reading
                origins[key] = record
                continue

            cells[key] = self._resolve(existing, reading, origins[key], record)
            result.conflicts_resolved += 1
            result.conflicts.append(key)

        if result.conflicts_resolved:
            logger.warning(
                "Resolved colliding records",
                extra={"policy": self.policy.value, "error_count": result.conflicts_resolved},
            )

        result.table = WideTable(
            devices=list(devices),
            instants=sorted(instants),
            cells=cells,
            include_raw=self.include_raw,
            column_prefix=self.column_prefix,
        )
        return result

    def _resolve(
        self,
        existing: Reading,
        incoming: Reading,
        first: DataRecord,
        second: DataRecord,
    ) -> Reading:
        if self.policy is ConflictPolicy.keep_first:
            return existing
        if self.policy is ConflictPolicy.keep_last:
            return incoming
        if self.policy is ConflictPolicy.keep_max:
            return Reading(
                raw=_max_present(existing.raw, incoming.raw),
                calibrated=_max_present(existing.calibrated, incoming.calibrated),
            )
        raise PivotConflictError(
            (
                f"Device {second.device!r} has more than one record at "
                f"{second.timestamp.isoformat()} "
                f"({first.source}:{first.line_number} and {second.source}:{second.line_number})."
            ),
            path=second.source or None,
            line_number=second.line_number or None,
            device=second.device,
            instant=second.timestamp,
        )
