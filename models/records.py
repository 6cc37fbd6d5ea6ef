"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class DataRecord:
    """A single reading parsed from one data line of a logger file."""

    device: str
    timestamp: datetime
    raw: Optional[float]
    calibrated: Optional[float]
    source: str = ""
    line_number: int = 0


LongTable = List[DataRecord]


@dataclass(frozen=True, slots=True)
class Reading:
    """Raw and calibrated cells for one (device, instant) pair."""

    raw: Optional[float] = None
    calibrated: Optional[float] = None


@dataclass(slots=True)
class WideRow:
    timestamp: datetime
    values: Tuple[Optional[float], ...]


@dataclass
class WideTable:
    """One row per distinct instant, one column per device and channel.

    ``cells`` holds only the (device, instant) pairs that some record
    reported; every other cell is absent.
    """

    devices: List[str] = field(default_factory=list)
    instants: List[datetime] = field(default_factory=list)
    cells: Dict[Tuple[str, datetime], Reading] = field(default_factory=dict)
    include_raw: bool = True
    column_prefix: str = ""

    @property
    def columns(self) -> List[str]:
        names = ["datetime"]
        for device in self.devices:
            label = f"{self.column_prefix}{device}"
            if self.include_raw:
                names.append(f"raw_{label}")
            names.append(f"calibrated_{label}")
        return names

    @property
    def row_count(self) -> int:
        return len(self.instants)

    @property
    def value_column_count(self) -> int:
        return len(self.columns) - 1

    def cell(self, device: str, instant: datetime) -> Optional[Reading]:
        return self.cells.get((device, instant))

    def rows(self) -> Iterator[WideRow]:
        for instant in self.instants:
            values: List[Optional[float]] = []
            for device in self.devices:
                reading = self.cells.get((device, instant))
                if self.include_raw:
                    values.append(reading.raw if reading else None)
                values.append(reading.calibrated if reading else None)
            yield WideRow(timestamp=instant, values=tuple(values))

    def to_records(self) -> List[DataRecord]:
        """Flatten back to long form, one record per populated (device, instant)."""
        records: List[DataRecord] = []
        for instant in self.instants:
            for device in self.devices:
                reading = self.cells.get((device, instant))
                if reading is None:
                    continue
                if reading.raw is None and reading.calibrated is None:
                    continue
                records.append(
                    DataRecord(
                        device=device,
                        timestamp=instant,
                        raw=reading.raw if self.include_raw else None,
                        calibrated=reading.calibrated,
                    )
                )
        return records
