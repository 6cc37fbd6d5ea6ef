"""Date/time normalization into zone-resolved UTC instants."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from models.errors import ConfigurationError, UnparseableTimestampError

# Tried in order; the first format that consumes the whole string wins.
DEFAULT_FORMATS: Tuple[str, ...] = (
    "%d/%m/%y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
)


def load_zone(name: str) -> ZoneInfo:
    candidate = (name or "").strip()
    if not candidate:
        raise ConfigurationError("Source time zone must not be empty.")
    try:
        return ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown time zone {candidate!r}.") from exc


class TimestampNormalizer:
    """Turns logger date and time text into UTC ``datetime`` instants.

    Wall-clock values are interpreted in ``source_timezone``, which is fixed
    for the lifetime of the normalizer. Values that fall in a DST gap or
    overlap of that zone are rejected instead of being resolved silently.
    """

    def __init__(
        self,
        source_timezone: str = "UTC",
        formats: Sequence[str] = DEFAULT_FORMATS,
    ) -> None:
        self.zone = load_zone(source_timezone)
        self.formats = tuple(formats)

    @property
    def zone_name(self) -> str:
        return self.zone.key

    def parse_wall_clock(self, date_text: str, time_text: str) -> datetime:
        """Match ``date time`` against the known formats, returning a naive datetime."""
        candidate = f"{date_text} {time_text}"
        for fmt in self.formats:
            try:
                return datetime.strptime(candidate, fmt)
            except ValueError:
                continue
        raise UnparseableTimestampError(
            f"Timestamp {candidate!r} matches none of the known formats."
        )

    def normalize(self, date_text: str, time_text: str) -> datetime:
        wall_clock = self.parse_wall_clock(date_text, time_text)
        return self.localize(wall_clock)

    def localize(self, wall_clock: datetime) -> datetime:
        earlier = wall_clock.replace(tzinfo=self.zone, fold=0)
        later = wall_clock.replace(tzinfo=self.zone, fold=1)
        try:
            instant = earlier.astimezone(timezone.utc)
            if earlier.utcoffset() != later.utcoffset():
                # fold only changes the offset inside a DST gap or overlap
                if instant.astimezone(self.zone).replace(tzinfo=None) != wall_clock:
                    raise UnparseableTimestampError(
                        f"Wall-clock time {wall_clock.isoformat()} does not exist in {self.zone_name}."
                    )
                raise UnparseableTimestampError(
                    f"Wall-clock time {wall_clock.isoformat()} is ambiguous in {self.zone_name}."
                )
        except OverflowError as exc:
            raise UnparseableTimestampError(
                f"Wall-clock time {wall_clock.isoformat()} in {self.zone_name} is outside the supported date range."
            ) from exc
        return instant
