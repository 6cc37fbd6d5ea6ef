from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.errors import ConfigurationError, UnparseableTimestampError
from services.timestamps import TimestampNormalizer


def test_two_and_four_digit_years_normalize_to_same_instant() -> None:
    normalizer = TimestampNormalizer("Pacific/Honolulu")

    short = normalizer.normalize("4/12/17", "14:15:00")
    long = normalizer.normalize("4/12/2017", "14:15:00")

    assert short == long
    assert short == datetime(2017, 12, 5, 0, 15, tzinfo=timezone.utc)
    assert short.tzinfo is timezone.utc


def test_default_zone_is_utc() -> None:
    normalizer = TimestampNormalizer()

    assert normalizer.zone_name == "UTC"
    assert normalizer.normalize("1/2/2020", "03:04:05") == datetime(
        2020, 2, 1, 3, 4, 5, tzinfo=timezone.utc
    )


def test_invalid_month_is_rejected() -> None:
    normalizer = TimestampNormalizer("UTC")

    with pytest.raises(UnparseableTimestampError):
        normalizer.normalize("4/13/2017", "14:15:00")


@pytest.mark.parametrize(
    ("date_text", "time_text"),
    [
        ("2017-12-04", "14:15:00"),
        ("4/12/17", "14:15"),
        ("4/12/17", "25:00:00"),
        ("4/12/17 extra", "14:15:00"),
        ("4/12/017", "14:15:00"),
    ],
)
def test_unmatched_encodings_fail(date_text: str, time_text: str) -> None:
    normalizer = TimestampNormalizer("UTC")

    with pytest.raises(UnparseableTimestampError):
        normalizer.normalize(date_text, time_text)


def test_two_digit_year_pivot() -> None:
    normalizer = TimestampNormalizer("UTC")

    assert normalizer.normalize("1/1/68", "00:00:00").year == 2068
    assert normalizer.normalize("1/1/69", "00:00:00").year == 1969


def test_four_digit_year_is_taken_literally() -> None:
    normalizer = TimestampNormalizer("UTC")

    assert normalizer.normalize("1/1/0017", "00:00:00").year == 17
    assert normalizer.normalize("1/1/2017", "00:00:00").year == 2017


def test_nonexistent_wall_clock_time_fails() -> None:
    normalizer = TimestampNormalizer("America/New_York")

    with pytest.raises(UnparseableTimestampError, match="does not exist"):
        normalizer.normalize("12/3/2017", "02:30:00")


def test_ambiguous_wall_clock_time_fails() -> None:
    normalizer = TimestampNormalizer("America/New_York")

    with pytest.raises(UnparseableTimestampError, match="ambiguous"):
        normalizer.normalize("5/11/2017", "01:30:00")


def test_unknown_zone_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        TimestampNormalizer("Mars/Olympus_Mons")

    with pytest.raises(ConfigurationError):
        TimestampNormalizer("  ")


@pytest.mark.parametrize(
    ("zone", "date_text", "time_text"),
    [
        ("Pacific/Honolulu", "31/12/9999", "23:00:00"),
        ("Asia/Tokyo", "1/1/0001", "00:00:00"),
    ],
)
def test_instant_outside_datetime_range_fails(zone: str, date_text: str, time_text: str) -> None:
    normalizer = TimestampNormalizer(zone)

    with pytest.raises(UnparseableTimestampError, match="outside the supported date range"):
        normalizer.normalize(date_text, time_text)
