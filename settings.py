from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATA_ROOT_ENV = "LOGGER_DATA_ROOT"
_FILE_GLOB_ENV = "LOGGER_FILE_GLOB"
_SOURCE_TZ_ENV = "LOGGER_SOURCE_TZ"
_OUTPUT_PATH_ENV = "LOGGER_OUTPUT_PATH"
_INCLUDE_RAW_ENV = "LOGGER_INCLUDE_RAW"
_PARSE_MODE_ENV = "LOGGER_PARSE_MODE"
_CONFLICT_POLICY_ENV = "LOGGER_CONFLICT_POLICY"
_LOSSY_ENV = "LOGGER_LOSSY"
_FAIL_FAST_ENV = "LOGGER_FAIL_FAST"
_COLUMN_PREFIX_ENV = "LOGGER_COLUMN_PREFIX"
_REPORT_PATH_ENV = "LOGGER_REPORT_PATH"
_WORKER_COUNT_ENV = "LOGGER_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    data_root: str
    file_glob: str
    source_timezone: str
    output_path: str
    include_raw: bool
    parse_mode: str
    conflict_policy: str
    lossy: bool
    fail_fast: bool
    column_prefix: str
    report_path: Optional[str]
    workers: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_raw_env(name: str, default: str) -> str:
    # Unlike _read_str_env, an explicitly empty value is kept.
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip()


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        data_root=_read_str_env(_DATA_ROOT_ENV, "./data"),
        file_glob=_read_str_env(_FILE_GLOB_ENV, "*.CSV"),
        source_timezone=_read_str_env(_SOURCE_TZ_ENV, "UTC"),
        output_path=_read_str_env(_OUTPUT_PATH_ENV, "./data/loggers_wide.csv"),
        include_raw=_read_bool_env(_INCLUDE_RAW_ENV, True),
        parse_mode=_read_str_env(_PARSE_MODE_ENV, "loose").lower(),
        conflict_policy=_read_str_env(_CONFLICT_POLICY_ENV, "error").lower(),
        lossy=_read_bool_env(_LOSSY_ENV, False),
        fail_fast=_read_bool_env(_FAIL_FAST_ENV, False),
        column_prefix=_read_raw_env(_COLUMN_PREFIX_ENV, ""),
        report_path=_read_optional_env(_REPORT_PATH_ENV, None),
        workers=_read_worker_count(4),
        log_level=_read_log_level("INFO"),
    )
