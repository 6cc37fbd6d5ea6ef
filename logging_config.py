from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "file_path",
    "device_id",
    "line_number",
    "reason",
    "status",
    "policy",
    "record_count",
    "error_count",
    "row_count",
    "column_count",
    "processing_ms",
)

# Loggers of the merge packages; they propagate to the stderr handler on root.
_APP_LOGGERS = ("services", "storage", "datastore", "cli")

_configured_level: str | int | None = None


def _render_value(value: Any) -> str:
    text = str(value)
    if not text or any(char.isspace() or char in '"=' for char in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


class ContextualFormatter(logging.Formatter):
    """Append whitelisted ``extra=`` attributes to each message as key=value pairs.

    Values holding whitespace, quotes or ``=`` are double-quoted so that free-text
    reasons and paths stay one field. Timestamps are rendered in UTC.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context: list[str] = []
        for key in self._extra_keys:
            value = getattr(record, key, None)
            if value is not None:
                context.append(f"{key}={_render_value(value)}")
        if context:
            return f"{message} | {' '.join(context)}"
        return message


def configure_logging(level: str | int | None = None, force: bool = False) -> None:
    """Send merge logging to stderr with contextual formatting.

    Repeated calls are no-ops unless a different level is asked for or
    ``force`` is set, so the CLI's ``--log-level`` wins over an earlier call.
    """
    global _configured_level
    log_level = level if level is not None else get_settings().log_level
    if isinstance(log_level, str):
        log_level = log_level.upper()
    if _configured_level is not None and not force and log_level == _configured_level:
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": {
                name: {"level": log_level, "propagate": True} for name in _APP_LOGGERS
            },
            "root": {"handlers": ["stderr"], "level": "WARNING"},
        }
    )

    _configured_level = log_level
