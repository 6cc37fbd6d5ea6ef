from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

import pytest

PREAMBLE = (
    "Plot Title: light logger",
    "Serial Number: 10293847",
    "Launch Name: reef transect",
    "",
    "Channel groups",
    ",,,Light,Light",
    "Scan,Date,Time,Raw,Calibrated",
    "#,,,(counts),(lux)",
    "-----",
)

LoggerFileFactory = Callable[..., Path]


def logger_text(lines: Iterable[str]) -> str:
    return "\n".join([*PREAMBLE, *lines]) + "\n"


@pytest.fixture()
def logger_file(tmp_path: Path) -> LoggerFileFactory:
    """Write a logger export with the standard nine-line preamble."""

    def factory(name: str, lines: Iterable[str], directory: Path | None = None) -> Path:
        target_dir = directory if directory is not None else tmp_path / "data"
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_text(logger_text(lines), encoding="utf-8")
        return path

    return factory
