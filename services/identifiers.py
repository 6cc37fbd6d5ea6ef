"""Device identifier extraction from logger filenames."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Union

# Non-greedy: only the leftmost underscore delimits the device identifier.
_DEVICE_PREFIX = re.compile(r"^(.+?)_")


def extract_device_id(name: str) -> str:
    """Return the part of ``name`` before its first underscore.

    ``name`` is a bare file stem. Without an underscore (or when the stem
    starts with one and has no other) the whole stem is the identifier.
    """
    match = _DEVICE_PREFIX.match(name)
    if match is None:
        return name
    return match.group(1)


def device_id_for_path(path: Union[str, Path]) -> str:
    return extract_device_id(Path(path).stem)
