from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Union

from models.errors import FileAccessError


def read_source_text(path: Union[str, Path], encoding: str = "utf-8-sig") -> str:
    """Read a logger export as text, dropping a BOM and stray NUL bytes."""

    try:
        with open(path, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        raise FileAccessError(
            f"Cannot read file: {exc.strerror or exc}", path=str(path)
        ) from exc
    return raw.replace(b"\x00", b"").decode(encoding, errors="replace")


class SourceDirectory:
    """Recursive view over a directory tree of logger exports."""

    def __init__(self, root_path: Union[str, Path], pattern: str = "*.CSV") -> None:
        self.root_path = Path(root_path)
        self.pattern = pattern

    def matches(self, path: Path) -> bool:
        return fnmatchcase(path.name.lower(), self.pattern.lower())

    def list_files(self) -> List[Path]:
        """Return matching files under the root, sorted by path."""

        if not self.root_path.is_dir():
            raise FileAccessError(
                "Data root is not a directory.", path=str(self.root_path)
            )
        found = [
            path
            for path in self.root_path.rglob("*")
            if path.is_file() and self.matches(path)
        ]
        return sorted(found, key=lambda path: path.as_posix())
