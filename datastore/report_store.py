from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Optional, Union

from pydantic import ValidationError

from models.errors import FileAccessError
from models.schemas import RunReport


class ReportStore:
    """JSON persistence for the report of the latest merge run."""

    def __init__(self, persistence_path: Union[str, Path]) -> None:
        self.persistence_path = Path(persistence_path)
        self._lock = Lock()

    def save(self, report: RunReport) -> Path:
        payload = report.model_dump(mode="json")
        with self._lock:
            try:
                self.persistence_path.parent.mkdir(parents=True, exist_ok=True)
                self.persistence_path.write_text(
                    json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
                )
            except OSError as exc:
                raise FileAccessError(
                    f"Cannot write report: {exc}", path=str(self.persistence_path)
                ) from exc
        return self.persistence_path

    def load(self) -> Optional[RunReport]:
        with self._lock:
            if not self.persistence_path.exists():
                return None
            try:
                raw = self.persistence_path.read_text(encoding="utf-8") or "{}"
                data = json.loads(raw)
            except (OSError, json.JSONDecodeError):
                return None
        if not data:
            return None
        try:
            return RunReport.model_validate(data)
        except ValidationError:
            return None
