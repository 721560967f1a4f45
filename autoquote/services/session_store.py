"""Write-through JSON store for call and booking sessions."""

import json
import os
import tempfile
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from autoquote.errors import PersistenceError
from autoquote.telemetry.logger import get_logger

M = TypeVar("M", bound=BaseModel)


class JsonSessionStore(Generic[M]):
    """In-memory index of sessions mirrored into one JSON file.

    Every ``persist`` rewrites the whole file from the in-memory index, so the
    file is always a complete snapshot. Flush failures are logged and never
    raised: the in-memory record stays authoritative for this process.
    """

    def __init__(self, path: Path, model: type[M], name: str = "sessions"):
        self.path = Path(path)
        self.model = model
        self.name = name
        self.logger = get_logger(f"autoquote.store.{name}")
        self._records: dict[str, M] = self._read_file()
        self.logger.info(
            "Session store hydrated",
            extra={"store": name, "path": str(self.path), "count": len(self._records), "operation": "store_hydrate"},
        )

    def _read_file(self) -> dict[str, M]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.error(
                "Failed to read session file",
                extra={"store": self.name, "path": str(self.path), "error": str(e), "operation": "store_read"},
            )
            return {}
        if not isinstance(raw, dict):
            return {}

        records: dict[str, M] = {}
        for key, value in raw.items():
            try:
                records[key] = self.model.model_validate(value)
            except ValidationError as e:
                self.logger.warning(
                    "Skipping unreadable session record",
                    extra={"store": self.name, "id": key, "error": str(e), "operation": "store_read"},
                )
        return records

    def _flush(self) -> None:
        snapshot = {
            key: record.model_dump(mode="json", by_alias=True)
            for key, record in self._records.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(snapshot, fh, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"could not write {self.path}: {e}") from e

    def persist(self, record_id: str, record: M) -> None:
        """Upsert a record and flush the full snapshot to disk."""
        self._records[record_id] = record
        try:
            self._flush()
        except PersistenceError as e:
            self.logger.error(
                "Session flush failed",
                extra={"store": self.name, "id": record_id, "error": str(e), "operation": "store_flush"},
            )

    def load(self, record_id: str) -> M | None:
        """Return a record, falling back to the file for ids written by another process."""
        record = self._records.get(record_id)
        if record is None:
            record = self._read_file().get(record_id)
            if record is not None:
                self._records[record_id] = record
        return record

    def load_all(self) -> dict[str, M]:
        return dict(self._records)

    def __len__(self) -> int:
        return len(self._records)
