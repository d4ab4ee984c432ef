"""File-system key-value storage for JSON records."""
from __future__ import annotations

import re
from pathlib import Path

from novella.data import paths
from novella.data.json_loader import load_json, write_json_atomic

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore:
    """Stores one JSON document per key; each write replaces the whole record."""

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self._base_dir = paths.get_records_dir(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def exists(self, key: str) -> bool:
        """Return True if a record is stored under the key."""
        return self._record_path(key).exists()

    def read(self, key: str) -> object:
        """Load and parse the record; raises DataLoadError when absent or corrupt."""
        return load_json(self._record_path(key))

    def write(self, key: str, payload: object) -> None:
        """Persist the record atomically."""
        write_json_atomic(self._record_path(key), payload)

    def delete(self, key: str) -> None:
        """Delete the record if it exists."""
        try:
            self._record_path(key).unlink()
        except FileNotFoundError:
            return

    def _record_path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid record key: {key!r}")
        return self._base_dir / f"{key}.json"
