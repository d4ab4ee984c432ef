"""Low-level JSON helpers for keyed records."""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from .errors import DataLoadError


def load_json(path: Path) -> object:
    """Load JSON from disk and raise DataLoadError on failure."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DataLoadError(f"Record file not found: {path}") from exc
    except OSError as exc:
        raise DataLoadError(f"Unable to read record file: {path}") from exc
    except UnicodeDecodeError as exc:
        raise DataLoadError(f"Record file is not valid UTF-8: {path}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DataLoadError(f"Invalid JSON in {path}: {exc}") from exc


def write_json_atomic(path: Path, payload: object) -> None:
    """Write JSON through a temp file in the same directory, then os.replace it in."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
