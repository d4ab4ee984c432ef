"""Helpers for resolving per-user file locations."""
from __future__ import annotations

import os
from pathlib import Path


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "Novella"
        return Path.home() / "Novella"
    return Path.home() / ".config" / "novella"


def get_records_dir(base_path: Path | str | None = None) -> Path:
    """Return the directory holding the content and progress records."""
    if base_path is not None:
        return Path(base_path)
    return get_user_data_dir() / "data"
