import os
from pathlib import Path

from novella.data import paths


def test_get_records_dir_base_path(tmp_path: Path) -> None:
    assert paths.get_records_dir(tmp_path) == tmp_path
    assert paths.get_records_dir(str(tmp_path)) == tmp_path


def test_get_records_dir_defaults_under_user_dir(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(paths, "get_user_data_dir", lambda: tmp_path)
    assert paths.get_records_dir() == tmp_path / "data"


def test_get_user_data_dir_posix(monkeypatch, tmp_path: Path) -> None:
    if os.name == "nt":
        return
    monkeypatch.setenv("HOME", str(tmp_path))
    assert paths.get_user_data_dir() == tmp_path / ".config" / "novella"
