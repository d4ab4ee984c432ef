from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from novella.data import DataLoadError, JsonFileStore
from novella.domain.defs import build_default_story
from novella.domain.state import PlayerPosition
from novella.services import ContentStore, ProgressStore
from novella.services.content_store import CONTENT_KEY
from novella.services.progress_store import PROGRESS_KEY


def test_json_file_store_round_trip(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path)
    assert not store.exists("record")
    store.write("record", {"a": [1, 2]})
    assert store.exists("record")
    assert store.read("record") == {"a": [1, 2]}
    assert (tmp_path / "record.json").exists()
    assert list(tmp_path.glob("*.tmp")) == []

    store.delete("record")
    store.delete("record")
    assert not store.exists("record")


def test_json_file_store_rejects_path_like_keys(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path)
    with pytest.raises(ValueError):
        store.write("../escape", {})


def test_json_file_store_read_corrupt_record_raises(tmp_path: Path) -> None:
    (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(DataLoadError):
        JsonFileStore(tmp_path).read("bad")


def test_content_store_saves_under_stable_key(tmp_path: Path) -> None:
    content = ContentStore(JsonFileStore(tmp_path))
    story = build_default_story()
    content.save(story)

    raw = json.loads((tmp_path / f"{CONTENT_KEY}.json").read_text(encoding="utf-8"))
    assert raw["startSceneId"] == "start"
    assert content.load() == story


def test_content_store_missing_record_loads_default(tmp_path: Path) -> None:
    content = ContentStore(JsonFileStore(tmp_path))
    assert content.load() is None
    assert content.load_or_default() == build_default_story()


def test_content_store_corrupt_record_falls_back_to_default(tmp_path: Path, caplog) -> None:
    (tmp_path / f"{CONTENT_KEY}.json").write_text("]]]", encoding="utf-8")
    content = ContentStore(JsonFileStore(tmp_path))
    with caplog.at_level("WARNING"):
        assert content.load() is None
    assert "unreadable story record" in caplog.text
    assert content.load_or_default().start_scene_id == "start"


def test_content_store_wrong_shape_is_treated_as_absent(tmp_path: Path) -> None:
    (tmp_path / f"{CONTENT_KEY}.json").write_text(json.dumps({"title": "x"}), encoding="utf-8")
    assert ContentStore(JsonFileStore(tmp_path)).load() is None


def test_default_story_copies_are_independent(tmp_path: Path) -> None:
    content = ContentStore(JsonFileStore(tmp_path))
    first = content.load_or_default()
    first.scenes["start"].title = "Edited"
    assert content.load_or_default().scenes["start"].title == "Beginning"


def test_progress_store_round_trip_and_clear(tmp_path: Path) -> None:
    progress = ProgressStore(JsonFileStore(tmp_path))
    assert progress.load() is None
    assert not progress.has_save()

    position = PlayerPosition("home", 1, datetime(2024, 2, 3, tzinfo=timezone.utc))
    progress.save(position)
    assert progress.has_save()
    assert progress.load() == position
    assert (tmp_path / f"{PROGRESS_KEY}.json").exists()

    progress.clear()
    assert progress.load() is None


def test_progress_store_corrupt_record_is_absent(tmp_path: Path) -> None:
    (tmp_path / f"{PROGRESS_KEY}.json").write_text('{"sceneId": 3}', encoding="utf-8")
    assert ProgressStore(JsonFileStore(tmp_path)).load() is None


def test_progress_store_overwrites_previous_record(tmp_path: Path) -> None:
    progress = ProgressStore(JsonFileStore(tmp_path))
    stamp = datetime(2024, 2, 3, tzinfo=timezone.utc)
    progress.save(PlayerPosition("start", 1, stamp))
    progress.save(PlayerPosition("forest", 0, stamp))
    loaded = progress.load()
    assert loaded is not None
    assert (loaded.scene_id, loaded.step_index) == ("forest", 0)


def test_records_with_invalid_utf8_are_absent(tmp_path: Path) -> None:
    (tmp_path / f"{PROGRESS_KEY}.json").write_bytes(b'{"sceneId": "\xff\xfe", "stepIndex": 0}')
    (tmp_path / f"{CONTENT_KEY}.json").write_bytes(b"\xff\xfe garbage")
    store = JsonFileStore(tmp_path)
    assert ProgressStore(store).load() is None
    assert ContentStore(store).load() is None
    assert ContentStore(store).load_or_default().start_scene_id == "start"


@pytest.mark.parametrize("date", ["1e300", "-1e300", "NaN", "Infinity"])
def test_progress_with_unrepresentable_date_is_absent(tmp_path: Path, date: str) -> None:
    (tmp_path / f"{PROGRESS_KEY}.json").write_text(
        f'{{"sceneId": "start", "stepIndex": 0, "date": {date}}}', encoding="utf-8"
    )
    assert ProgressStore(JsonFileStore(tmp_path)).load() is None


def test_progress_with_naive_timestamp_round_trips(tmp_path: Path) -> None:
    progress = ProgressStore(JsonFileStore(tmp_path))
    position = PlayerPosition("home", 1, datetime(2024, 2, 3, 4, 5, 6))
    assert position.timestamp.tzinfo is timezone.utc
    progress.save(position)
    assert progress.load() == position


def test_content_with_surrogate_ids_round_trips(tmp_path: Path) -> None:
    content = ContentStore(JsonFileStore(tmp_path))
    story = build_default_story()
    forest = story.scenes.pop("forest")
    forest.id = "f\ud800"
    story.scenes[forest.id] = forest
    content.save(story)
    assert content.load() == story
