from __future__ import annotations

from pathlib import Path

import pytest

from novella.data import JsonFileStore
from novella.data.story_codec import story_to_payload
from novella.domain.defs import Choice, DialogueLine, ScenePatch, build_default_story
from novella.services import ContentStore, StoryEditor, StructuralEditError


def _editor(tmp_path: Path) -> tuple[StoryEditor, ContentStore]:
    content = ContentStore(JsonFileStore(tmp_path))
    return StoryEditor(build_default_story(), content), content


def test_deleting_start_scene_is_rejected_without_changes(tmp_path: Path) -> None:
    editor, content = _editor(tmp_path)
    before = story_to_payload(editor.story)
    with pytest.raises(StructuralEditError):
        editor.delete_scene("start")
    assert story_to_payload(editor.story) == before
    assert content.load() is None


def test_delete_scene_leaves_dangling_choice_for_validator(tmp_path: Path) -> None:
    editor, content = _editor(tmp_path)
    editor.delete_scene("forest")
    assert "forest" not in editor.story.scenes
    assert "MISSING_SCENE_REF" in [f.code for f in editor.validate()]
    saved = content.load()
    assert saved is not None and "forest" not in saved.scenes


def test_delete_missing_scene_is_rejected(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    with pytest.raises(StructuralEditError):
        editor.delete_scene("nowhere")


def test_add_scene_writes_through_with_placeholder_line(tmp_path: Path) -> None:
    editor, content = _editor(tmp_path)
    scene = editor.add_scene("Cave")
    assert scene.id.startswith("scene_")
    assert [line.text for line in scene.script] == ["..."]
    saved = content.load()
    assert saved is not None
    assert saved.scenes[scene.id].title == "Cave"


def test_story_level_edits(tmp_path: Path) -> None:
    editor, content = _editor(tmp_path)
    editor.set_title("Renamed")
    editor.set_start_scene("home")
    saved = content.load()
    assert saved is not None
    assert (saved.title, saved.start_scene_id) == ("Renamed", "home")
    with pytest.raises(StructuralEditError):
        editor.set_start_scene("ghost")


def test_update_scene_fields(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    scene = editor.update_scene("forest", title="Deep forest", background_url="bg.png")
    assert (scene.title, scene.background_url) == ("Deep forest", "bg.png")


def test_add_line_after_existing_line(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    line = editor.add_line("start", "Narrator", "A breeze.", after_line_id="d1")
    script = editor.story.scenes["start"].script
    assert script[1] is line
    assert line.id not in {"d1", "d2", "d3", "d4", "d5"}
    assert editor.index.scenes["start"].position_of(line.id) == 1


def test_add_line_after_unknown_line_is_rejected(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    with pytest.raises(StructuralEditError):
        editor.add_line("start", "", "x", after_line_id="d99")
    assert len(editor.story.scenes["start"].script) == 5


def test_update_line_can_clear_jump(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    line = editor.update_line("start", "d3", text="Changed")
    assert line.next_dialogue_id == "d5"
    line = editor.update_line("start", "d3", next_dialogue_id=None)
    assert line.next_dialogue_id is None
    assert line.text == "Changed"


def test_remove_line(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    editor.remove_line("start", "d4")
    assert [line.id for line in editor.story.scenes["start"].script] == ["d1", "d2", "d3", "d5"]


def test_inline_choices_add_and_remove(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    choice = editor.add_inline_choice("start", "d1", "Wait", "d5")
    assert editor.story.scenes["start"].script[0].is_decision_point

    editor.remove_inline_choice("start", "d1", choice.id)
    assert editor.story.scenes["start"].script[0].choices is None
    with pytest.raises(StructuralEditError):
        editor.remove_inline_choice("start", "d1", choice.id)


def test_character_edits_validate_position(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    character = editor.add_character("forest", "Owl", position="left")
    assert editor.story.scenes["forest"].character_at("left") is character

    with pytest.raises(StructuralEditError):
        editor.add_character("forest", "Bat", position="ceiling")
    with pytest.raises(StructuralEditError):
        editor.update_character("forest", character.id, position="up")

    editor.update_character("forest", character.id, name="Wise owl", position="right")
    assert character.name == "Wise owl"
    editor.remove_character("forest", character.id)
    assert editor.story.scenes["forest"].characters == []


def test_scene_choice_target_defaults_to_start_scene(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    choice = editor.add_scene_choice("forest")
    assert choice.text == "Next..."
    assert choice.next_scene_id == "start"

    editor.update_scene_choice("forest", choice.id, text="Home", next_scene_id="home")
    assert (choice.text, choice.next_scene_id) == ("Home", "home")

    editor.remove_scene_choice("forest", choice.id)
    assert [c.id for c in editor.story.scenes["forest"].choices] == ["ch3"]
    with pytest.raises(StructuralEditError):
        editor.update_scene_choice("forest", choice.id, text="x")


def test_apply_patch_replaces_script_and_keeps_choices(tmp_path: Path) -> None:
    editor, content = _editor(tmp_path)
    patch = ScenePatch(script=[DialogueLine(id="g1", speaker="Owl", text="Hoo.")])
    assert editor.apply_patch("forest", patch) is True
    forest = editor.story.scenes["forest"]
    assert [line.id for line in forest.script] == ["g1"]
    assert [choice.id for choice in forest.choices] == ["ch3"]
    saved = content.load()
    assert saved is not None and saved.scenes["forest"].script[0].text == "Hoo."


def test_apply_patch_replaces_choices(tmp_path: Path) -> None:
    editor, _ = _editor(tmp_path)
    patch = ScenePatch(choices=[Choice(id="ch_new", text="Onward", next_scene_id="home")])
    assert editor.apply_patch("forest", patch) is True
    assert [choice.id for choice in editor.story.scenes["forest"].choices] == ["ch_new"]


def test_apply_patch_to_missing_scene_is_noop(tmp_path: Path) -> None:
    editor, content = _editor(tmp_path)
    patch = ScenePatch(script=[DialogueLine(id="g1", speaker="", text="late")])
    assert editor.apply_patch("deleted", patch) is False
    assert content.load() is None


def test_apply_empty_patch_is_noop(tmp_path: Path) -> None:
    editor, content = _editor(tmp_path)
    assert editor.apply_patch("forest", ScenePatch()) is False
    assert content.load() is None


def test_editor_without_store_still_edits() -> None:
    editor = StoryEditor(build_default_story())
    scene = editor.add_scene()
    assert scene.title == "New scene"
    assert editor.index.has_scene(scene.id)
