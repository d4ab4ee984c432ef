from novella.domain.defs import DialogueLine, Scene, ScriptChoice, build_default_story
from novella.domain.story_index import SceneIndex, StoryIndex


def test_first_duplicate_line_id_wins() -> None:
    scene = Scene(
        id="s",
        title="S",
        script=[
            DialogueLine(id="a", speaker="", text="1"),
            DialogueLine(id="b", speaker="", text="2"),
            DialogueLine(id="a", speaker="", text="3"),
        ],
    )
    index = SceneIndex.build(scene)
    assert index.position_of("a") == 0
    assert index.duplicate_line_ids == ["a"]
    assert index.position_of(None) is None
    assert index.position_of("zzz") is None


def test_inline_choices_are_indexed_by_script_position() -> None:
    scene = Scene(
        id="s",
        title="S",
        script=[
            DialogueLine(id="a", speaker="", text="1", choices=[ScriptChoice("x", "first", "a")]),
            DialogueLine(id="a", speaker="", text="2", choices=[ScriptChoice("x", "second", "a")]),
        ],
    )
    index = SceneIndex.build(scene)
    assert index.inline_choice(0, "x").text == "first"
    assert index.inline_choice(1, "x").text == "second"
    assert index.inline_choice(5, "x") is None


def test_story_index_lookups() -> None:
    index = StoryIndex.build(build_default_story())
    assert index.has_scene("forest")
    assert not index.has_scene(None)
    assert index.scene("missing") is None
    assert index.scenes["start"].scene_choice("ch2").next_scene_id == "home"
    assert index.scenes["start"].script_length == 5
