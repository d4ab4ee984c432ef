"""Editing operations on the authored story.

The editor is the only component that mutates a Story. Every successful edit
rebuilds the id index and is written through to the content store. Edits that
would break the structure raise StructuralEditError before touching anything.
"""
from __future__ import annotations

import logging
from typing import List

from novella.core.types import CHARACTER_POSITIONS
from novella.domain.defs import (
    Character,
    Choice,
    DialogueLine,
    Scene,
    ScenePatch,
    ScriptChoice,
    Story,
)
from novella.domain.story_index import SceneIndex, StoryIndex
from novella.services.content_store import ContentStore
from novella.services.errors import StructuralEditError
from novella.services.factories import make_element_id
from novella.services.story_graph_validator import Finding, validate_story

logger = logging.getLogger(__name__)

DEFAULT_SCENE_TITLE = "New scene"
DEFAULT_BACKGROUND_URL = "https://picsum.photos/1920/1080"
DEFAULT_CHARACTER_NAME = "New character"
DEFAULT_CHARACTER_IMAGE_URL = "https://picsum.photos/400/800"
DEFAULT_CHOICE_TEXT = "Next..."


class _Unset:
    pass


_UNSET = _Unset()


class StoryEditor:
    """Application service that mutates the content graph."""

    def __init__(self, story: Story, content_store: ContentStore | None = None) -> None:
        self._story = story
        self._content_store = content_store
        self._index = StoryIndex.build(story)

    @property
    def story(self) -> Story:
        return self._story

    @property
    def index(self) -> StoryIndex:
        return self._index

    def validate(self) -> list[Finding]:
        return validate_story(self._story, self._index)

    # ------------------------------------------------------------------
    # Story-level edits
    # ------------------------------------------------------------------

    def set_title(self, title: str) -> None:
        self._story.title = title
        self._commit()

    def set_start_scene(self, scene_id: str) -> None:
        self._require_scene(scene_id)
        self._story.start_scene_id = scene_id
        self._commit()

    def add_scene(
        self,
        title: str = DEFAULT_SCENE_TITLE,
        *,
        background_url: str = DEFAULT_BACKGROUND_URL,
    ) -> Scene:
        """Create a scene with a single placeholder line."""
        scene_id = make_element_id("scene", self._story.scenes)
        scene = Scene(
            id=scene_id,
            title=title,
            background_url=background_url,
            script=[DialogueLine(id=make_element_id("d"), speaker="", text="...")],
        )
        self._story.scenes[scene_id] = scene
        self._commit()
        return scene

    def update_scene(
        self,
        scene_id: str,
        *,
        title: str | None = None,
        background_url: str | None = None,
    ) -> Scene:
        scene = self._require_scene(scene_id)
        if title is not None:
            scene.title = title
        if background_url is not None:
            scene.background_url = background_url
        self._commit()
        return scene

    def delete_scene(self, scene_id: str) -> None:
        """Remove a scene; choices pointing at it are left for the validator to report."""
        if scene_id == self._story.start_scene_id:
            raise StructuralEditError("The start scene cannot be deleted.")
        self._require_scene(scene_id)
        del self._story.scenes[scene_id]
        self._commit()

    # ------------------------------------------------------------------
    # Dialogue lines
    # ------------------------------------------------------------------

    def add_line(
        self,
        scene_id: str,
        speaker: str,
        text: str,
        *,
        after_line_id: str | None = None,
        next_dialogue_id: str | None = None,
    ) -> DialogueLine:
        """Insert a line at the end of the script, or right after ``after_line_id``."""
        scene = self._require_scene(scene_id)
        scene_index = self._scene_index(scene_id)
        insert_at = len(scene.script)
        if after_line_id is not None:
            insert_at = self._require_line_position(scene_index, after_line_id) + 1
        line = DialogueLine(
            id=make_element_id("d", scene_index.line_positions),
            speaker=speaker,
            text=text,
            next_dialogue_id=next_dialogue_id,
        )
        scene.script.insert(insert_at, line)
        self._commit()
        return line

    def update_line(
        self,
        scene_id: str,
        line_id: str,
        *,
        speaker: str | None = None,
        text: str | None = None,
        next_dialogue_id: str | None | _Unset = _UNSET,
    ) -> DialogueLine:
        """Change a line; pass ``next_dialogue_id=None`` to clear the jump."""
        line = self._require_line(scene_id, line_id)
        if speaker is not None:
            line.speaker = speaker
        if text is not None:
            line.text = text
        if not isinstance(next_dialogue_id, _Unset):
            line.next_dialogue_id = next_dialogue_id
        self._commit()
        return line

    def remove_line(self, scene_id: str, line_id: str) -> None:
        scene = self._require_scene(scene_id)
        position = self._require_line_position(self._scene_index(scene_id), line_id)
        del scene.script[position]
        self._commit()

    def add_inline_choice(
        self, scene_id: str, line_id: str, text: str, next_dialogue_id: str
    ) -> ScriptChoice:
        """Turn a line into (or extend) a decision point."""
        line = self._require_line(scene_id, line_id)
        existing = {choice.id for choice in line.choices or []}
        choice = ScriptChoice(
            id=make_element_id("sc", existing),
            text=text,
            next_dialogue_id=next_dialogue_id,
        )
        if line.choices is None:
            line.choices = []
        line.choices.append(choice)
        self._commit()
        return choice

    def remove_inline_choice(self, scene_id: str, line_id: str, choice_id: str) -> None:
        line = self._require_line(scene_id, line_id)
        remaining = [choice for choice in line.choices or [] if choice.id != choice_id]
        if len(remaining) == len(line.choices or []):
            raise StructuralEditError(f"Line '{line_id}' has no inline choice '{choice_id}'.")
        line.choices = remaining or None
        self._commit()

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def add_character(
        self,
        scene_id: str,
        name: str = DEFAULT_CHARACTER_NAME,
        *,
        image_url: str = DEFAULT_CHARACTER_IMAGE_URL,
        position: str = "center",
    ) -> Character:
        scene = self._require_scene(scene_id)
        self._require_position(position)
        character = Character(
            id=make_element_id("c", {character.id for character in scene.characters}),
            name=name,
            image_url=image_url,
            position=position,  # type: ignore[arg-type]
        )
        scene.characters.append(character)
        self._commit()
        return character

    def update_character(
        self,
        scene_id: str,
        character_id: str,
        *,
        name: str | None = None,
        image_url: str | None = None,
        position: str | None = None,
    ) -> Character:
        character = self._require_character(scene_id, character_id)
        if position is not None:
            self._require_position(position)
            character.position = position  # type: ignore[assignment]
        if name is not None:
            character.name = name
        if image_url is not None:
            character.image_url = image_url
        self._commit()
        return character

    def remove_character(self, scene_id: str, character_id: str) -> None:
        scene = self._require_scene(scene_id)
        character = self._require_character(scene_id, character_id)
        scene.characters.remove(character)
        self._commit()

    # ------------------------------------------------------------------
    # Scene-level choices
    # ------------------------------------------------------------------

    def add_scene_choice(
        self,
        scene_id: str,
        text: str = DEFAULT_CHOICE_TEXT,
        next_scene_id: str | None = None,
    ) -> Choice:
        """Add an exit choice; the target defaults to the start scene."""
        scene = self._require_scene(scene_id)
        choice = Choice(
            id=make_element_id("ch", self._scene_index(scene_id).scene_choices),
            text=text,
            next_scene_id=next_scene_id or self._story.start_scene_id,
        )
        scene.choices.append(choice)
        self._commit()
        return choice

    def update_scene_choice(
        self,
        scene_id: str,
        choice_id: str,
        *,
        text: str | None = None,
        next_scene_id: str | None = None,
    ) -> Choice:
        choice = self._scene_index(scene_id).scene_choice(choice_id)
        if choice is None:
            raise StructuralEditError(f"Scene '{scene_id}' has no choice '{choice_id}'.")
        if text is not None:
            choice.text = text
        if next_scene_id is not None:
            choice.next_scene_id = next_scene_id
        self._commit()
        return choice

    def remove_scene_choice(self, scene_id: str, choice_id: str) -> None:
        scene = self._require_scene(scene_id)
        remaining = [choice for choice in scene.choices if choice.id != choice_id]
        if len(remaining) == len(scene.choices):
            raise StructuralEditError(f"Scene '{scene_id}' has no choice '{choice_id}'.")
        scene.choices = remaining
        self._commit()

    # ------------------------------------------------------------------
    # Generated content
    # ------------------------------------------------------------------

    def apply_patch(self, scene_id: str, patch: ScenePatch) -> bool:
        """Merge a generated patch into a scene.

        Returns False without side effects when the scene no longer exists, so
        results that arrive after the author moved on can simply be dropped.
        """
        scene = self._story.scenes.get(scene_id)
        if scene is None:
            logger.info("Discarding generated patch for missing scene %s.", scene_id)
            return False
        if patch.is_empty:
            return False
        if patch.script is not None:
            scene.script = list(patch.script)
        if patch.choices is not None:
            scene.choices = list(patch.choices)
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        self._index = StoryIndex.build(self._story)
        if self._content_store is not None:
            self._content_store.save(self._story)

    def _require_scene(self, scene_id: str) -> Scene:
        scene = self._story.scenes.get(scene_id)
        if scene is None:
            raise StructuralEditError(f"Scene '{scene_id}' does not exist.")
        return scene

    def _scene_index(self, scene_id: str) -> SceneIndex:
        self._require_scene(scene_id)
        return self._index.scenes[scene_id]

    def _require_line_position(self, scene_index: SceneIndex, line_id: str) -> int:
        position = scene_index.position_of(line_id)
        if position is None:
            raise StructuralEditError(
                f"Scene '{scene_index.scene.id}' has no dialogue line '{line_id}'."
            )
        return position

    def _require_line(self, scene_id: str, line_id: str) -> DialogueLine:
        scene_index = self._scene_index(scene_id)
        return scene_index.scene.script[self._require_line_position(scene_index, line_id)]

    def _require_character(self, scene_id: str, character_id: str) -> Character:
        scene = self._require_scene(scene_id)
        matches: List[Character] = [c for c in scene.characters if c.id == character_id]
        if not matches:
            raise StructuralEditError(f"Scene '{scene_id}' has no character '{character_id}'.")
        return matches[0]

    @staticmethod
    def _require_position(position: str) -> None:
        if position not in CHARACTER_POSITIONS:
            raise StructuralEditError(
                f"Character position must be one of {', '.join(CHARACTER_POSITIONS)}."
            )
