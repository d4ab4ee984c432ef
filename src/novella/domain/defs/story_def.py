"""Story definition structures shared by the player and the editor."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from novella.core.types import CHARACTER_POSITIONS, CharacterPosition


@dataclass(slots=True)
class ScriptChoice:
    """Inline branch offered by a dialogue line; jumps within the same scene."""

    id: str
    text: str
    next_dialogue_id: str


@dataclass(slots=True)
class DialogueLine:
    """One unit of spoken text in a scene script."""

    id: str
    speaker: str
    text: str
    choices: List[ScriptChoice] | None = None
    next_dialogue_id: str | None = None

    @property
    def is_decision_point(self) -> bool:
        """Non-empty inline choices suspend auto-advance for this line."""
        return bool(self.choices)


@dataclass(slots=True)
class Choice:
    """Scene-level exit transition offered once the script is exhausted."""

    id: str
    text: str
    next_scene_id: str


@dataclass(slots=True)
class Character:
    """Character sprite placed in one of the three stage slots."""

    id: str
    name: str
    image_url: str
    position: CharacterPosition = "center"


@dataclass(slots=True)
class Scene:
    """Background, characters, ordered dialogue script and exit choices."""

    id: str
    title: str
    background_url: str = ""
    script: List[DialogueLine] = field(default_factory=list)
    characters: List[Character] = field(default_factory=list)
    choices: List[Choice] = field(default_factory=list)

    def character_at(self, position: str) -> Character | None:
        """Return the character shown in a slot; the first listed one wins."""
        for character in self.characters:
            if character.position == position:
                return character
        return None

    def stage(self) -> Dict[str, Character | None]:
        """Map every slot to the character rendered there."""
        return {position: self.character_at(position) for position in CHARACTER_POSITIONS}


@dataclass(slots=True)
class Story:
    """Authoritative content graph."""

    title: str
    start_scene_id: str
    scenes: Dict[str, Scene] = field(default_factory=dict)

    @property
    def start_scene(self) -> Scene | None:
        return self.scenes.get(self.start_scene_id)


@dataclass(slots=True)
class ScenePatch:
    """Partial scene update produced by content generation."""

    script: List[DialogueLine] | None = None
    choices: List[Choice] | None = None

    @property
    def is_empty(self) -> bool:
        return self.script is None and self.choices is None
