"""Id lookup tables built from a story snapshot.

Indexes are rebuilt whenever content is loaded or edited; they are never
patched in place. When ids repeat, the first occurrence wins, matching the
order-based resolution used everywhere else.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from novella.domain.defs import Choice, Scene, ScriptChoice, Story


@dataclass(slots=True)
class SceneIndex:
    """Positions of lines and choices inside a single scene."""

    scene: Scene
    line_positions: Dict[str, int] = field(default_factory=dict)
    inline_choices: Dict[int, Dict[str, ScriptChoice]] = field(default_factory=dict)
    scene_choices: Dict[str, Choice] = field(default_factory=dict)
    duplicate_line_ids: List[str] = field(default_factory=list)

    @classmethod
    def build(cls, scene: Scene) -> "SceneIndex":
        index = cls(scene=scene)
        for position, line in enumerate(scene.script):
            choices: Dict[str, ScriptChoice] = {}
            for choice in line.choices or []:
                choices.setdefault(choice.id, choice)
            index.inline_choices[position] = choices
            if line.id in index.line_positions:
                index.duplicate_line_ids.append(line.id)
                continue
            index.line_positions[line.id] = position
        for choice in scene.choices:
            index.scene_choices.setdefault(choice.id, choice)
        return index

    @property
    def script_length(self) -> int:
        return len(self.scene.script)

    def position_of(self, line_id: str | None) -> int | None:
        """Return the script index for a line id, or None if it does not resolve."""
        if line_id is None:
            return None
        return self.line_positions.get(line_id)

    def inline_choice(self, position: int, choice_id: str) -> ScriptChoice | None:
        return self.inline_choices.get(position, {}).get(choice_id)

    def scene_choice(self, choice_id: str) -> Choice | None:
        return self.scene_choices.get(choice_id)


@dataclass(slots=True)
class StoryIndex:
    """Per-scene indexes for a whole story."""

    story: Story
    scenes: Dict[str, SceneIndex] = field(default_factory=dict)

    @classmethod
    def build(cls, story: Story) -> "StoryIndex":
        return cls(
            story=story,
            scenes={scene_id: SceneIndex.build(scene) for scene_id, scene in story.scenes.items()},
        )

    def has_scene(self, scene_id: str | None) -> bool:
        return scene_id is not None and scene_id in self.scenes

    def scene(self, scene_id: str) -> SceneIndex | None:
        return self.scenes.get(scene_id)
