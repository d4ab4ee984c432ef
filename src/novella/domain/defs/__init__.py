"""Domain definition exports."""

from .default_story import DEFAULT_START_SCENE_ID, build_default_story
from .story_def import (
    Character,
    Choice,
    DialogueLine,
    Scene,
    ScenePatch,
    ScriptChoice,
    Story,
)

__all__ = [
    "DEFAULT_START_SCENE_ID",
    "Character",
    "Choice",
    "DialogueLine",
    "Scene",
    "ScenePatch",
    "ScriptChoice",
    "Story",
    "build_default_story",
]
