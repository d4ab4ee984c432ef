"""Factory for the sample story shown before anything has been authored."""
from __future__ import annotations

from novella.domain.defs.story_def import (
    Character,
    Choice,
    DialogueLine,
    Scene,
    ScriptChoice,
    Story,
)

DEFAULT_START_SCENE_ID = "start"


def build_default_story() -> Story:
    """Return a brand new sample story; callers may mutate it freely."""
    start = Scene(
        id=DEFAULT_START_SCENE_ID,
        title="Beginning",
        background_url="https://picsum.photos/1920/1080?grayscale",
        script=[
            DialogueLine(
                id="d1",
                speaker="Stranger",
                text="Hello! This is the beginning of your story.",
            ),
            DialogueLine(
                id="d2",
                speaker="Stranger",
                text="Do you feel brave today?",
                choices=[
                    ScriptChoice(id="sc1", text="Of course.", next_dialogue_id="d3"),
                    ScriptChoice(id="sc2", text="Not really.", next_dialogue_id="d4"),
                ],
            ),
            DialogueLine(
                id="d3",
                speaker="Stranger",
                text="Then the forest is waiting for you.",
                next_dialogue_id="d5",
            ),
            DialogueLine(id="d4", speaker="Stranger", text="Home is always a safe choice."),
            DialogueLine(id="d5", speaker="Stranger", text="Where shall we go next?"),
        ],
        characters=[
            Character(
                id="c1",
                name="Girl",
                image_url="https://picsum.photos/400/800",
                position="center",
            )
        ],
        choices=[
            Choice(id="ch1", text="Go to the forest", next_scene_id="forest"),
            Choice(id="ch2", text="Stay at home", next_scene_id="home"),
        ],
    )
    forest = Scene(
        id="forest",
        title="Forest",
        background_url="https://picsum.photos/1920/1080?blur=2",
        script=[
            DialogueLine(
                id="d1",
                speaker="",
                text="You walk into the dark forest. Birds are singing, yet you feel uneasy.",
            )
        ],
        choices=[Choice(id="ch3", text="Turn back", next_scene_id=DEFAULT_START_SCENE_ID)],
    )
    home = Scene(
        id="home",
        title="Home",
        background_url="https://picsum.photos/1920/1080",
        script=[
            DialogueLine(id="d1", speaker="Mom", text="You decided to stay home. A wise decision."),
        ],
        characters=[
            Character(
                id="c2",
                name="Mom",
                image_url="https://picsum.photos/401/800",
                position="right",
            )
        ],
        choices=[Choice(id="ch4", text="Start over", next_scene_id=DEFAULT_START_SCENE_ID)],
    )
    return Story(
        title="My First Novel",
        start_scene_id=DEFAULT_START_SCENE_ID,
        scenes={scene.id: scene for scene in (start, forest, home)},
    )
