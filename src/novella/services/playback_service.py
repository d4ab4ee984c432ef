"""Story playback: walks dialogue lines and scenes and persists the resume position."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List

from novella.domain.defs import Character, Choice, DialogueLine, ScriptChoice, Story
from novella.domain.state import END_OF_SCRIPT, EndOfScript, PlaybackPhase, PlayerPosition
from novella.domain.story_index import SceneIndex, StoryIndex
from novella.services.progress_store import ProgressStore
from novella.services.story_graph_validator import format_finding, validate_story

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(slots=True)
class StepView:
    """Data returned to the presentation layer for rendering."""

    scene_id: str
    scene_title: str
    background_url: str
    step_index: int
    phase: PlaybackPhase
    speaker: str = ""
    text: str = ""
    stage: Dict[str, Character | None] = field(default_factory=dict)
    inline_choices: List[ScriptChoice] = field(default_factory=list)
    scene_choices: List[Choice] = field(default_factory=list)
    revealing: bool = False

    @property
    def is_end_of_script(self) -> bool:
        return self.phase in (PlaybackPhase.AWAITING_SCENE_CHOICE, PlaybackPhase.SCENE_ENDED)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PlaybackEngine:
    """Synchronous state machine driven by proceed/choose/restart inputs.

    Broken references never raise: a dangling line jump falls back to the next
    line and a dangling scene jump falls back to the start scene, so the player
    always has a defined next state. Every transition is written through to the
    progress store.
    """

    def __init__(
        self,
        story: Story,
        progress_store: ProgressStore | None = None,
        *,
        resume: PlayerPosition | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._story = story
        self._progress_store = progress_store
        self._clock = clock or _utc_now
        self._index = StoryIndex.build(story)
        self._report_findings()
        self._scene_id, self._step_index = self._resolve_initial_position(resume)
        self._phase = PlaybackPhase.ADVANCING
        self._revealing = False
        self._settle()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def story(self) -> Story:
        return self._story

    @property
    def scene_id(self) -> str:
        return self._scene_id

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def phase(self) -> PlaybackPhase:
        return self._phase

    @property
    def position(self) -> PlayerPosition:
        return PlayerPosition(
            scene_id=self._scene_id,
            step_index=self._step_index,
            timestamp=self._clock(),
        )

    @property
    def can_skip(self) -> bool:
        """True while the presented line is still being revealed."""
        return self._revealing

    @property
    def is_finished(self) -> bool:
        return self._phase is PlaybackPhase.SCENE_ENDED

    def current_step(self) -> DialogueLine | EndOfScript:
        scene_index = self._scene_index()
        if scene_index is None or self._step_index >= scene_index.script_length:
            return END_OF_SCRIPT
        return scene_index.scene.script[self._step_index]

    def current_view(self) -> StepView:
        """Return the view model for the current position."""
        scene_index = self._scene_index()
        if scene_index is None:
            return StepView(
                scene_id=self._scene_id,
                scene_title="",
                background_url="",
                step_index=self._step_index,
                phase=self._phase,
            )
        scene = scene_index.scene
        view = StepView(
            scene_id=scene.id,
            scene_title=scene.title,
            background_url=scene.background_url,
            step_index=self._step_index,
            phase=self._phase,
            stage=scene.stage(),
            revealing=self._revealing,
        )
        step = self.current_step()
        if isinstance(step, DialogueLine):
            view.speaker = step.speaker
            view.text = step.text
            view.inline_choices = list(step.choices or [])
        elif self._phase is PlaybackPhase.AWAITING_SCENE_CHOICE:
            view.scene_choices = list(scene.choices)
        return view

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def proceed(self) -> bool:
        """Handle a single "proceed" input: finish the reveal first, then advance."""
        if self.skip_presentation():
            return False
        return self.advance()

    def skip_presentation(self) -> bool:
        """Complete an in-progress reveal; returns False if nothing was revealing."""
        if not self._revealing:
            return False
        self._revealing = False
        return True

    def complete_reveal(self) -> None:
        """Called by the presentation layer once its own reveal timing has finished."""
        self._revealing = False

    def advance(self) -> bool:
        """Move to the next dialogue line; returns False when nothing changed."""
        if self._phase in (PlaybackPhase.AWAITING_SCENE_CHOICE, PlaybackPhase.SCENE_ENDED):
            return False
        scene_index = self._scene_index()
        step = self.current_step()
        if scene_index is None or not isinstance(step, DialogueLine):
            return False
        if step.choices:
            self._phase = PlaybackPhase.AWAITING_INLINE_CHOICE
            return False
        next_index = self._step_index + 1
        if step.next_dialogue_id is not None:
            target = scene_index.position_of(step.next_dialogue_id)
            if target is None:
                logger.debug(
                    "Line %s/%s jumps to missing line %s; advancing linearly.",
                    self._scene_id,
                    step.id,
                    step.next_dialogue_id,
                )
            else:
                next_index = target
        self._move_to(self._scene_id, next_index)
        return True

    def choose_inline(self, choice_id: str) -> bool:
        """Resolve an inline choice on the current decision line."""
        if self._phase is not PlaybackPhase.AWAITING_INLINE_CHOICE:
            return False
        scene_index = self._scene_index()
        if scene_index is None:
            return False
        next_index = self._step_index + 1
        choice = scene_index.inline_choice(self._step_index, choice_id)
        target = scene_index.position_of(choice.next_dialogue_id) if choice is not None else None
        if target is None:
            logger.debug(
                "Inline choice %s in scene %s does not resolve; advancing linearly.",
                choice_id,
                self._scene_id,
            )
        else:
            next_index = target
        self._move_to(self._scene_id, next_index)
        return True

    def choose_scene(self, choice_id: str) -> bool:
        """Resolve a scene-level choice once the script is exhausted."""
        if self._phase is not PlaybackPhase.AWAITING_SCENE_CHOICE:
            return False
        scene_index = self._scene_index()
        choice = scene_index.scene_choice(choice_id) if scene_index is not None else None
        if choice is not None and self._index.has_scene(choice.next_scene_id):
            next_scene_id = choice.next_scene_id
        else:
            next_scene_id = self._fallback_scene_id()
            logger.debug(
                "Scene choice %s in scene %s does not resolve; returning to %s.",
                choice_id,
                self._scene_id,
                next_scene_id,
            )
        self._phase = PlaybackPhase.SCENE_TRANSITION
        self._move_to(next_scene_id, 0)
        return True

    def restart(self) -> bool:
        """Return to the first line of the start scene."""
        self._move_to(self._fallback_scene_id(), 0)
        return True

    def reload_content(self, story: Story) -> None:
        """Swap in an edited story and clamp the position to what still exists."""
        self._story = story
        self._index = StoryIndex.build(story)
        self._report_findings()
        previous = (self._scene_id, self._step_index)
        scene_id, step_index = self._scene_id, self._step_index
        scene_index = self._index.scene(scene_id)
        if scene_index is None:
            scene_id, step_index = self._fallback_scene_id(), 0
        elif not 0 <= step_index <= scene_index.script_length:
            step_index = 0
        self._scene_id, self._step_index = scene_id, step_index
        self._settle()
        if (scene_id, step_index) != previous:
            self._persist()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _scene_index(self) -> SceneIndex | None:
        return self._index.scene(self._scene_id)

    def _fallback_scene_id(self) -> str:
        if self._index.has_scene(self._story.start_scene_id):
            return self._story.start_scene_id
        # Broken start reference: keep playback alive on the first authored scene.
        for scene_id in self._story.scenes:
            return scene_id
        return self._story.start_scene_id

    def _resolve_initial_position(self, resume: PlayerPosition | None) -> tuple[str, int]:
        if resume is None or not self._index.has_scene(resume.scene_id):
            return self._fallback_scene_id(), 0
        scene_index = self._index.scenes[resume.scene_id]
        if 0 <= resume.step_index <= scene_index.script_length:
            return resume.scene_id, resume.step_index
        return resume.scene_id, 0

    def _move_to(self, scene_id: str, step_index: int) -> None:
        self._scene_id = scene_id
        self._step_index = step_index
        self._settle()
        self._persist()

    def _settle(self) -> None:
        """Derive the phase and reveal flag for the position just landed on."""
        scene_index = self._scene_index()
        step = self.current_step()
        if isinstance(step, DialogueLine):
            self._phase = (
                PlaybackPhase.AWAITING_INLINE_CHOICE if step.choices else PlaybackPhase.ADVANCING
            )
            self._revealing = bool(step.text)
            return
        self._revealing = False
        if scene_index is not None and scene_index.scene.choices:
            self._phase = PlaybackPhase.AWAITING_SCENE_CHOICE
        else:
            self._phase = PlaybackPhase.SCENE_ENDED

    def _persist(self) -> None:
        if self._progress_store is None:
            return
        try:
            self._progress_store.save(self.position)
        except OSError as exc:
            logger.warning("Could not persist playback position: %s", exc)

    def _report_findings(self) -> None:
        for finding in validate_story(self._story, self._index):
            if finding.is_error:
                logger.warning("Story content issue: %s", format_finding(finding))
            else:
                logger.debug("Story content issue: %s", format_finding(finding))
