"""Static story graph validation utilities.

Validation is advisory: it never raises and never blocks saving a draft.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from novella.core.types import CHARACTER_POSITIONS, Severity
from novella.domain.defs import Scene, Story
from novella.domain.story_index import SceneIndex, StoryIndex


@dataclass(frozen=True, slots=True)
class Finding:
    severity: Severity
    code: str
    message: str
    scene_id: str | None = None
    line_id: str | None = None
    context: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == "ERROR"


def format_finding(finding: Finding) -> str:
    parts = []
    if finding.scene_id is not None:
        parts.append(f"scene={finding.scene_id}")
    if finding.line_id is not None:
        parts.append(f"line={finding.line_id}")
    parts.extend(f"{key}={value}" for key, value in finding.context.items())
    suffix = f" ({' '.join(parts)})" if parts else ""
    return f"[{finding.severity}] {finding.code}: {finding.message}{suffix}"


def has_errors(findings: list[Finding]) -> bool:
    return any(finding.is_error for finding in findings)


def validate_story(story: Story, index: StoryIndex | None = None) -> list[Finding]:
    findings: list[Finding] = []
    index = index or StoryIndex.build(story)

    if story.start_scene_id not in story.scenes:
        findings.append(
            Finding(
                severity="ERROR",
                code="MISSING_START_SCENE",
                message="Start scene does not exist.",
                context={"referenced_id": story.start_scene_id},
            )
        )

    for scene_id, scene in story.scenes.items():
        scene_index = index.scene(scene_id) or SceneIndex.build(scene)
        if scene.id != scene_id:
            findings.append(
                Finding(
                    severity="ERROR",
                    code="SCENE_ID_MISMATCH",
                    message="Scene is stored under a key that differs from its id.",
                    scene_id=scene_id,
                    context={"declared_id": scene.id},
                )
            )
        _validate_script(scene_id, scene_index, findings)
        _validate_scene_choices(scene_id, scene, story, findings)
        _validate_characters(scene_id, scene, findings)
        _validate_dialogue_loops(scene_id, scene_index, findings)

    _validate_reachability(story, findings)
    return findings


def _validate_script(scene_id: str, scene_index: SceneIndex, findings: list[Finding]) -> None:
    scene = scene_index.scene
    if not scene.script:
        findings.append(
            Finding(
                severity="WARNING",
                code="EMPTY_SCRIPT",
                message="Scene has no dialogue lines; playback jumps straight to its choices.",
                scene_id=scene_id,
            )
        )
    for line_id in scene_index.duplicate_line_ids:
        findings.append(
            Finding(
                severity="ERROR",
                code="DUPLICATE_LINE_ID",
                message="Dialogue line id is used more than once; only the first is reachable by id.",
                scene_id=scene_id,
                line_id=line_id,
            )
        )
    for line in scene.script:
        if line.next_dialogue_id is not None:
            if line.choices:
                findings.append(
                    Finding(
                        severity="WARNING",
                        code="IGNORED_NEXT_DIALOGUE",
                        message="Line has inline choices, so its nextDialogueId is never used.",
                        scene_id=scene_id,
                        line_id=line.id,
                    )
                )
            elif scene_index.position_of(line.next_dialogue_id) is None:
                findings.append(
                    Finding(
                        severity="ERROR",
                        code="MISSING_LINE_REF",
                        message="Line jumps to a dialogue line missing from the scene.",
                        scene_id=scene_id,
                        line_id=line.id,
                        context={
                            "field_path": "nextDialogueId",
                            "referenced_id": line.next_dialogue_id,
                        },
                    )
                )
        seen_choice_ids: set[str] = set()
        for choice_index, choice in enumerate(line.choices or []):
            if choice.id in seen_choice_ids:
                findings.append(
                    Finding(
                        severity="WARNING",
                        code="DUPLICATE_CHOICE_ID",
                        message="Inline choice id is used more than once on this line.",
                        scene_id=scene_id,
                        line_id=line.id,
                        context={"choice_id": choice.id},
                    )
                )
            seen_choice_ids.add(choice.id)
            if scene_index.position_of(choice.next_dialogue_id) is None:
                findings.append(
                    Finding(
                        severity="ERROR",
                        code="MISSING_LINE_REF",
                        message="Inline choice jumps to a dialogue line missing from the scene.",
                        scene_id=scene_id,
                        line_id=line.id,
                        context={
                            "field_path": f"choices[{choice_index}].nextDialogueId",
                            "referenced_id": choice.next_dialogue_id,
                        },
                    )
                )


def _validate_scene_choices(
    scene_id: str, scene: Scene, story: Story, findings: list[Finding]
) -> None:
    if not scene.choices:
        findings.append(
            Finding(
                severity="WARNING",
                code="DEAD_END_SCENE",
                message="Scene has no exit choices; playback ends here.",
                scene_id=scene_id,
            )
        )
        return
    seen_choice_ids: set[str] = set()
    for choice_index, choice in enumerate(scene.choices):
        if choice.id in seen_choice_ids:
            findings.append(
                Finding(
                    severity="WARNING",
                    code="DUPLICATE_CHOICE_ID",
                    message="Scene choice id is used more than once.",
                    scene_id=scene_id,
                    context={"choice_id": choice.id},
                )
            )
        seen_choice_ids.add(choice.id)
        if choice.next_scene_id not in story.scenes:
            findings.append(
                Finding(
                    severity="ERROR",
                    code="MISSING_SCENE_REF",
                    message="Choice leads to a missing scene; playback falls back to the start scene.",
                    scene_id=scene_id,
                    context={
                        "field_path": f"choices[{choice_index}].nextSceneId",
                        "referenced_id": choice.next_scene_id,
                    },
                )
            )


def _validate_characters(scene_id: str, scene: Scene, findings: list[Finding]) -> None:
    occupied: dict[str, str] = {}
    for character in scene.characters:
        if character.position not in CHARACTER_POSITIONS:
            findings.append(
                Finding(
                    severity="ERROR",
                    code="INVALID_CHARACTER_POSITION",
                    message="Character position must be left, center or right.",
                    scene_id=scene_id,
                    context={"character_id": character.id, "position": str(character.position)},
                )
            )
            continue
        if character.position in occupied:
            findings.append(
                Finding(
                    severity="WARNING",
                    code="SHARED_CHARACTER_SLOT",
                    message="Several characters share a slot; only the first listed is shown.",
                    scene_id=scene_id,
                    context={
                        "position": character.position,
                        "shown_id": occupied[character.position],
                        "hidden_id": character.id,
                    },
                )
            )
            continue
        occupied[character.position] = character.id


def _validate_dialogue_loops(
    scene_id: str, scene_index: SceneIndex, findings: list[Finding]
) -> None:
    script = scene_index.scene.script
    length = len(script)

    def successor(position: int) -> int | None:
        line = script[position]
        if line.choices:
            return None
        target = scene_index.position_of(line.next_dialogue_id)
        return target if target is not None else position + 1

    finished: set[int] = set()
    for start in range(length):
        if start in finished:
            continue
        path: list[int] = []
        on_path: set[int] = set()
        current: int | None = start
        while current is not None and current < length and current not in finished:
            if current in on_path:
                cycle = path[path.index(current) :]
                cycle_path = " -> ".join(script[pos].id for pos in cycle + [current])
                findings.append(
                    Finding(
                        severity="WARNING",
                        code="DIALOGUE_LOOP",
                        message="Auto-advancing lines loop without reaching the end of the script.",
                        scene_id=scene_id,
                        line_id=script[current].id,
                        context={"cycle": cycle_path},
                    )
                )
                break
            path.append(current)
            on_path.add(current)
            current = successor(current)
        finished.update(path)


def _validate_reachability(story: Story, findings: list[Finding]) -> None:
    if story.start_scene_id not in story.scenes:
        return
    reachable: set[str] = set()
    stack = [story.start_scene_id]
    while stack:
        scene_id = stack.pop()
        if scene_id in reachable:
            continue
        reachable.add(scene_id)
        for choice in story.scenes[scene_id].choices:
            if choice.next_scene_id in story.scenes:
                stack.append(choice.next_scene_id)
    for scene_id in sorted(set(story.scenes) - reachable):
        findings.append(
            Finding(
                severity="WARNING",
                code="UNREACHABLE_SCENE",
                message="Scene is unreachable from the start scene.",
                scene_id=scene_id,
            )
        )
