"""Conversion between the story/progress dataclasses and their JSON records.

Field names here are the storage contract and must stay stable.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from novella.core.types import CHARACTER_POSITIONS
from novella.data.errors import DataValidationError
from novella.domain.defs import (
    Character,
    Choice,
    DialogueLine,
    Scene,
    ScriptChoice,
    Story,
)
from novella.domain.state import PlayerPosition

StoryPayload = Dict[str, Any]
ProgressPayload = Dict[str, Any]


def story_to_payload(story: Story) -> StoryPayload:
    """Return a JSON-serializable content record."""
    return {
        "title": story.title,
        "startSceneId": story.start_scene_id,
        "scenes": {scene_id: _scene_to_payload(scene) for scene_id, scene in story.scenes.items()},
    }


def story_from_payload(raw: object) -> Story:
    """Rebuild a Story from a content record, raising DataValidationError on bad shape."""
    data = _require_mapping(raw, "story")
    title = _require_str(data.get("title"), "story.title")
    start_scene_id = _require_str(data.get("startSceneId"), "story.startSceneId")
    raw_scenes = _require_mapping(data.get("scenes"), "story.scenes")
    scenes: Dict[str, Scene] = {}
    for scene_id, scene_payload in raw_scenes.items():
        scenes[scene_id] = _scene_from_payload(scene_payload, f"story.scenes['{scene_id}']")
    return Story(title=title, start_scene_id=start_scene_id, scenes=scenes)


def position_to_payload(position: PlayerPosition) -> ProgressPayload:
    return {
        "sceneId": position.scene_id,
        "stepIndex": position.step_index,
        "date": position.timestamp.isoformat(),
    }


def position_from_payload(raw: object) -> PlayerPosition:
    """Rebuild a PlayerPosition from a progress record."""
    data = _require_mapping(raw, "progress")
    scene_id = _require_str(data.get("sceneId"), "progress.sceneId")
    step_index = _require_int(data.get("stepIndex"), "progress.stepIndex")
    return PlayerPosition(
        scene_id=scene_id,
        step_index=step_index,
        timestamp=_coerce_timestamp(data.get("date")),
    )


def _scene_to_payload(scene: Scene) -> Dict[str, Any]:
    return {
        "id": scene.id,
        "title": scene.title,
        "backgroundUrl": scene.background_url,
        "script": [_line_to_payload(line) for line in scene.script],
        "characters": [
            {
                "id": character.id,
                "name": character.name,
                "imageUrl": character.image_url,
                "position": character.position,
            }
            for character in scene.characters
        ],
        "choices": [
            {"id": choice.id, "text": choice.text, "nextSceneId": choice.next_scene_id}
            for choice in scene.choices
        ],
    }


def _line_to_payload(line: DialogueLine) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"id": line.id, "speaker": line.speaker, "text": line.text}
    if line.choices is not None:
        payload["choices"] = [
            {"id": choice.id, "text": choice.text, "nextDialogueId": choice.next_dialogue_id}
            for choice in line.choices
        ]
    if line.next_dialogue_id is not None:
        payload["nextDialogueId"] = line.next_dialogue_id
    return payload


def _scene_from_payload(raw: object, context: str) -> Scene:
    data = _require_mapping(raw, context)
    script = [
        _line_from_payload(entry, f"{context}.script[{index}]")
        for index, entry in enumerate(_require_list(data.get("script"), f"{context}.script"))
    ]
    characters = [
        _character_from_payload(entry, f"{context}.characters[{index}]")
        for index, entry in enumerate(_optional_list(data.get("characters"), f"{context}.characters"))
    ]
    choices: List[Choice] = []
    for index, entry in enumerate(_optional_list(data.get("choices"), f"{context}.choices")):
        choice_ctx = f"{context}.choices[{index}]"
        choice_data = _require_mapping(entry, choice_ctx)
        choices.append(
            Choice(
                id=_require_str(choice_data.get("id"), f"{choice_ctx}.id"),
                text=_require_str(choice_data.get("text"), f"{choice_ctx}.text"),
                next_scene_id=_require_str(choice_data.get("nextSceneId"), f"{choice_ctx}.nextSceneId"),
            )
        )
    return Scene(
        id=_require_str(data.get("id"), f"{context}.id"),
        title=_require_str(data.get("title"), f"{context}.title"),
        background_url=_optional_str(data.get("backgroundUrl"), f"{context}.backgroundUrl") or "",
        script=script,
        characters=characters,
        choices=choices,
    )


def _line_from_payload(raw: object, context: str) -> DialogueLine:
    data = _require_mapping(raw, context)
    choices: List[ScriptChoice] | None = None
    if data.get("choices") is not None:
        choices = []
        for index, entry in enumerate(_require_list(data.get("choices"), f"{context}.choices")):
            choice_ctx = f"{context}.choices[{index}]"
            choice_data = _require_mapping(entry, choice_ctx)
            choices.append(
                ScriptChoice(
                    id=_require_str(choice_data.get("id"), f"{choice_ctx}.id"),
                    text=_require_str(choice_data.get("text"), f"{choice_ctx}.text"),
                    next_dialogue_id=_require_str(
                        choice_data.get("nextDialogueId"), f"{choice_ctx}.nextDialogueId"
                    ),
                )
            )
    return DialogueLine(
        id=_require_str(data.get("id"), f"{context}.id"),
        speaker=_require_str(data.get("speaker"), f"{context}.speaker"),
        text=_require_str(data.get("text"), f"{context}.text"),
        choices=choices,
        next_dialogue_id=_optional_str(data.get("nextDialogueId"), f"{context}.nextDialogueId"),
    )


def _character_from_payload(raw: object, context: str) -> Character:
    data = _require_mapping(raw, context)
    position = _require_str(data.get("position"), f"{context}.position")
    if position not in CHARACTER_POSITIONS:
        raise DataValidationError(
            f"{context}.position must be one of {', '.join(CHARACTER_POSITIONS)}."
        )
    return Character(
        id=_require_str(data.get("id"), f"{context}.id"),
        name=_require_str(data.get("name"), f"{context}.name"),
        image_url=_require_str(data.get("imageUrl"), f"{context}.imageUrl"),
        position=position,  # type: ignore[arg-type]
    )


def _coerce_timestamp(value: object) -> datetime:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise DataValidationError("progress.date must be an ISO-8601 timestamp.") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    # Millisecond epoch integers are accepted too.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, ValueError, OSError) as exc:
            raise DataValidationError("progress.date is out of range.") from exc
    raise DataValidationError("progress.date must be a timestamp.")


def _require_mapping(value: object, context: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DataValidationError(f"{context} must be an object/dict.")
    return value


def _require_list(value: object, context: str) -> list:
    if not isinstance(value, list):
        raise DataValidationError(f"{context} must be a list.")
    return value


def _optional_list(value: object, context: str) -> list:
    if value is None:
        return []
    return _require_list(value, context)


def _require_str(value: object, context: str) -> str:
    if not isinstance(value, str):
        raise DataValidationError(f"{context} must be a string.")
    return value


def _optional_str(value: object, context: str) -> str | None:
    if value is None:
        return None
    return _require_str(value, context)


def _require_int(value: object, context: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise DataValidationError(f"{context} must be an integer.")
    return value
