"""AI-assisted scene writing through the Anthropic API.

The service turns a free-text directive plus the current scene into a
ScenePatch. Every failure (missing credential, API/network error, a reply that
is not the expected JSON object) is logged and reported as ``None``; only an
overlapping request raises, with GenerationInProgressError.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, List, Mapping

import anthropic

from novella.data.errors import DataValidationError
from novella.domain.defs import Choice, DialogueLine, Scene, ScenePatch, ScriptChoice
from novella.services.errors import GenerationInProgressError
from novella.services.factories import make_element_id

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TIMEOUT = 120

SYSTEM_PROMPT = "You are a creative writing helper for a visual novel engine."

_RESPONSE_FORMAT = """\
Return ONLY a JSON object with the following fields (all optional, only return what makes sense to change):
{
  "script": [
    {
      "id": "optional_id",
      "speaker": "string",
      "text": "string",
      "choices": [ { "text": "Choice inside dialogue", "nextDialogueId": "target_id" } ],
      "nextDialogueId": "optional_auto_jump_id"
    }
  ],
  "choices": [ { "text": "End Scene Choice", "nextSceneId": "scene_id" } ]
}

Important:
1. "script" is an array of dialogue steps.
2. "choices" inside script are for branching WITHIN the scene.
3. "choices" at root are for leaving the scene.

Do not wrap in markdown code blocks. Just raw JSON."""


def summarize_scene(scene: Scene) -> str:
    """Render the scene script as ``id [speaker]: text`` rows."""
    return "\n".join(f"{line.id} [{line.speaker}]: {line.text}" for line in scene.script)


def build_generation_prompt(directive: str, scene: Scene) -> str:
    return (
        f'Based on the user\'s request: "{directive}", generate or update the dialogue '
        "script and choices for the current scene.\n\n"
        f"Current Scene Context:\n{summarize_scene(scene)}\n\n"
        f"{_RESPONSE_FORMAT}"
    )


class SceneGenerationService:
    """Facade over the Anthropic client with a one-request-at-a-time busy flag.

    Parameters
    ----------
    client : anthropic.AsyncAnthropic | None
        Injected client. When omitted, one is created on first use if
        ``ANTHROPIC_API_KEY`` is set; otherwise generation reports ``None``.
    """

    def __init__(
        self,
        client: Any = None,
        *,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def generate(self, directive: str, scene: Scene) -> ScenePatch | None:
        """Request a patch for ``scene``; raises only when a request is already pending."""
        if self._busy:
            raise GenerationInProgressError()
        self._busy = True
        try:
            client = self._resolve_client()
            if client is None:
                logger.warning("Scene generation unavailable: ANTHROPIC_API_KEY is not set.")
                return None
            try:
                text = await self._request(client, build_generation_prompt(directive, scene))
            except Exception:
                logger.exception("Scene generation request failed")
                return None
        finally:
            self._busy = False

        patch = parse_scene_patch(text)
        if patch is None:
            return None
        return assign_patch_ids(patch, scene)

    def _resolve_client(self) -> Any:
        if self._client is not None:
            return self._client
        api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        if not api_key:
            return None
        self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=self._timeout)
        return self._client

    async def _request(self, client: Any, prompt: str) -> str:
        response = await client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )


# ----------------------------------------------------------------------
# Response parsing
# ----------------------------------------------------------------------


def parse_scene_patch(text: str | None) -> ScenePatch | None:
    """Parse a raw JSON reply into a ScenePatch; anything else yields None.

    Elements without an id keep an empty id here; ``assign_patch_ids`` fills them.
    """
    if not text:
        logger.warning("Scene generation returned an empty reply.")
        return None
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Scene generation reply is not raw JSON: %s", exc)
        return None
    try:
        patch = _patch_from_payload(raw)
    except DataValidationError as exc:
        logger.warning("Scene generation reply has the wrong shape: %s", exc)
        return None
    if patch.is_empty:
        logger.warning("Scene generation reply contains neither script nor choices.")
        return None
    return patch


def _patch_from_payload(raw: object) -> ScenePatch:
    data = _require_mapping(raw, "patch")
    patch = ScenePatch()
    if data.get("script") is not None:
        patch.script = [
            _line_from_payload(entry, f"script[{index}]")
            for index, entry in enumerate(_require_list(data.get("script"), "script"))
        ]
    if data.get("choices") is not None:
        choices: List[Choice] = []
        for index, entry in enumerate(_require_list(data.get("choices"), "choices")):
            context = f"choices[{index}]"
            choice_data = _require_mapping(entry, context)
            choices.append(
                Choice(
                    id=_optional_str(choice_data.get("id"), f"{context}.id"),
                    text=_require_str(choice_data.get("text"), f"{context}.text"),
                    next_scene_id=_require_str(
                        choice_data.get("nextSceneId"), f"{context}.nextSceneId"
                    ),
                )
            )
        patch.choices = choices
    return patch


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
                    id=_optional_str(choice_data.get("id"), f"{choice_ctx}.id"),
                    text=_require_str(choice_data.get("text"), f"{choice_ctx}.text"),
                    next_dialogue_id=_require_str(
                        choice_data.get("nextDialogueId"), f"{choice_ctx}.nextDialogueId"
                    ),
                )
            )
    next_dialogue_id = data.get("nextDialogueId")
    if next_dialogue_id is not None:
        next_dialogue_id = _require_str(next_dialogue_id, f"{context}.nextDialogueId")
    return DialogueLine(
        id=_optional_str(data.get("id"), f"{context}.id"),
        speaker=_optional_str(data.get("speaker"), f"{context}.speaker"),
        text=_require_str(data.get("text"), f"{context}.text"),
        choices=choices,
        next_dialogue_id=next_dialogue_id or None,
    )


def _require_mapping(value: object, context: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DataValidationError(f"{context} must be an object.")
    return value


def _require_list(value: object, context: str) -> list:
    if not isinstance(value, list):
        raise DataValidationError(f"{context} must be a list.")
    return value


def _require_str(value: object, context: str) -> str:
    if not isinstance(value, str):
        raise DataValidationError(f"{context} must be a string.")
    return value


def _optional_str(value: object, context: str) -> str:
    if value is None:
        return ""
    return _require_str(value, context)


# ----------------------------------------------------------------------
# Id assignment
# ----------------------------------------------------------------------


def assign_patch_ids(patch: ScenePatch, scene: Scene) -> ScenePatch:
    """Give fresh ids to patch elements that lack one or collide inside the patch.

    Scene-level choices always get fresh ids. Fresh ids never reuse an id that
    already exists in the scene.
    """
    if patch.script is not None:
        existing_line_ids = {line.id for line in scene.script}
        used: set[str] = set()
        for line in patch.script:
            if not line.id or line.id in used:
                if line.id:
                    logger.warning("Generated line id %r is duplicated; assigning a new id.", line.id)
                line.id = make_element_id("d", used | existing_line_ids)
            used.add(line.id)
            used_choice_ids: set[str] = set()
            for choice in line.choices or []:
                if not choice.id or choice.id in used_choice_ids:
                    choice.id = make_element_id("sc", used_choice_ids)
                used_choice_ids.add(choice.id)
    if patch.choices is not None:
        taken = {choice.id for choice in scene.choices}
        for choice in patch.choices:
            choice.id = make_element_id("ch", taken)
            taken.add(choice.id)
    return patch
