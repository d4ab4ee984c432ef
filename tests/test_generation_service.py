from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest

from novella.domain.defs import build_default_story
from novella.services import GenerationInProgressError, SceneGenerationService
from novella.services.generation_service import (
    assign_patch_ids,
    build_generation_prompt,
    parse_scene_patch,
    summarize_scene,
)


class _FakeMessages:
    def __init__(self, reply: str | Exception, gate: asyncio.Event | None = None) -> None:
        self._reply = reply
        self._gate = gate
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self._gate is not None:
            await self._gate.wait()
        if isinstance(self._reply, Exception):
            raise self._reply
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self._reply)])


class _FakeClient:
    def __init__(self, reply: str | Exception, gate: asyncio.Event | None = None) -> None:
        self.messages = _FakeMessages(reply, gate)


def _forest():
    return build_default_story().scenes["forest"]


def _generate(service: SceneGenerationService, directive: str = "Add an owl"):
    return asyncio.run(service.generate(directive, _forest()))


def test_prompt_contains_directive_and_scene_summary() -> None:
    scene = build_default_story().scenes["start"]
    assert summarize_scene(scene).splitlines()[0] == (
        "d1 [Stranger]: Hello! This is the beginning of your story."
    )
    prompt = build_generation_prompt("Make it spooky", scene)
    assert '"Make it spooky"' in prompt
    assert "d5 [Stranger]: Where shall we go next?" in prompt
    assert "Just raw JSON." in prompt


def test_generate_returns_patch_with_fresh_ids() -> None:
    reply = json.dumps(
        {
            "script": [
                {"speaker": "Owl", "text": "Hoo.", "nextDialogueId": "g2"},
                {"id": "g2", "speaker": "Owl", "text": "Who goes there?",
                 "choices": [{"text": "Me", "nextDialogueId": "g2"}]},
            ],
            "choices": [{"id": "ch3", "text": "Run", "nextSceneId": "start"}],
        }
    )
    client = _FakeClient(reply)
    service = SceneGenerationService(client, model="test-model")
    patch = _generate(service)

    assert patch is not None
    assert patch.script is not None and patch.choices is not None
    first, second = patch.script
    assert first.id.startswith("d_")
    assert first.next_dialogue_id == "g2"
    assert second.id == "g2"
    assert second.choices is not None and second.choices[0].id.startswith("sc_")
    assert patch.choices[0].id.startswith("ch_")
    assert patch.choices[0].id != "ch3"

    call = client.messages.calls[0]
    assert call["model"] == "test-model"
    assert call["messages"][0]["role"] == "user"
    assert "Add an owl" in call["messages"][0]["content"]
    assert service.busy is False


def test_duplicate_line_ids_in_reply_are_reassigned() -> None:
    reply = json.dumps(
        {"script": [{"id": "x", "speaker": "", "text": "a"}, {"id": "x", "speaker": "", "text": "b"}]}
    )
    patch = _generate(SceneGenerationService(_FakeClient(reply)))
    assert patch is not None and patch.script is not None
    ids = [line.id for line in patch.script]
    assert ids[0] == "x"
    assert ids[1] != "x"
    assert patch.choices is None


@pytest.mark.parametrize(
    "reply",
    [
        "",
        "I cannot help with that.",
        '```json\n{"script": []}\n```',
        json.dumps(["not", "an", "object"]),
        json.dumps({"script": "nope"}),
        json.dumps({"script": [{"speaker": "x"}]}),
        json.dumps({"choices": [{"text": "missing target"}]}),
        json.dumps({}),
    ],
)
def test_unusable_replies_yield_none(reply: str) -> None:
    service = SceneGenerationService(_FakeClient(reply))
    assert _generate(service) is None
    assert service.busy is False


def test_request_failure_yields_none(caplog) -> None:
    service = SceneGenerationService(_FakeClient(ConnectionError("offline")))
    with caplog.at_level("ERROR"):
        assert _generate(service) is None
    assert "Scene generation request failed" in caplog.text
    assert service.busy is False


def test_missing_api_key_yields_none(monkeypatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    service = SceneGenerationService()
    assert _generate(service) is None
    assert service.busy is False


def test_overlapping_request_is_rejected() -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        service = SceneGenerationService(_FakeClient(json.dumps({"choices": []}), gate))
        first = asyncio.create_task(service.generate("one", _forest()))
        await asyncio.sleep(0)
        assert service.busy is True
        with pytest.raises(GenerationInProgressError):
            await service.generate("two", _forest())
        gate.set()
        patch = await first
        assert patch is not None
        assert patch.choices == []
        assert service.busy is False

    asyncio.run(scenario())


def test_parse_scene_patch_keeps_missing_ids_blank() -> None:
    patch = parse_scene_patch(json.dumps({"script": [{"text": "Hi"}]}))
    assert patch is not None and patch.script is not None
    assert patch.script[0].id == ""
    assert patch.script[0].speaker == ""


def test_assign_patch_ids_avoids_existing_scene_line_ids() -> None:
    scene = _forest()
    patch = parse_scene_patch(json.dumps({"script": [{"text": "Hi"}]}))
    assert patch is not None
    assign_patch_ids(patch, scene)
    assert patch.script is not None
    assert patch.script[0].id not in {line.id for line in scene.script}
