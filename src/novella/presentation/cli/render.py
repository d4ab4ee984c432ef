"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import sys
import textwrap
import time
from typing import Callable, Sequence, TextIO

from novella.core.types import CHARACTER_POSITIONS
from novella.services import StepView
from novella.services.story_graph_validator import Finding, format_finding

_TEXT_WIDTH = 72


def debug_enabled() -> bool:
    """Return True only when NOVELLA_DEBUG is explicitly set to '1'."""
    return os.getenv("NOVELLA_DEBUG") == "1"


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_menu(title: str, options: Sequence[str]) -> None:
    """Display a menu section with numbered options."""
    render_heading(title)
    for idx, label in enumerate(options, start=1):
        print(f"{idx}. {label}")


def format_stage(view: StepView) -> str:
    """Return the three character slots as ``[left | center | right]``."""
    slots = []
    for position in CHARACTER_POSITIONS:
        character = view.stage.get(position)
        slots.append(character.name if character is not None else "-")
    return "[" + " | ".join(slots) + "]"


def render_scene_header(view: StepView) -> None:
    render_heading(view.scene_title or view.scene_id)
    if debug_enabled():
        print(f"(scene={view.scene_id} step={view.step_index} phase={view.phase.value})")
        print(f"(background={view.background_url})")
    print(format_stage(view))


def render_speaker(view: StepView) -> None:
    if view.speaker:
        print(f"{view.speaker}:")


def wrap_dialogue(text: str) -> str:
    return textwrap.fill(text, width=_TEXT_WIDTH, break_long_words=False) if text else ""


def reveal_text(
    text: str,
    *,
    delay_ms: int,
    stream: TextIO | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Print text one character at a time, then end the line."""
    out = stream or sys.stdout
    for char in wrap_dialogue(text):
        out.write(char)
        out.flush()
        if delay_ms:
            sleep(delay_ms / 1000)
    out.write("\n")
    out.flush()


def render_choices(labels: Sequence[str]) -> None:
    """Display numbered choices."""
    if not labels:
        return
    for idx, label in enumerate(labels, start=1):
        print(f"  {idx}. {label}")


def render_findings(findings: Sequence[Finding]) -> None:
    if not findings:
        print("No problems found.")
        return
    for finding in findings:
        print(f"- {format_finding(finding)}")
