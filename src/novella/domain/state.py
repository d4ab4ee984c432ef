"""Player-side state tracking."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class PlaybackPhase(Enum):
    """What kind of input the playback engine is waiting for."""

    ADVANCING = "advancing"
    AWAITING_INLINE_CHOICE = "awaiting_inline_choice"
    AWAITING_SCENE_CHOICE = "awaiting_scene_choice"
    SCENE_TRANSITION = "scene_transition"
    SCENE_ENDED = "scene_ended"


@dataclass(slots=True)
class PlayerPosition:
    """Resume position persisted after every playback transition."""

    scene_id: str
    step_index: int
    timestamp: datetime

    def __post_init__(self) -> None:
        # Naive timestamps are taken as UTC.
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)


class EndOfScript:
    """Sentinel returned when the current scene script has been exhausted."""

    _instance: "EndOfScript | None" = None

    def __new__(cls) -> "EndOfScript":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END_OF_SCRIPT"

    def __bool__(self) -> bool:
        return False


END_OF_SCRIPT = EndOfScript()
