"""Shared type aliases for the core and domain layers."""
from typing import Literal

CharacterPosition = Literal["left", "center", "right"]
Severity = Literal["ERROR", "WARNING"]
AppMode = Literal["HOME", "PLAY", "ADMIN_LOGIN", "ADMIN"]

CHARACTER_POSITIONS: tuple[CharacterPosition, ...] = ("left", "center", "right")

__all__ = ["AppMode", "CHARACTER_POSITIONS", "CharacterPosition", "Severity"]
