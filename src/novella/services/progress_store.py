"""Persistence of the player's resume position."""
from __future__ import annotations

import logging

from novella.data.errors import DataError
from novella.data.kv_store import JsonFileStore
from novella.data.story_codec import position_from_payload, position_to_payload
from novella.domain.state import PlayerPosition

logger = logging.getLogger(__name__)

PROGRESS_KEY = "vn_player_save"


class ProgressStore:
    """Reads and writes the single progress record; loading never raises."""

    def __init__(self, store: JsonFileStore, *, key: str = PROGRESS_KEY) -> None:
        self._store = store
        self._key = key

    def save(self, position: PlayerPosition) -> None:
        """Persist the position, replacing any previous record."""
        self._store.write(self._key, position_to_payload(position))

    def load(self) -> PlayerPosition | None:
        """Return the saved position, or None if it is absent or unreadable."""
        if not self._store.exists(self._key):
            return None
        try:
            return position_from_payload(self._store.read(self._key))
        except DataError as exc:
            logger.warning("Ignoring unreadable progress record: %s", exc)
            return None

    def has_save(self) -> bool:
        return self.load() is not None

    def clear(self) -> None:
        self._store.delete(self._key)
