"""Persistence of the authored story."""
from __future__ import annotations

import logging

from novella.data.errors import DataError
from novella.data.kv_store import JsonFileStore
from novella.data.story_codec import story_from_payload, story_to_payload
from novella.domain.defs import Story, build_default_story

logger = logging.getLogger(__name__)

CONTENT_KEY = "vn_story_data"


class ContentStore:
    """Reads and writes the content record; loading never raises."""

    def __init__(self, store: JsonFileStore, *, key: str = CONTENT_KEY) -> None:
        self._store = store
        self._key = key

    def save(self, story: Story) -> None:
        """Persist the whole story, replacing any previous record."""
        self._store.write(self._key, story_to_payload(story))

    def load(self) -> Story | None:
        """Return the saved story, or None if it is absent or unreadable."""
        if not self._store.exists(self._key):
            return None
        try:
            return story_from_payload(self._store.read(self._key))
        except DataError as exc:
            logger.warning("Ignoring unreadable story record: %s", exc)
            return None

    def load_or_default(self) -> Story:
        """Return the saved story, or a fresh copy of the sample story."""
        story = self.load()
        if story is None:
            return build_default_story()
        return story
