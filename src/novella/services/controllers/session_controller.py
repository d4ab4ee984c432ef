"""UI-agnostic session controller that owns the app modes and lifecycle reloads."""
from __future__ import annotations

from novella.core.types import AppMode
from novella.domain.defs import Story
from novella.domain.state import PlayerPosition
from novella.services.content_store import ContentStore
from novella.services.editor_service import StoryEditor
from novella.services.generation_service import SceneGenerationService
from novella.services.playback_service import PlaybackEngine
from novella.services.progress_store import ProgressStore

# Gates the editor UI only; this is not an access-control mechanism.
DEFAULT_ADMIN_CODE = "050412"


class SessionController:
    """
    Coordinates the player and the editor for a single session.

    Responsibilities:
    - Track the current mode (HOME, PLAY, ADMIN_LOGIN, ADMIN)
    - Reload content and progress explicitly when entering play or editor mode
    - Build the playback engine (new game or resume) and the story editor

    Non-responsibilities (handled by presentation layer):
    - Rendering, prompting, reveal timing
    """

    def __init__(
        self,
        content_store: ContentStore,
        progress_store: ProgressStore,
        *,
        generation_service: SceneGenerationService | None = None,
        admin_code: str = DEFAULT_ADMIN_CODE,
    ) -> None:
        self._content_store = content_store
        self._progress_store = progress_store
        self._generation_service = generation_service
        self._admin_code = admin_code
        self._mode: AppMode = "HOME"
        self._story: Story = content_store.load_or_default()
        self._saved_position: PlayerPosition | None = progress_store.load()
        self._engine: PlaybackEngine | None = None
        self._editor: StoryEditor | None = None

    @property
    def mode(self) -> AppMode:
        return self._mode

    @property
    def story(self) -> Story:
        return self._story

    @property
    def has_save(self) -> bool:
        return self._saved_position is not None

    @property
    def engine(self) -> PlaybackEngine | None:
        return self._engine

    @property
    def editor(self) -> StoryEditor | None:
        return self._editor

    @property
    def generation_service(self) -> SceneGenerationService | None:
        return self._generation_service

    def reload_content(self) -> Story:
        """Re-read the story from the content store (sample story if none is saved)."""
        self._story = self._content_store.load_or_default()
        return self._story

    def reload_progress(self) -> PlayerPosition | None:
        """Re-read the saved resume position."""
        self._saved_position = self._progress_store.load()
        return self._saved_position

    def start_new_game(self) -> PlaybackEngine:
        """Enter play mode at the start scene; the old save is overwritten on the first move."""
        self.reload_content()
        self._engine = PlaybackEngine(self._story, self._progress_store)
        self._mode = "PLAY"
        return self._engine

    def continue_game(self) -> PlaybackEngine:
        """Enter play mode at the saved position (or the start if it is gone)."""
        self.reload_content()
        resume = self.reload_progress()
        self._engine = PlaybackEngine(self._story, self._progress_store, resume=resume)
        self._mode = "PLAY"
        return self._engine

    def request_admin(self) -> None:
        self._mode = "ADMIN_LOGIN"

    def submit_admin_code(self, code: str) -> bool:
        """Switch to the editor when the code matches; stay on the prompt otherwise."""
        if self._mode != "ADMIN_LOGIN":
            return False
        if code.strip() != self._admin_code:
            return False
        self.open_editor()
        return True

    def open_editor(self) -> StoryEditor:
        self.reload_content()
        self._editor = StoryEditor(self._story, self._content_store)
        self._mode = "ADMIN"
        return self._editor

    def play_test(self) -> PlaybackEngine:
        """Jump from the editor straight into a fresh playthrough of the edited story."""
        return self.start_new_game()

    def return_home(self) -> None:
        self._engine = None
        self._editor = None
        self._mode = "HOME"
        self.reload_progress()
