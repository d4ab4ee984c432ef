"""Service layer exports."""

from .content_store import ContentStore
from .editor_service import StoryEditor
from .errors import GenerationInProgressError, StructuralEditError
from .generation_service import SceneGenerationService
from .playback_service import PlaybackEngine, StepView
from .progress_store import ProgressStore
from .story_graph_validator import Finding, format_finding, validate_story

__all__ = [
    "ContentStore",
    "Finding",
    "GenerationInProgressError",
    "PlaybackEngine",
    "ProgressStore",
    "SceneGenerationService",
    "StepView",
    "StoryEditor",
    "StructuralEditError",
    "format_finding",
    "validate_story",
]
