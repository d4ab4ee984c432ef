"""Service-layer exceptions."""


class StructuralEditError(Exception):
    """Raised when an edit would break the story structure; nothing is changed."""


class GenerationInProgressError(Exception):
    """Raised when content generation is requested while a request is outstanding."""

    def __init__(self, message: str = "Generation already in progress.") -> None:
        super().__init__(message)
