"""UI-agnostic controllers."""

from .session_controller import DEFAULT_ADMIN_CODE, SessionController

__all__ = ["DEFAULT_ADMIN_CODE", "SessionController"]
