"""Factory helpers for creating content elements."""

from .id_factory import make_element_id

__all__ = ["make_element_id"]
