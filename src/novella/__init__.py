"""Branching dialogue (visual novel) player and editor."""

__version__ = "0.1.0"
