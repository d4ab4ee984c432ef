"""Custom exceptions for data loading and validation."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when stored JSON records are missing or unreadable."""


class DataValidationError(DataError):
    """Raised when JSON content does not match the story or progress shape."""
