"""Data layer utilities for storing and decoding JSON records."""

from .errors import DataError, DataLoadError, DataValidationError
from .kv_store import JsonFileStore
from .paths import get_records_dir, get_user_data_dir

__all__ = [
    "DataError",
    "DataLoadError",
    "DataValidationError",
    "JsonFileStore",
    "get_records_dir",
    "get_user_data_dir",
]
