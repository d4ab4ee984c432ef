"""CLI configuration helpers for options persistence."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from novella.data.paths import get_user_data_dir
from novella.services.controllers import DEFAULT_ADMIN_CODE

_DEFAULT_TEXT_MODE = "instant"
_DEFAULT_TYPING_DELAY_MS = 30
_DEFAULT_LOG_LEVEL = "WARNING"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def default_config() -> Dict[str, Any]:
    return {
        "text_display_mode": _DEFAULT_TEXT_MODE,
        "typing_delay_ms": _DEFAULT_TYPING_DELAY_MS,
        "log_level": _DEFAULT_LOG_LEVEL,
        "admin_code": DEFAULT_ADMIN_CODE,
    }


def _normalize_text_mode(value: object) -> str:
    return "typewriter" if value == "typewriter" else _DEFAULT_TEXT_MODE


def _normalize_typing_delay(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 1000:
        return value
    return _DEFAULT_TYPING_DELAY_MS


def _normalize_log_level(value: object) -> str:
    if isinstance(value, str) and value.upper() in _LOG_LEVELS:
        return value.upper()
    return _DEFAULT_LOG_LEVEL


def _normalize_admin_code(value: object) -> str:
    if isinstance(value, str) and value.strip().isdigit():
        return value.strip()
    return DEFAULT_ADMIN_CODE


def normalize_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "text_display_mode": _normalize_text_mode(raw.get("text_display_mode")),
        "typing_delay_ms": _normalize_typing_delay(raw.get("typing_delay_ms")),
        "log_level": _normalize_log_level(raw.get("log_level")),
        "admin_code": _normalize_admin_code(raw.get("admin_code")),
    }


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default_config()
    except (OSError, ValueError) as exc:
        logging.getLogger(__name__).warning("Ignoring unreadable config %s: %s", config_path, exc)
        return default_config()
    if not isinstance(raw, dict):
        return default_config()
    return normalize_config(raw)


def save_config(config: Dict[str, Any], path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = normalize_config(config)
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
