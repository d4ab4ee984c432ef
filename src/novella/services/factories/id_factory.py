"""Utilities for creating collision-safe element identifiers."""
from __future__ import annotations

import secrets
import time
from typing import Callable, Container

_MAX_ATTEMPTS = 32


def make_element_id(
    prefix: str,
    taken: Container[str] = (),
    *,
    clock: Callable[[], float] = time.time,
) -> str:
    """Return ``<prefix>_<millis>_<hex>`` that is not already present in ``taken``."""
    millis = int(clock() * 1000)
    for _ in range(_MAX_ATTEMPTS):
        candidate = f"{prefix}_{millis}_{secrets.token_hex(3)}"
        if candidate not in taken:
            return candidate
    raise RuntimeError(f"Unable to generate a unique id for prefix '{prefix}'.")
