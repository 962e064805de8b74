"""Environment helpers for the meme bot."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger("memebot.utils")


def path_from_env(name: str, default: str) -> Path:
    value = os.getenv(name, "").strip() or default
    return Path(value).expanduser()


def secret_from_env(name: str) -> Optional[str]:
    """Return a trimmed secret, treating blank values as unset."""
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def log_level_from_env(name: str, default: str = "INFO") -> str:
    raw = os.getenv(name, "").strip().upper()
    if not raw:
        return default
    if not isinstance(logging.getLevelName(raw), int):
        logger.warning("Invalid log level for %s=%s. Falling back to %s.", name, raw, default)
        return default
    return raw


__all__ = ["log_level_from_env", "path_from_env", "secret_from_env"]
