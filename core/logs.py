"""Logging setup shared by the offline sync services."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from core.settings import SYNC_LOG_PATH


ROOT_LOGGER = "smartroutine"


def ensure_logger(name: str | None = None, path: Path | str = SYNC_LOG_PATH) -> logging.Logger:
    """Return ``smartroutine.<name>``, attaching the rotating file handler once."""

    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    if not name:
        return root
    return root.getChild(name)


__all__ = ["ensure_logger", "ROOT_LOGGER"]
