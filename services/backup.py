from __future__ import annotations

from pathlib import Path
from typing import Optional

from core.logs import ensure_logger
from core.settings import BACKUP
from services.api_client import SmartRoutineApi
from storage.backup import write_backup_archive


def download_backup(
    api: SmartRoutineApi,
    directory: Optional[Path] = None,
    keep_days: Optional[int] = None,
) -> Path:
    """Fetch the server-side ZIP backup and store it as ``respaldo-<date>.zip``."""

    logger = ensure_logger("backup")
    content = api.download_backup()
    path = write_backup_archive(
        content,
        directory or BACKUP.directory,
        keep_days=BACKUP.keep_days if keep_days is None else keep_days,
    )
    logger.info("Backup saved to %s (%s bytes)", path, len(content))
    return path


__all__ = ["download_backup"]
