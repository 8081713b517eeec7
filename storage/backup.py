"""Dated backup archives with rotation."""
from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path


BACKUP_PREFIX = "respaldo-"
BACKUP_SUFFIX = ".zip"


def _parse_backup_date(path: Path, prefix: str) -> datetime | None:
    stem = path.stem
    if not stem.startswith(prefix):
        return None
    date_part = stem[len(prefix) :]
    try:
        return datetime.strptime(date_part, "%Y-%m-%d")
    except ValueError:
        return None


def backup_name(day=None) -> str:
    today = day or datetime.now().date()
    return f"{BACKUP_PREFIX}{today.isoformat()}{BACKUP_SUFFIX}"


def write_backup_archive(
    content: bytes,
    backup_dir: str | Path,
    *,
    keep_days: int = 7,
) -> Path:
    """Store ``content`` as today's archive and drop archives past ``keep_days``."""

    backups = Path(backup_dir)
    backups.mkdir(parents=True, exist_ok=True)

    today = datetime.now().date()
    destination = backups / backup_name(today)
    tmp = destination.with_suffix(".tmp")
    try:
        tmp.write_bytes(content)
        os.replace(tmp, destination)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass

    if keep_days > 0:
        cutoff = today - timedelta(days=keep_days - 1)
        for file in backups.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
            backup_date = _parse_backup_date(file, BACKUP_PREFIX)
            if backup_date and backup_date.date() < cutoff:
                try:
                    file.unlink()
                except OSError:
                    pass

    return destination


__all__ = ["backup_name", "write_backup_archive"]
