"""Cached request/response pairs grouped by cache generation."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from datetime_utils import utc_now


class CachedAsset(SQLModel, table=True):
    """One response per (cache_name, url); newer responses overwrite older ones."""

    cache_name: str = Field(primary_key=True)
    url: str = Field(primary_key=True)
    status_code: int = Field(default=200)
    headers: Optional[str] = None
    content: bytes = Field(default=b"")
    stored_at: datetime = Field(default_factory=utc_now)


__all__ = ["CachedAsset"]
