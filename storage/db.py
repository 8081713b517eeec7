# smartroutine/storage/db.py
import threading
from pathlib import Path

from sqlmodel import SQLModel, create_engine, Session

from core.settings import DB_PATH, CACHE_DB_PATH

# Ensure SQLModel metadata is populated
import models.pending_op  # noqa: F401
import models.cached_asset  # noqa: F401
from models.cached_asset import CachedAsset
from storage import migrations


CACHE_TABLES = [CachedAsset.__table__]

_init_lock = threading.Lock()


def make_engine(path: Path | str):
    db_file = Path(path)
    db_file.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_file.as_posix()}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )


_engine = make_engine(DB_PATH)
_cache_engine = make_engine(CACHE_DB_PATH)


def init_db(engine=None) -> int:
    """Create or upgrade the outbox schema; safe to call repeatedly."""

    with _init_lock:
        return migrations.run_all(engine or _engine)


def init_cache_db(engine=None) -> None:
    with _init_lock:
        SQLModel.metadata.create_all(engine or _cache_engine, tables=CACHE_TABLES)


def get_engine():
    return _engine


def get_cache_engine():
    return _cache_engine


def get_session() -> Session:
    return Session(_engine)


def get_cache_session() -> Session:
    return Session(_cache_engine)
