"""Versioned schema upgrades for the offline database."""

from __future__ import annotations

import json

from sqlalchemy import text

from core.settings import OUTBOX


def _table_exists(conn, table: str) -> bool:
    result = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name"),
        {"name": table},
    )
    return result.first() is not None


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def _user_version(conn) -> int:
    return int(conn.execute(text("PRAGMA user_version")).scalar() or 0)


def ensure_pending_table(conn) -> None:
    conn.execute(
        text(
            """
            CREATE TABLE IF NOT EXISTS pending (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind VARCHAR NOT NULL,
                payload VARCHAR NOT NULL,
                attempts INTEGER NOT NULL DEFAULT 0,
                last_error VARCHAR,
                created_at DATETIME NOT NULL,
                next_try_at DATETIME NOT NULL
            )
            """
        )
    )
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_pending_kind ON pending (kind)"))
    conn.execute(
        text("CREATE INDEX IF NOT EXISTS ix_pending_next_try_at ON pending (next_try_at)")
    )


def merge_legacy_queues(conn) -> None:
    """Fold the old generic ``posts`` queue and legacy kind labels into ``pending``."""

    aliases = dict(OUTBOX.kind_aliases)
    for legacy, target in aliases.items():
        if legacy == target:
            continue
        conn.execute(
            text("UPDATE pending SET kind = :target WHERE kind = :legacy"),
            {"target": target, "legacy": legacy},
        )

    if not _table_exists(conn, "posts"):
        return

    payload_column = "payload" if _column_exists(conn, "posts", "payload") else "data"
    rows = conn.execute(text(f"SELECT id, {payload_column} FROM posts ORDER BY id ASC")).all()
    target_kind = aliases.get("posts", OUTBOX.default_kind)
    for _, raw in rows:
        payload = raw if isinstance(raw, str) else json.dumps(raw or {}, ensure_ascii=False)
        conn.execute(
            text(
                """
                INSERT INTO pending (kind, payload, attempts, created_at, next_try_at)
                VALUES (:kind, :payload, 0, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """
            ),
            {"kind": target_kind, "payload": payload},
        )
    conn.execute(text("DROP TABLE posts"))


MIGRATIONS = (
    (1, ensure_pending_table),
    (2, merge_legacy_queues),
)

SCHEMA_VERSION = MIGRATIONS[-1][0]


def run_all(engine) -> int:
    """Apply every step newer than ``PRAGMA user_version``; returns the final version."""

    with engine.begin() as conn:
        current = _user_version(conn)
        for version, step in MIGRATIONS:
            if version <= current:
                continue
            step(conn)
            # PRAGMA does not accept bound parameters
            conn.execute(text(f"PRAGMA user_version = {int(version)}"))
            current = version
    return current


__all__ = ["MIGRATIONS", "SCHEMA_VERSION", "run_all"]
