import json

from sqlalchemy import text
from sqlmodel import Session

from core.settings import OUTBOX
from services.outbox_store import OutboxStore, normalize_kind
from storage import migrations


def test_enqueue_assigns_increasing_ids_and_lists_oldest_first(store):
    first = store.enqueue("habitos", {"titulo": "Leer"})
    second = store.enqueue("habitos", {"titulo": "Correr"})
    third = store.enqueue("habitos", {"titulo": "Meditar"})

    assert first < second < third
    entries = store.list_all()
    assert [e.id for e in entries] == [first, second, third]
    assert [e.payload["titulo"] for e in entries] == ["Leer", "Correr", "Meditar"]
    assert store.count() == 3


def test_ids_are_not_reused_after_removal(store):
    first = store.enqueue("habitos", {"titulo": "A"})
    second = store.enqueue("habitos", {"titulo": "B"})
    store.remove(second)
    store.remove(first)

    third = store.enqueue("habitos", {"titulo": "C"})
    assert third > second


def test_remove_twice_or_unknown_id_is_a_noop(store):
    op_id = store.enqueue("habitos", {"titulo": "A"})
    keep = store.enqueue("habitos", {"titulo": "B"})

    store.remove(op_id)
    store.remove(op_id)
    store.remove(9999)

    assert [e.id for e in store.list_all()] == [keep]


def test_enqueue_accepts_any_payload_shape(store):
    op_id = store.enqueue("habitos", {"nested": {"values": [1, 2]}, "when": object()})
    entry = store.get(op_id)
    assert entry.payload["nested"] == {"values": [1, 2]}
    assert isinstance(entry.payload["when"], str)


def test_kind_aliases_collapse_to_default_kind():
    assert normalize_kind("habito") == "habitos"
    assert normalize_kind("posts") == "habitos"
    assert normalize_kind("Habitos ") == "habitos"
    assert normalize_kind("something-else") == OUTBOX.default_kind
    assert normalize_kind(None) == OUTBOX.default_kind


def test_enqueue_normalizes_kind(store):
    op_id = store.enqueue("habito", {"titulo": "A"})
    assert store.get(op_id).kind == "habitos"


def test_record_failure_keeps_operation_and_tracks_attempts(store):
    op_id = store.enqueue("habitos", {"titulo": "A"})
    store.record_failure(op_id, "timeout")
    store.record_failure(op_id, "boom" * 500)

    entry = store.get(op_id)
    assert entry.attempts == 2
    assert len(entry.last_error) == 1000
    assert entry.next_try_at >= entry.created_at
    # backoff is disabled by default, the operation stays due
    assert [e.id for e in store.list_due()] == [op_id]


def test_update_payload_and_clear(store):
    op_id = store.enqueue("habitos", {"titulo": "A"})
    store.update_payload(op_id, "habito", {"titulo": "B"})
    entry = store.get(op_id)
    assert entry.payload == {"titulo": "B"}
    assert entry.kind == "habitos"

    store.enqueue("habitos", {"titulo": "C"})
    assert store.clear() == 2
    assert store.list_all() == []


def test_initialize_is_idempotent(store, engine):
    assert store.initialize() == migrations.SCHEMA_VERSION
    assert store.initialize() == migrations.SCHEMA_VERSION
    with engine.connect() as conn:
        version = conn.execute(text("PRAGMA user_version")).scalar()
    assert version == migrations.SCHEMA_VERSION


def test_legacy_queue_is_merged_into_pending(tmp_path):
    from storage.db import make_engine

    engine = make_engine(tmp_path / "legacy.sqlite")
    with engine.begin() as conn:
        migrations.ensure_pending_table(conn)
        conn.execute(text("PRAGMA user_version = 1"))
        conn.execute(
            text(
                """
                INSERT INTO pending (kind, payload, attempts, created_at, next_try_at)
                VALUES ('habito', '{"titulo": "viejo"}', 0, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """
            )
        )
        conn.execute(text("CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT, payload TEXT)"))
        conn.execute(
            text("INSERT INTO posts (payload) VALUES (:payload)"),
            {"payload": json.dumps({"titulo": "post"})},
        )

    store = OutboxStore(session_factory=lambda: Session(engine), engine=engine)
    store.initialize()

    entries = store.list_all()
    assert [e.kind for e in entries] == ["habitos", "habitos"]
    assert [e.payload["titulo"] for e in entries] == ["viejo", "post"]
    with engine.connect() as conn:
        remaining = conn.execute(
            text("SELECT name FROM sqlite_master WHERE type='table' AND name='posts'")
        ).first()
    assert remaining is None
