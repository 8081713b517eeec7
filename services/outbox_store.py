from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlmodel import Session, select
from sqlalchemy import delete, func

from core.logs import ensure_logger
from core.settings import OUTBOX
from datetime_utils import ensure_utc, utc_now
from models.pending_op import PendingOp
from storage.db import get_engine, get_session, init_db


_KIND_MAP = dict(OUTBOX.kind_aliases)


def normalize_kind(label: Optional[str]) -> str:
    """Map a producer label onto the endpoint kind it is delivered to."""

    key = (label or "").strip().lower()
    return _KIND_MAP.get(key, OUTBOX.default_kind)


def _next_try(attempts: int) -> datetime:
    delay = min(OUTBOX.max_backoff_sec, 2 ** max(attempts, 0))
    return utc_now() + timedelta(seconds=delay)


@dataclass
class PendingOperation:
    id: int
    kind: str
    payload: dict
    attempts: int
    last_error: Optional[str]
    created_at: datetime
    next_try_at: datetime


def _to_operation(row: PendingOp) -> PendingOperation:
    try:
        payload = json.loads(row.payload)
    except json.JSONDecodeError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    return PendingOperation(
        id=row.id,
        kind=row.kind,
        payload=payload,
        attempts=row.attempts,
        last_error=row.last_error,
        created_at=ensure_utc(row.created_at),
        next_try_at=ensure_utc(row.next_try_at),
    )


def _dumps(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


class OutboxStore:
    """Durable queue of writes that have not reached the backend yet."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = get_session,
        engine=None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine
        self.logger = ensure_logger("outbox")

    def initialize(self) -> int:
        version = init_db(self._engine or get_engine())
        self.logger.debug("Outbox schema at version %s", version)
        return version

    def enqueue(self, kind: str, payload: dict) -> int:
        record = PendingOp(
            kind=normalize_kind(kind),
            payload=_dumps(payload),
            created_at=utc_now(),
            next_try_at=utc_now(),
        )
        with self._session_factory() as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            op_id = record.id
        self.logger.info("Queued %s operation #%s", record.kind, op_id)
        return op_id

    def list_all(self) -> List[PendingOperation]:
        with self._session_factory() as session:
            rows = list(session.exec(select(PendingOp).order_by(PendingOp.id.asc())))
        return [_to_operation(row) for row in rows]

    def list_due(self, now: Optional[datetime] = None) -> List[PendingOperation]:
        """Operations a drain should attempt now, oldest first."""

        stmt = select(PendingOp).order_by(PendingOp.id.asc())
        if OUTBOX.backoff_enabled:
            stmt = stmt.where(PendingOp.next_try_at <= (now or utc_now()))
        if OUTBOX.max_attempts is not None:
            stmt = stmt.where(PendingOp.attempts < OUTBOX.max_attempts)
        with self._session_factory() as session:
            rows = list(session.exec(stmt))
        return [_to_operation(row) for row in rows]

    def get(self, op_id: int) -> Optional[PendingOperation]:
        with self._session_factory() as session:
            row = session.get(PendingOp, op_id)
            return _to_operation(row) if row else None

    def remove(self, op_id: int) -> None:
        with self._session_factory() as session:
            # a bulk delete matches zero rows when a parallel drain got here first
            session.exec(delete(PendingOp).where(PendingOp.id == op_id))
            session.commit()

    def update_payload(self, op_id: int, kind: str, payload: dict) -> None:
        with self._session_factory() as session:
            record = session.get(PendingOp, op_id)
            if not record:
                return
            record.kind = normalize_kind(kind)
            record.payload = _dumps(payload)
            session.add(record)
            session.commit()

    def record_failure(self, op_id: int, error: str) -> None:
        with self._session_factory() as session:
            record = session.get(PendingOp, op_id)
            if not record:
                return
            record.attempts += 1
            record.last_error = error[:1000]
            record.next_try_at = _next_try(record.attempts)
            session.add(record)
            session.commit()

    def count(self) -> int:
        with self._session_factory() as session:
            return int(session.exec(select(func.count()).select_from(PendingOp)).one())

    def clear(self) -> int:
        with self._session_factory() as session:
            result = session.exec(delete(PendingOp))
            session.commit()
            removed = result.rowcount or 0
        self.logger.info("Outbox cleared (%s operations)", removed)
        return removed


__all__ = ["OutboxStore", "PendingOperation", "normalize_kind"]
