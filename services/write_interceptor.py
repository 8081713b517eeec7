from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from core.logs import ensure_logger
from core.settings import OUTBOX, SYNC
from services.api_client import ApiError, SmartRoutineApi
from services.background_sync import BackgroundSync
from services.connectivity import ConnectivityMonitor
from services.outbox_store import OutboxStore, normalize_kind
from services.payloads import (
    InvalidSessionError,
    SessionProvider,
    prepare_payload,
    response_error,
    session_from_disk,
)


SENT = "sent"
QUEUED = "queued"


@dataclass(frozen=True)
class SubmitResult:
    status: str
    operation_id: Optional[int] = None
    response: Any = None
    error: Optional[str] = None

    @property
    def queued(self) -> bool:
        return self.status == QUEUED


class WriteInterceptor:
    """Entry point for every mutating UI action: send now, or park it in the outbox."""

    def __init__(
        self,
        store: OutboxStore,
        api: SmartRoutineApi,
        session_provider: SessionProvider = session_from_disk,
        connectivity: Optional[ConnectivityMonitor] = None,
        background_sync: Optional[BackgroundSync] = None,
    ) -> None:
        self.store = store
        self.api = api
        self.session_provider = session_provider
        self.connectivity = connectivity
        self.background_sync = background_sync
        self.logger = ensure_logger("interceptor")

    def submit_or_queue(self, payload: Mapping[str, Any], kind: str = OUTBOX.default_kind) -> SubmitResult:
        session = self.session_provider()
        try:
            data = prepare_payload(payload, session)
        except InvalidSessionError as exc:
            self.logger.error("Write rejected, nothing queued: %s", exc)
            raise

        target = normalize_kind(kind)
        if self.connectivity is not None and not self.connectivity.is_online():
            return self._queue(target, data, "offline")

        try:
            body = self.api.create(target, data, token=session.token)
        except ApiError as exc:
            self.logger.warning("Direct send failed, queueing: %s", exc)
            return self._queue(target, data, str(exc))

        error = response_error(body)
        if error:
            self.logger.warning("Backend rejected direct send, queueing: %s", error)
            return self._queue(target, data, error, response=body)
        return SubmitResult(SENT, response=body)

    def _queue(self, kind: str, data: dict, reason: str, response: Any = None) -> SubmitResult:
        op_id = self.store.enqueue(kind, data)
        self._request_background_sync()
        return SubmitResult(QUEUED, operation_id=op_id, response=response, error=reason)

    def _request_background_sync(self) -> None:
        if self.background_sync is None:
            return
        try:
            self.background_sync.register(SYNC.tag)
        except RuntimeError as exc:
            self.logger.warning("Could not register background sync: %s", exc)


__all__ = ["QUEUED", "SENT", "SubmitResult", "WriteInterceptor"]
