from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from core.logs import ensure_logger
from services.api_client import ApiError, SmartRoutineApi
from services.connectivity import ConnectivityMonitor
from services.outbox_store import OutboxStore, PendingOperation, normalize_kind
from services.payloads import (
    InvalidSessionError,
    SessionProvider,
    prepare_payload,
    response_error,
    session_from_disk,
)


@dataclass
class DrainResult:
    delivered: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    offline: bool = False

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed)


class OutboxSubmitter:
    """Replays queued operations against the backend, one at a time, oldest first."""

    def __init__(
        self,
        store: OutboxStore,
        api: SmartRoutineApi,
        session_provider: SessionProvider = session_from_disk,
        connectivity: Optional[ConnectivityMonitor] = None,
    ) -> None:
        self.store = store
        self.api = api
        self.session_provider = session_provider
        self.connectivity = connectivity
        self.logger = ensure_logger("submitter")

    def drain_once(self) -> DrainResult:
        result = DrainResult()
        if self.connectivity is not None and not self.connectivity.is_online():
            result.offline = True
            return result

        for entry in self.store.list_due():
            outcome = self._deliver(entry)
            if outcome is True:
                result.delivered.append(entry.id)
            elif outcome is False:
                result.failed.append(entry.id)
            else:
                result.skipped.append(entry.id)

        if result.delivered or result.failed or result.skipped:
            self.logger.info(
                "Drain finished: %s delivered, %s failed, %s skipped",
                len(result.delivered),
                len(result.failed),
                len(result.skipped),
            )
        return result

    def _deliver(self, entry: PendingOperation) -> Optional[bool]:
        session = self.session_provider()
        try:
            payload = prepare_payload(entry.payload, session)
        except InvalidSessionError as exc:
            self.logger.warning("Operation #%s not sent: %s", entry.id, exc)
            return None

        kind = normalize_kind(entry.kind)
        if kind != entry.kind or payload != entry.payload:
            self.store.update_payload(entry.id, kind, payload)

        try:
            body = self.api.create(kind, payload, token=session.token)
        except ApiError as exc:
            self.logger.warning("Operation #%s failed: %s", entry.id, exc)
            self.store.record_failure(entry.id, str(exc))
            return False
        except Exception as exc:
            self.logger.error("Operation #%s crashed: %s", entry.id, exc)
            self.store.record_failure(entry.id, str(exc))
            return False

        error = response_error(body)
        if error:
            self.logger.warning("Operation #%s rejected by backend: %s", entry.id, error)
            self.store.record_failure(entry.id, error)
            return False

        self.store.remove(entry.id)
        self.logger.info("Operation #%s delivered", entry.id)
        return True


__all__ = ["DrainResult", "OutboxSubmitter"]
