from __future__ import annotations

import asyncio
from concurrent.futures import Future
from datetime import datetime
from typing import Optional, Set

from core.logs import ensure_logger
from core.settings import SYNC
from datetime_utils import to_rfc3339_utc, utc_now
from services.background_sync import BackgroundSync, SyncEvent
from services.connectivity import ConnectivityMonitor
from services.outbox_store import OutboxStore
from services.outbox_submitter import DrainResult, OutboxSubmitter


class SyncService:
    """Wakes the outbox submitter on startup, on reconnect and on sync-tag delivery."""

    def __init__(
        self,
        submitter: OutboxSubmitter,
        connectivity: ConnectivityMonitor,
        background_sync: BackgroundSync,
        store: Optional[OutboxStore] = None,
    ) -> None:
        self.submitter = submitter
        self.connectivity = connectivity
        self.background_sync = background_sync
        self.store = store or submitter.store
        self.logger = ensure_logger("sync")
        self.last_result: Optional[DrainResult] = None
        self.last_drain_at: Optional[datetime] = None
        self._bound = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._inflight: Set[Future] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    def bind(self) -> None:
        """Hook the online listener and the sync tag; repeated calls are no-ops."""

        if self._bound:
            return
        self.connectivity.add_listener(self.on_online)
        self.background_sync.on(SYNC.tag, self.on_sync)
        self._bound = True

    async def start(self) -> Optional[DrainResult]:
        self._loop = asyncio.get_running_loop()
        self.bind()
        if not SYNC.drain_on_startup:
            return None
        self.logger.info("Startup drain")
        return await self.drain()

    async def run(self, stop: Optional[asyncio.Event] = None) -> None:
        """Connectivity polling and periodic tag flushing until ``stop`` is set."""

        self.bind()
        await asyncio.gather(
            self.connectivity.watch(SYNC.connectivity_poll_sec, stop),
            self.background_sync.run_periodic(SYNC.periodic_interval_sec, stop),
        )

    # ------------------------------------------------------------------
    # Triggers
    def drain_now(self) -> DrainResult:
        result = self.submitter.drain_once()
        self.last_result = result
        self.last_drain_at = utc_now()
        return result

    async def drain(self) -> DrainResult:
        return await asyncio.to_thread(self.drain_now)

    def on_online(self) -> None:
        # each transition drains on its own; overlapping drains are tolerated
        loop = self._loop
        if loop is not None and loop.is_running():
            future = asyncio.run_coroutine_threadsafe(self.drain(), loop)
            self._inflight.add(future)
            future.add_done_callback(self._drain_done)
            return
        try:
            self.drain_now()
        except Exception as exc:
            self.logger.error("Drain after reconnect failed: %s", exc)

    def _drain_done(self, future: Future) -> None:
        self._inflight.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self.logger.error("Drain after reconnect failed: %s", exc)

    def on_sync(self, event: SyncEvent) -> None:
        if event.tag != SYNC.tag:
            return
        event.wait_until(self._drain_for_tag())

    async def _drain_for_tag(self) -> DrainResult:
        result = await self.drain()
        if result.offline:
            raise RuntimeError("still offline")
        leftover = len(result.failed) + len(result.skipped)
        if leftover:
            raise RuntimeError(f"{leftover} operation(s) still pending")
        return result

    # ------------------------------------------------------------------
    def status(self) -> dict:
        last = self.last_result
        return {
            "online": self.connectivity.is_online(),
            "queueSize": self.store.count(),
            "pendingTags": self.background_sync.pending_tags(),
            "lastDrainAt": to_rfc3339_utc(self.last_drain_at),
            "lastDrain": {
                "delivered": len(last.delivered),
                "failed": len(last.failed),
                "skipped": len(last.skipped),
                "offline": last.offline,
            }
            if last
            else None,
        }


__all__ = ["SyncService"]
