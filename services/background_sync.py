"""Named deferred-sync requests, replayed by a periodic loop.

Callers register a tag (``sync-posts``) when they leave work behind; the loop
dispatches each registered tag to its handler. A handler receives a
:class:`SyncEvent` and hands it the awaitables that make up the work through
:meth:`SyncEvent.wait_until`; the tag only counts as done once all of them
have finished. Failed work keeps the tag registered for the next round.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Awaitable, Callable, Dict, List, Optional, Set

from core.logs import ensure_logger


class SyncEvent:
    def __init__(self, tag: str) -> None:
        self.tag = tag
        self._pending: List[asyncio.Future] = []

    def wait_until(self, work: Awaitable) -> None:
        self._pending.append(asyncio.ensure_future(work))

    async def settle(self) -> List[BaseException]:
        if not self._pending:
            return []
        results = await asyncio.gather(*self._pending, return_exceptions=True)
        return [item for item in results if isinstance(item, BaseException)]


SyncHandler = Callable[[SyncEvent], None]


class BackgroundSync:
    def __init__(self, supported: bool = True) -> None:
        self.supported = supported
        self._tags: Set[str] = set()
        self._handlers: Dict[str, SyncHandler] = {}
        self._lock = threading.Lock()
        self.logger = ensure_logger("sync")

    def on(self, tag: str, handler: SyncHandler) -> None:
        self._handlers[tag] = handler

    def register(self, tag: str) -> None:
        if not self.supported:
            raise RuntimeError("background sync is not available on this platform")
        with self._lock:
            self._tags.add(tag)
        self.logger.debug("Sync tag %s registered", tag)

    def pending_tags(self) -> List[str]:
        with self._lock:
            return sorted(self._tags)

    async def dispatch(self, tag: str) -> bool:
        """Run the handler for ``tag`` and wait for all of its work; True on success."""

        handler = self._handlers.get(tag)
        if handler is None:
            self.logger.warning("No handler for sync tag %s", tag)
            return False

        event = SyncEvent(tag)
        try:
            handler(event)
        except Exception as exc:
            self.logger.error("Sync handler for %s failed: %s", tag, exc)
            return False

        errors = await event.settle()
        if errors:
            for exc in errors:
                self.logger.error("Sync %s failed: %s", tag, exc)
            return False

        with self._lock:
            self._tags.discard(tag)
        return True

    async def flush(self) -> Dict[str, bool]:
        return {tag: await self.dispatch(tag) for tag in self.pending_tags()}

    async def run_periodic(self, interval: float, stop: Optional[asyncio.Event] = None) -> None:
        while stop is None or not stop.is_set():
            await self.flush()
            try:
                if stop is None:
                    await asyncio.sleep(interval)
                else:
                    await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue


__all__ = ["BackgroundSync", "SyncEvent", "SyncHandler"]
