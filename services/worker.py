"""One object per running client that answers every platform lifecycle event."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from core.logs import ensure_logger
from services.background_sync import BackgroundSync
from services.cache_manager import CacheManager, CachedResponse, Request
from services.push_manager import Notification, PushManager, PushRegistration, WindowClients
from services.sync_service import SyncService


class ServiceWorker:
    EVENTS = ("install", "activate", "fetch", "sync", "push", "notificationclick")

    def __init__(
        self,
        cache: CacheManager,
        sync: SyncService,
        push: PushManager,
        background_sync: Optional[BackgroundSync] = None,
    ) -> None:
        self.cache = cache
        self.sync = sync
        self.push = push
        self.background_sync = background_sync or sync.background_sync
        self.state = "parsed"
        self.logger = ensure_logger("worker")

    async def on_install(self) -> None:
        self.state = "installing"
        try:
            await asyncio.to_thread(self.cache.install)
        except Exception:
            self.state = "redundant"
            raise
        self.state = "installed"

    async def on_activate(self) -> None:
        if self.state not in ("installed", "activated"):
            raise RuntimeError(f"cannot activate a worker in state {self.state!r}")
        self.state = "activating"
        await asyncio.to_thread(self.cache.activate)
        await self.sync.start()
        self.state = "activated"

    async def on_fetch(self, request: Request) -> CachedResponse:
        return await asyncio.to_thread(self.cache.fetch, request)

    async def on_sync(self, tag: str) -> bool:
        return await self.background_sync.dispatch(tag)

    async def on_push(self, data: Optional[bytes], registration: PushRegistration) -> Notification:
        return self.push.handle_push(data, registration)

    async def on_notificationclick(self, notification: Notification, clients: WindowClients) -> Any:
        return self.push.handle_notification_click(notification, clients)

    async def dispatch(self, event: str, *args: Any) -> Any:
        if event not in self.EVENTS:
            raise ValueError(f"Unsupported event: {event}")
        self.logger.debug("Dispatching %s", event)
        handler = getattr(self, f"on_{event}")
        return await handler(*args)


__all__ = ["ServiceWorker"]
