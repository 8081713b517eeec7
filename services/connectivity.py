"""Online/offline state with listeners for the offline-to-online transition."""

from __future__ import annotations

import asyncio
import threading
from typing import Callable, List, Optional

from core.logs import ensure_logger


Listener = Callable[[], None]


class ConnectivityMonitor:
    def __init__(self, probe: Optional[Callable[[], bool]] = None, initial: bool = True) -> None:
        self.probe = probe
        self._online = initial
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self.logger = ensure_logger("sync")

    def is_online(self) -> bool:
        return self._online

    def add_listener(self, callback: Listener) -> None:
        with self._lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def set_online(self, online: bool) -> bool:
        """Record the reported state; returns True when this was an online transition."""

        now_online = bool(online)
        with self._lock:
            was_online = self._online
            self._online = now_online
            listeners = list(self._listeners)
        if was_online == now_online:
            return False
        if not now_online:
            self.logger.info("Connection lost")
            return False

        self.logger.info("Back online, notifying %s listener(s)", len(listeners))
        for callback in listeners:
            try:
                callback()
            except Exception as exc:
                self.logger.error("Online listener %r failed: %s", callback, exc)
        return True

    def check(self) -> bool:
        """Run the probe once (when configured) and return the current state."""

        if self.probe is not None:
            try:
                online = bool(self.probe())
            except Exception as exc:
                self.logger.warning("Connectivity probe failed: %s", exc)
                online = False
            self.set_online(online)
        return self._online

    async def watch(self, interval: float, stop: Optional[asyncio.Event] = None) -> None:
        while stop is None or not stop.is_set():
            await asyncio.to_thread(self.check)
            try:
                if stop is None:
                    await asyncio.sleep(interval)
                else:
                    await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue


__all__ = ["ConnectivityMonitor"]
