"""Push subscription, incoming push rendering and notification click routing."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

from core.logs import ensure_logger
from core.settings import PUSH, PushSettings
from services.api_client import ApiError, SmartRoutineApi


GRANTED = "granted"


class PushRegistration(Protocol):
    def request_permission(self) -> str: ...

    def subscribe(self, *, application_server_key: bytes, user_visible_only: bool) -> Mapping[str, Any]: ...

    def show_notification(self, title: str, options: Mapping[str, Any]) -> None: ...


class WindowClient(Protocol):
    url: str

    def focus(self) -> Any: ...


class WindowClients(Protocol):
    def match_all(self) -> Iterable[WindowClient]: ...

    def open_window(self, url: str) -> Any: ...


@dataclass
class Notification:
    title: str
    body: str
    icon: str
    badge: str
    url: str
    vibrate: tuple[int, ...] = ()
    require_interaction: bool = False
    closed: bool = field(default=False, compare=False)

    def options(self) -> Dict[str, Any]:
        return {
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "data": {"url": self.url},
            "vibrate": list(self.vibrate),
            "requireInteraction": self.require_interaction,
        }

    def close(self) -> None:
        self.closed = True


def url_base64_to_bytes(value: str) -> bytes:
    """Decode URL-safe base64 that may come without ``=`` padding."""

    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class PushManager:
    def __init__(self, api: Optional[SmartRoutineApi], settings: PushSettings = PUSH) -> None:
        self.api = api
        self.settings = settings
        self.logger = ensure_logger("push")

    # ------------------------------------------------------------------
    # subscription
    def subscribe(self, registration: PushRegistration) -> Optional[Mapping[str, Any]]:
        try:
            permission = registration.request_permission()
        except Exception as exc:
            self.logger.error("Notification permission request failed: %s", exc)
            return None
        if permission != GRANTED:
            self.logger.warning("Notification permission %s", permission or "denied")
            return None

        try:
            subscription = registration.subscribe(
                application_server_key=url_base64_to_bytes(self.settings.application_server_key),
                user_visible_only=True,
            )
        except Exception as exc:
            self.logger.error("Push subscription failed: %s", exc)
            return None

        if self.api is not None:
            try:
                self.api.save_subscription(subscription)
                self.logger.info("Push subscription sent to backend")
            except ApiError as exc:
                self.logger.error("Could not deliver push subscription: %s", exc)
        return subscription

    # ------------------------------------------------------------------
    # incoming messages
    def build_notification(self, data: Optional[bytes]) -> Notification:
        settings = self.settings
        message: Dict[str, Any] = {}
        raw = data or b""
        try:
            parsed = json.loads(raw.decode("utf-8"))
            if not isinstance(parsed, dict):
                raise ValueError("push payload is not an object")
            message = parsed
        except (ValueError, UnicodeDecodeError):
            text = raw.decode("utf-8", errors="replace").strip()
            message = {
                "title": settings.default_title,
                "body": text or settings.fallback_text,
                "url": settings.default_url,
            }

        return Notification(
            title=str(message.get("title") or settings.default_title),
            body=str(message.get("body") or settings.default_body),
            icon=settings.icon,
            badge=settings.badge,
            url=str(message.get("url") or settings.default_url),
            vibrate=settings.vibrate,
        )

    def handle_push(self, data: Optional[bytes], registration: PushRegistration) -> Notification:
        notification = self.build_notification(data)
        registration.show_notification(notification.title, notification.options())
        self.logger.info("Push shown: %s", notification.title)
        return notification

    def handle_notification_click(self, notification: Notification, clients: WindowClients) -> Any:
        notification.close()
        target = notification.url or self.settings.default_url
        for client in clients.match_all():
            if target in (client.url or "") and hasattr(client, "focus"):
                return client.focus()
        return clients.open_window(target)


__all__ = [
    "GRANTED",
    "Notification",
    "PushManager",
    "PushRegistration",
    "WindowClient",
    "WindowClients",
    "url_base64_to_bytes",
]
