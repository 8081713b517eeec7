"""Stamping and default-filling of habit payloads before they leave the device."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from core.settings import OUTBOX
from storage.session_store import clear_session, load_session, update_session


_USER_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


class InvalidSessionError(ValueError):
    """The active session has no usable user identifier."""


@dataclass(frozen=True)
class SessionContext:
    user_id: Optional[str] = None
    token: Optional[str] = None

    def is_valid(self) -> bool:
        return validate_user_id(self.user_id)


SessionProvider = Callable[[], SessionContext]


def validate_user_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_USER_ID_RE.match(value))


def session_from_disk(path: Optional[Path] = None) -> SessionContext:
    state = load_session(path)
    return SessionContext(user_id=state.user_id, token=state.token)


def sign_in(user_id: Any, token: Optional[str] = None, path: Optional[Path] = None) -> SessionContext:
    """Persist the signed-in user so later writes and replays are stamped with it."""

    if not validate_user_id(user_id):
        raise InvalidSessionError(f"invalid user id: {user_id!r}")
    state = update_session(path, user_id=user_id, token=token or None)
    return SessionContext(user_id=state.user_id, token=state.token)


def sign_out(path: Optional[Path] = None) -> None:
    clear_session(path)


def prepare_payload(payload: Mapping[str, Any] | None, session: SessionContext) -> Dict[str, Any]:
    """Return a copy of ``payload`` carrying the current user and required defaults.

    The user id always comes from ``session``; whatever the payload held before
    is overwritten. Raises :class:`InvalidSessionError` when the session cannot
    identify a user. Values JSON cannot carry (dates, decimals) are turned into
    strings, the same way the outbox stores them.
    """

    if not session.is_valid():
        raise InvalidSessionError(f"invalid user id: {session.user_id!r}")

    data: Dict[str, Any] = dict(payload or {})
    data[OUTBOX.user_field] = session.user_id

    title = data.get(OUTBOX.title_field)
    if not isinstance(title, str) or not title.strip():
        data[OUTBOX.title_field] = OUTBOX.default_title

    weekdays = data.get(OUTBOX.weekdays_field)
    if not weekdays:
        data[OUTBOX.weekdays_field] = list(OUTBOX.default_weekdays)
    return json.loads(json.dumps(data, ensure_ascii=False, default=str))


def response_error(body: Any) -> Optional[str]:
    """Error indicator carried by a backend reply, ``None`` when it looks accepted."""

    if not isinstance(body, Mapping):
        return f"unexpected response body: {type(body).__name__}"
    for name in OUTBOX.error_fields:
        value = body.get(name)
        if value:
            return str(value)
    return None


__all__ = [
    "InvalidSessionError",
    "SessionContext",
    "SessionProvider",
    "prepare_payload",
    "response_error",
    "session_from_disk",
    "sign_in",
    "sign_out",
    "validate_user_id",
]
