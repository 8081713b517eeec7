"""JSON-backed persistence of the signed-in user."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.settings import SESSION_PATH


@dataclass
class SessionState:
    """What the login screen leaves behind in ``session.json``."""

    user_id: Optional[str] = None
    token: Optional[str] = None


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _load_raw(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_session(path: Optional[Path] = None) -> SessionState:
    target = path or SESSION_PATH
    data = _load_raw(target)
    return SessionState(
        user_id=data.get("user_id"),
        token=data.get("token"),
    )


def save_session(state: SessionState, path: Optional[Path] = None) -> None:
    target = path or SESSION_PATH
    _ensure_parent(target)
    payload = json.dumps(asdict(state), ensure_ascii=False, indent=2, sort_keys=True)
    tmp = target.with_suffix(".tmp")
    try:
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(target)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def update_session(path: Optional[Path] = None, **changes: Any) -> SessionState:
    target = path or SESSION_PATH
    state = load_session(target)
    for key, value in changes.items():
        if hasattr(state, key):
            setattr(state, key, value)
    save_session(state, target)
    return state


def clear_session(path: Optional[Path] = None) -> None:
    save_session(SessionState(), path)


__all__ = ["SessionState", "clear_session", "load_session", "save_session", "update_session"]
