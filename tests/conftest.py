from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from sqlmodel import Session

from services.outbox_store import OutboxStore
from services.payloads import SessionContext
from storage.db import make_engine


USER_ID = "64b7f0c2a1e4d3b2c1a0f9e8"


class FakeApi:
    """Records every create call; replies are looked up by payload title."""

    def __init__(self, replies=None, default=None):
        self.replies = dict(replies or {})
        self.default = default if default is not None else {"ok": True}
        self.calls: list[tuple[str, dict, str | None]] = []
        self.subscriptions: list[dict] = []

    def create(self, kind, payload, *, token=None):
        self.calls.append((kind, dict(payload), token))
        reply = self.replies.get(payload.get("titulo"), self.default)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def save_subscription(self, subscription):
        self.subscriptions.append(dict(subscription))

    @property
    def titles(self):
        return [payload.get("titulo") for _, payload, _ in self.calls]


@pytest.fixture()
def engine(tmp_path):
    return make_engine(tmp_path / "offlineDB.sqlite")


@pytest.fixture()
def store(engine):
    outbox = OutboxStore(session_factory=lambda: Session(engine), engine=engine)
    outbox.initialize()
    return outbox


@pytest.fixture()
def session():
    return SessionContext(user_id=USER_ID, token="token-1")


@pytest.fixture()
def fake_api():
    return FakeApi()

