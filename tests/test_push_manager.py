import json

from core.settings import PUSH
from services.api_client import ApiError
from services.push_manager import GRANTED, PushManager, url_base64_to_bytes


class FakeRegistration:
    def __init__(self, permission=GRANTED, fail_subscribe=False):
        self.permission = permission
        self.fail_subscribe = fail_subscribe
        self.subscribe_calls = []
        self.shown = []

    def request_permission(self):
        return self.permission

    def subscribe(self, *, application_server_key, user_visible_only):
        self.subscribe_calls.append((application_server_key, user_visible_only))
        if self.fail_subscribe:
            raise RuntimeError("push service unavailable")
        return {"endpoint": "https://push.example/abc", "keys": {"p256dh": "k", "auth": "a"}}

    def show_notification(self, title, options):
        self.shown.append((title, options))


class FakeApi:
    def __init__(self, error=None):
        self.error = error
        self.saved = []

    def save_subscription(self, subscription):
        if self.error:
            raise self.error
        self.saved.append(subscription)


class FakeClient:
    def __init__(self, url):
        self.url = url
        self.focused = False

    def focus(self):
        self.focused = True
        return self


class FakeClients:
    def __init__(self, *clients):
        self.clients = list(clients)
        self.opened = []

    def match_all(self):
        return list(self.clients)

    def open_window(self, url):
        self.opened.append(url)
        return url


def test_key_decoding_handles_missing_padding():
    assert url_base64_to_bytes("AQID") == b"\x01\x02\x03"
    assert url_base64_to_bytes("AQI") == b"\x01\x02"
    key = url_base64_to_bytes(PUSH.application_server_key)
    assert len(key) == 65
    assert key[0] == 0x04


def test_subscribe_posts_subscription_to_backend():
    api = FakeApi()
    registration = FakeRegistration()

    subscription = PushManager(api).subscribe(registration)

    assert subscription["endpoint"] == "https://push.example/abc"
    assert api.saved == [subscription]
    key, visible = registration.subscribe_calls[0]
    assert visible is True
    assert key == url_base64_to_bytes(PUSH.application_server_key)


def test_denied_permission_does_not_subscribe():
    api = FakeApi()
    registration = FakeRegistration(permission="denied")

    assert PushManager(api).subscribe(registration) is None
    assert registration.subscribe_calls == []
    assert api.saved == []


def test_subscription_failures_are_logged_not_raised():
    api = FakeApi()
    assert PushManager(api).subscribe(FakeRegistration(fail_subscribe=True)) is None

    failing_api = FakeApi(error=ApiError("500", status=500))
    subscription = PushManager(failing_api).subscribe(FakeRegistration())
    assert subscription is not None


def test_json_push_is_rendered():
    registration = FakeRegistration()
    data = json.dumps({"title": "Recordatorio", "body": "Beber agua", "url": "/habitos"}).encode()

    notification = PushManager(None).handle_push(data, registration)

    assert notification.title == "Recordatorio"
    title, options = registration.shown[0]
    assert title == "Recordatorio"
    assert options["body"] == "Beber agua"
    assert options["data"] == {"url": "/habitos"}
    assert options["icon"] == PUSH.icon
    assert options["vibrate"] == list(PUSH.vibrate)


def test_plain_text_push_uses_defaults():
    notification = PushManager(None).build_notification("Hola".encode())
    assert notification.title == PUSH.default_title
    assert notification.body == "Hola"
    assert notification.url == PUSH.default_url


def test_empty_push_uses_fallback_text():
    notification = PushManager(None).build_notification(None)
    assert notification.body == PUSH.fallback_text


def test_json_push_without_fields_uses_default_body():
    notification = PushManager(None).build_notification(b"{}")
    assert notification.title == PUSH.default_title
    assert notification.body == PUSH.default_body


def test_click_focuses_matching_window():
    manager = PushManager(None)
    notification = manager.build_notification(json.dumps({"url": "/habitos"}).encode())
    other = FakeClient("http://localhost:3000/perfil")
    match = FakeClient("http://localhost:3000/habitos")
    clients = FakeClients(other, match)

    result = manager.handle_notification_click(notification, clients)

    assert result is match
    assert match.focused and not other.focused
    assert clients.opened == []
    assert notification.closed is True


def test_click_opens_window_when_none_matches():
    manager = PushManager(None)
    notification = manager.build_notification(json.dumps({"url": "/habitos"}).encode())
    clients = FakeClients(FakeClient("http://localhost:3000/perfil"))

    manager.handle_notification_click(notification, clients)

    assert clients.opened == ["/habitos"]
