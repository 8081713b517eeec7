import pytest
import requests

from services.api_client import ApiError, SmartRoutineApi


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None, content=b""):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        self.content = content

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(body={"_id": "1"})
        self.error = error
        self.posts = []
        self.requests = []
        self.heads = []

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def head(self, url, **kwargs):
        self.heads.append(url)
        if self.error:
            raise self.error
        return self.response


def test_create_posts_json_with_bearer_token():
    session = FakeSession()
    api = SmartRoutineApi("http://backend.test/", timeout=2, session=session)

    body = api.create("habitos", {"titulo": "Leer"}, token="abc")

    assert body == {"_id": "1"}
    url, kwargs = session.posts[0]
    assert url == "http://backend.test/api/habitos/nuevo"
    assert kwargs["json"] == {"titulo": "Leer"}
    assert kwargs["headers"]["Authorization"] == "Bearer abc"
    assert kwargs["timeout"] == 2


def test_create_without_token_sends_no_authorization():
    session = FakeSession()
    SmartRoutineApi("http://backend.test", session=session).create("habitos", {})
    _, kwargs = session.posts[0]
    assert "Authorization" not in kwargs["headers"]


def test_non_success_status_raises_api_error():
    session = FakeSession(response=FakeResponse(status_code=500, body={"message": "boom"}))
    with pytest.raises(ApiError) as info:
        SmartRoutineApi("http://backend.test", session=session).create("habitos", {})
    assert info.value.status == 500


def test_non_json_reply_raises_api_error():
    session = FakeSession(response=FakeResponse(status_code=200, body=None))
    with pytest.raises(ApiError):
        SmartRoutineApi("http://backend.test", session=session).create("habitos", {})


def test_transport_errors_become_api_errors():
    session = FakeSession(error=requests.ConnectionError("refused"))
    api = SmartRoutineApi("http://backend.test", session=session)
    with pytest.raises(ApiError):
        api.create("habitos", {})
    with pytest.raises(ApiError):
        api.fetch("/manifest.json")
    assert api.ping() is False


def test_subscription_endpoint():
    session = FakeSession(response=FakeResponse(body={"ok": True}))
    SmartRoutineApi("http://backend.test", session=session).save_subscription({"endpoint": "e"})
    url, kwargs = session.posts[0]
    assert url == "http://backend.test/api/notificaciones/save-subscription"
    assert kwargs["json"] == {"endpoint": "e"}


def test_url_keeps_absolute_targets():
    api = SmartRoutineApi("http://backend.test", session=FakeSession())
    assert api.url("/icons/icon-192.png") == "http://backend.test/icons/icon-192.png"
    assert api.url("https://cdn.test/x.js") == "https://cdn.test/x.js"


def test_backup_requires_zip_content_type():
    zipped = FakeResponse(headers={"content-type": "application/zip"}, content=b"PK\x03\x04")
    assert SmartRoutineApi("http://b.test", session=FakeSession(response=zipped)).download_backup() == b"PK\x03\x04"

    html = FakeResponse(headers={"content-type": "text/html"}, content=b"<html>")
    with pytest.raises(ApiError):
        SmartRoutineApi("http://b.test", session=FakeSession(response=html)).download_backup()

    failed = FakeResponse(status_code=503)
    with pytest.raises(ApiError):
        SmartRoutineApi("http://b.test", session=FakeSession(response=failed)).download_backup()
