"""Thin ``requests`` wrapper around the Smart Routine REST backend."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin

import requests

from core.logs import ensure_logger
from core.settings import API


class ApiError(RuntimeError):
    """Transport failure, non-2xx status or an unreadable body."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class SmartRoutineApi:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or API.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else API.timeout_sec
        self.session = session or requests.Session()
        self.logger = ensure_logger("api")

    # ------------------------------------------------------------------
    # helpers
    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _post_json(self, path: str, body: Any, token: Optional[str] = None) -> Any:
        target = self.url(path)
        try:
            response = self.session.post(
                target,
                json=body,
                headers=self._headers(token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ApiError(f"POST {target} failed: {exc}") from exc
        if not response.ok:
            raise ApiError(f"POST {target} returned {response.status_code}", response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"POST {target} returned a non-JSON body", response.status_code) from exc

    # ------------------------------------------------------------------
    # endpoints
    def create(self, kind: str, payload: Mapping[str, Any], *, token: Optional[str] = None) -> Any:
        """Create one resource; returns the decoded reply for the caller to inspect."""

        path = API.create_path_template.format(kind=kind)
        return self._post_json(path, dict(payload), token)

    def save_subscription(self, subscription: Mapping[str, Any]) -> None:
        self._post_json(API.subscription_path, dict(subscription))

    def fetch(self, url: str, method: str = "GET", **kwargs: Any) -> requests.Response:
        target = self.url(url)
        kwargs.setdefault("timeout", self.timeout)
        try:
            return self.session.request(method, target, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(f"{method} {target} failed: {exc}") from exc

    def download_backup(self) -> bytes:
        response = self.fetch(API.backup_path, stream=False)
        if not response.ok:
            raise ApiError(f"Backup download returned {response.status_code}", response.status_code)
        content_type = response.headers.get("content-type") or ""
        if "application/zip" not in content_type:
            raise ApiError(f"Backup response is not a ZIP archive ({content_type or 'no content-type'})")
        return response.content

    def ping(self) -> bool:
        try:
            self.session.head(self.url(API.probe_path), timeout=min(self.timeout, 3.0))
        except requests.RequestException:
            return False
        return True


__all__ = ["ApiError", "SmartRoutineApi"]
