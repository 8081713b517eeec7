"""Versioned shell and runtime caches with cache-first serving."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from urllib.parse import urlsplit

import requests
from sqlmodel import Session, select
from sqlalchemy import delete

from core.logs import ensure_logger
from core.settings import API, CACHE, CacheSettings
from datetime_utils import utc_now
from models.cached_asset import CachedAsset
from services.api_client import ApiError, SmartRoutineApi
from storage.db import get_cache_engine, get_cache_session, init_cache_db


NETWORK_ERRORS = (ApiError, requests.RequestException, OSError)


class InstallError(RuntimeError):
    """The shell cache could not be populated completely."""


@dataclass
class Request:
    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


@dataclass
class CachedResponse:
    url: str
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


Fetcher = Callable[[Request], CachedResponse]


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}" if parts.netloc else ""


def cache_key(url: str, origin: Optional[str] = None) -> str:
    """Key for ``url``: path and query for the app origin, the full URL otherwise."""

    parts = urlsplit(url)
    key = parts.path or "/"
    if parts.query:
        key = f"{key}?{parts.query}"
    if parts.netloc and _origin(url) != _origin(origin or API.base_url):
        return f"{parts.scheme.lower()}://{parts.netloc.lower()}{key}"
    return key


def api_fetcher(api: SmartRoutineApi) -> Fetcher:
    def _fetch(request: Request) -> CachedResponse:
        response = api.fetch(
            request.url,
            request.method,
            headers=request.headers or None,
            data=request.body,
        )
        return CachedResponse(
            url=request.url,
            status_code=response.status_code,
            headers=dict(response.headers),
            content=response.content,
        )

    return _fetch


class CacheStorage:
    """Named caches persisted in SQLite, one row per (cache, url)."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = get_cache_session,
        engine=None,
        origin: Optional[str] = None,
    ):
        self._session_factory = session_factory
        self._engine = engine
        self.origin = origin or API.base_url

    def initialize(self) -> None:
        init_cache_db(self._engine or get_cache_engine())

    def names(self) -> List[str]:
        with self._session_factory() as session:
            rows = session.exec(select(CachedAsset.cache_name).distinct())
            return sorted(rows)

    def keys(self, cache_name: str) -> List[str]:
        with self._session_factory() as session:
            stmt = select(CachedAsset.url).where(CachedAsset.cache_name == cache_name)
            return sorted(session.exec(stmt))

    def match(self, url: str, cache_name: str) -> Optional[CachedResponse]:
        with self._session_factory() as session:
            row = session.get(CachedAsset, (cache_name, cache_key(url, self.origin)))
            if row is None:
                return None
            try:
                headers = json.loads(row.headers) if row.headers else {}
            except json.JSONDecodeError:
                headers = {}
            return CachedResponse(
                url=row.url,
                status_code=row.status_code,
                headers=headers,
                content=row.content,
                from_cache=True,
            )

    def put(self, cache_name: str, url: str, response: CachedResponse) -> None:
        key = cache_key(url, self.origin)
        headers = json.dumps(response.headers or {}, ensure_ascii=False, sort_keys=True)
        with self._session_factory() as session:
            row = session.get(CachedAsset, (cache_name, key))
            if row is None:
                row = CachedAsset(cache_name=cache_name, url=key)
            row.status_code = response.status_code
            row.headers = headers
            row.content = response.content
            row.stored_at = utc_now()
            session.add(row)
            session.commit()

    def delete(self, cache_name: str) -> bool:
        with self._session_factory() as session:
            result = session.exec(delete(CachedAsset).where(CachedAsset.cache_name == cache_name))
            session.commit()
            return bool(result.rowcount)


class CacheManager:
    def __init__(
        self,
        storage: CacheStorage,
        fetcher: Fetcher,
        settings: CacheSettings = CACHE,
    ) -> None:
        self.storage = storage
        self.fetcher = fetcher
        self.settings = settings
        self.logger = ensure_logger("cache")

    @property
    def generations(self) -> tuple[str, str]:
        return (self.settings.shell_cache, self.settings.dynamic_cache)

    def install(self) -> List[str]:
        """Download every shell asset; nothing is kept unless all of them arrive."""

        fetched: List[CachedResponse] = []
        failures: List[str] = []
        for url in self.settings.shell_assets:
            try:
                response = self.fetcher(Request(url))
            except NETWORK_ERRORS as exc:
                failures.append(f"{url}: {exc}")
                continue
            if not response.ok:
                failures.append(f"{url}: HTTP {response.status_code}")
                continue
            fetched.append(response)

        if failures:
            self.storage.delete(self.settings.shell_cache)
            raise InstallError("shell cache incomplete: " + "; ".join(failures))

        for url, response in zip(self.settings.shell_assets, fetched):
            self.storage.put(self.settings.shell_cache, url, response)
        self.logger.info("Installed %s (%s assets)", self.settings.shell_cache, len(fetched))
        return list(self.settings.shell_assets)

    def activate(self) -> List[str]:
        current = set(self.generations)
        removed = []
        for name in self.storage.names():
            if name in current:
                continue
            self.storage.delete(name)
            removed.append(name)
        if removed:
            self.logger.info("Removed stale caches: %s", ", ".join(removed))
        return removed

    def match(self, url: str) -> Optional[CachedResponse]:
        for name in self.generations:
            hit = self.storage.match(url, name)
            if hit is not None:
                return hit
        return None

    def fetch(self, request: Request) -> CachedResponse:
        if request.method.upper() != "GET":
            return self.fetcher(request)

        cached = self.match(request.url)
        if cached is not None:
            return cached

        try:
            response = self.fetcher(request)
        except NETWORK_ERRORS as exc:
            fallback = self._fallback()
            if fallback is None:
                raise
            self.logger.info("Network unavailable for %s, serving cached root: %s", request.url, exc)
            return fallback

        if response.ok:
            self.storage.put(self.settings.dynamic_cache, request.url, response)
        return response

    def _fallback(self) -> Optional[CachedResponse]:
        for url in self.settings.fallback_urls:
            hit = self.match(url)
            if hit is not None:
                return hit
        return None


__all__ = [
    "CacheManager",
    "CacheStorage",
    "CachedResponse",
    "InstallError",
    "Request",
    "api_fetcher",
    "cache_key",
]
