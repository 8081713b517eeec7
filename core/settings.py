"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env or os.environ)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


def get_api_base_url(env: Optional[Mapping[str, str]] = None) -> str:
    """Backend root URL, ``SMART_ROUTINE_API_URL`` wins over the default."""

    environ = dict(env or os.environ)
    value = (environ.get("SMART_ROUTINE_API_URL") or "").strip()
    return (value or "http://localhost:3000").rstrip("/")


APP_NAME = "SmartRoutine"


DATA_DIR = get_default_data_dir(APP_NAME)
STORAGE_DIR = DATA_DIR / "storage"
BACKUP_DIR = DATA_DIR / "backups"
LOG_DIR = DATA_DIR / "logs"

for _dir in (DATA_DIR, STORAGE_DIR, BACKUP_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


DB_PATH = STORAGE_DIR / "offlineDB.sqlite"
CACHE_DB_PATH = STORAGE_DIR / "caches.sqlite"
SESSION_PATH = DATA_DIR / "session.json"
SYNC_LOG_PATH = LOG_DIR / "sync.log"


@dataclass(frozen=True)
class ApiSettings:
    base_url: str = field(default_factory=get_api_base_url)
    timeout_sec: float = 10.0
    create_path_template: str = "/api/{kind}/nuevo"
    subscription_path: str = "/api/notificaciones/save-subscription"
    backup_path: str = "/api/respaldo"
    probe_path: str = "/"


API = ApiSettings()


@dataclass(frozen=True)
class OutboxSettings:
    default_kind: str = "habitos"
    # every known producer label collapses onto the habit creation endpoint
    kind_aliases: tuple[tuple[str, str], ...] = (
        ("habito", "habitos"),
        ("habitos", "habitos"),
        ("posts", "habitos"),
    )
    user_field: str = "usuarioId"
    title_field: str = "titulo"
    weekdays_field: str = "diasSemana"
    default_title: str = "Sin título"
    default_weekdays: tuple[str, ...] = ("lunes",)
    error_fields: tuple[str, ...] = ("message", "error")
    backoff_enabled: bool = False
    max_backoff_sec: int = 30
    max_attempts: Optional[int] = None


OUTBOX = OutboxSettings()


@dataclass(frozen=True)
class SyncSettings:
    tag: str = "sync-posts"
    periodic_interval_sec: int = 60
    connectivity_poll_sec: int = 15
    drain_on_startup: bool = True


SYNC = SyncSettings()


@dataclass(frozen=True)
class CacheSettings:
    version: str = "v1.1"
    shell_prefix: str = "appShell"
    dynamic_prefix: str = "dynamic"
    shell_assets: tuple[str, ...] = (
        "/",
        "/manifest.json",
        "/icons/icon-192.png",
        "/icons/icon-512.png",
    )
    fallback_urls: tuple[str, ...] = ("/", "/index.html")

    @property
    def shell_cache(self) -> str:
        return f"{self.shell_prefix}_{self.version}"

    @property
    def dynamic_cache(self) -> str:
        return f"{self.dynamic_prefix}_{self.version}"


CACHE = CacheSettings()


@dataclass(frozen=True)
class PushSettings:
    application_server_key: str = (
        "BCttsQ8p3udf_sMFr_V2oxw6_w44Wq359S9z2ellDC3nSC_JgdfaoIzIKQd1Lva5bmrgq_EybozJlnAlPIuLIYU"
    )
    default_title: str = "Smart Routine"
    default_body: str = "Tienes una nueva notificación."
    fallback_text: str = "Tienes un nuevo mensaje"
    icon: str = "/icons/icon-192.png"
    badge: str = "/icons/icon-192.png"
    vibrate: tuple[int, ...] = (200, 100, 200)
    default_url: str = "/"


PUSH = PushSettings()


@dataclass(frozen=True)
class UISettings:
    app_title: str = "Smart Routine"
    theme_mode: str = "system"
    color_scheme_seed: str = "#4F46E5"
    window_min_width: int = 480
    window_min_height: int = 600
    weekdays: tuple[str, ...] = (
        "lunes",
        "martes",
        "miércoles",
        "jueves",
        "viernes",
        "sábado",
        "domingo",
    )


UI = UISettings()


@dataclass(frozen=True)
class BackupSettings:
    enabled: bool = True
    directory: Path = BACKUP_DIR
    keep_days: int = 7


BACKUP = BackupSettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "STORAGE_DIR",
    "BACKUP_DIR",
    "LOG_DIR",
    "DB_PATH",
    "CACHE_DB_PATH",
    "SESSION_PATH",
    "SYNC_LOG_PATH",
    "API",
    "OUTBOX",
    "SYNC",
    "CACHE",
    "PUSH",
    "UI",
    "BACKUP",
    "get_api_base_url",
    "get_default_data_dir",
]
