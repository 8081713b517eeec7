# ui/app_shell.py
from __future__ import annotations

import asyncio
import flet as ft

from core.settings import SYNC, SYNC_LOG_PATH, UI
from services.backup import download_backup
from services.cache_manager import InstallError
from services.client import OfflineClient, build_client
from services import payloads

from .pages.habits import HabitsPage
from .pages.sync_status import SyncStatusPage


class AppShell:
    def __init__(self, page: ft.Page, client: OfflineClient | None = None):
        self.page = page
        self.page.title = UI.app_title
        self.page.horizontal_alignment = ft.CrossAxisAlignment.STRETCH
        self.page.vertical_alignment = ft.MainAxisAlignment.START

        self.client = client or build_client()

        self._habits = HabitsPage(self)
        self._sync = SyncStatusPage(self)

        self.content = ft.Container(expand=True)
        self.nav = ft.NavigationRail(
            selected_index=0,
            label_type=ft.NavigationRailLabelType.ALL,
            min_width=90,
            group_alignment=-0.9,
            on_change=self.on_nav_change,
            destinations=[
                ft.NavigationRailDestination(
                    icon=ft.Icons.CHECK_CIRCLE_OUTLINE,
                    selected_icon=ft.Icons.CHECK_CIRCLE,
                    label="Hábitos",
                ),
                ft.NavigationRailDestination(
                    icon=ft.Icons.SYNC_OUTLINED,
                    selected_icon=ft.Icons.SYNC,
                    label="Sincronización",
                ),
            ],
        )
        self.root = ft.Row(
            controls=[ft.Container(self.nav, width=88), ft.VerticalDivider(width=1), self.content],
            expand=True,
            spacing=0,
        )

        self._stop = asyncio.Event()
        self._background: asyncio.Task | None = None

    # ---------- mount ----------
    def mount(self):
        self.page.controls.clear()
        self.page.add(self.root)
        self.content.content = self._habits.view
        self.page.update()
        self._background = self.page.run_task(self._run_background)

    async def _run_background(self):
        worker = self.client.worker
        try:
            await worker.dispatch("install")
            await worker.dispatch("activate")
        except InstallError as exc:
            # no shell cache this session; the outbox still drains
            print("Cache install error:", exc)
            await self.client.sync.start()
        self.refresh_status()
        self.page.update()

        async def _refresh_loop():
            while not self._stop.is_set():
                await asyncio.sleep(SYNC.connectivity_poll_sec)
                self.refresh_status()
                self.page.update()

        await asyncio.gather(
            self.client.sync.run(self._stop),
            _refresh_loop(),
        )

    def stop(self):
        self._stop.set()

    # ---------- navigation ----------
    def on_nav_change(self, e: ft.ControlEvent):
        idx = int(e.control.selected_index)
        if idx == 0:
            self.content.content = self._habits.view
        else:
            self.refresh_status()
            self.content.content = self._sync.view
        self.page.update()

    # ---------- helpers for pages ----------
    def refresh_status(self) -> None:
        self._sync.refresh_status()

    def sync_status(self) -> dict:
        try:
            return self.client.sync.status()
        except Exception as exc:
            print("Sync status error:", exc)
            return {}

    def download_backup(self):
        return download_backup(self.client.api)

    def show_message(self, text: str) -> None:
        self.page.snack_bar = ft.SnackBar(ft.Text(text))
        self.page.snack_bar.open = True
        self.page.update()

    def read_sync_log(self, lines: int = 100) -> str:
        try:
            with open(SYNC_LOG_PATH, "r", encoding="utf-8") as fh:
                content = fh.readlines()
        except FileNotFoundError:
            return "El log de sincronización aún no existe."
        content = [line.rstrip("\n") for line in content[-lines:]]
        return "\n".join(content)

    def current_user(self) -> str:
        return payloads.session_from_disk().user_id or ""

    def sign_in(self, user_id: str, token: str | None = None) -> None:
        payloads.sign_in(user_id.strip(), token=(token or "").strip() or None)
        self.page.run_task(self.client.sync.drain)

    def sign_out(self) -> None:
        payloads.sign_out()
