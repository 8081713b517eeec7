# ui/pages/sync_status.py
import asyncio

import flet as ft

from datetime_utils import ensure_utc
from services.payloads import InvalidSessionError


class SyncStatusPage:
    def __init__(self, app):
        self.app = app

        self.online_text = ft.Text()
        self.queue_text = ft.Text()
        self.last_drain_text = ft.Text()

        self.sync_btn = ft.ElevatedButton("Sincronizar ahora", icon=ft.Icons.SYNC, on_click=self.sync_now)
        self.backup_btn = ft.OutlinedButton(
            "Descargar respaldo",
            icon=ft.Icons.DOWNLOAD,
            on_click=self.download_backup,
        )
        self.refresh_log_btn = ft.TextButton("Actualizar log", icon=ft.Icons.ARTICLE, on_click=self.refresh_log)
        self.log_view = ft.Text("", selectable=True)
        self.user_field = ft.TextField(label="ID de usuario", value=self.app.current_user(), width=320)
        self.token_field = ft.TextField(label="Token", password=True, can_reveal_password=True, width=320)
        self.sign_in_btn = ft.ElevatedButton("Guardar sesión", icon=ft.Icons.LOGIN, on_click=self.save_session)
        self.sign_out_btn = ft.TextButton("Cerrar sesión", icon=ft.Icons.LOGOUT, on_click=self.clear_session)

        content = ft.Column(
            controls=[
                ft.Text("Sincronización", size=24, weight=ft.FontWeight.BOLD),
                ft.Row([self.user_field, self.token_field], wrap=True, spacing=12),
                ft.Row([self.sign_in_btn, self.sign_out_btn], spacing=12),
                self.online_text,
                self.queue_text,
                self.last_drain_text,
                ft.Row([self.sync_btn, self.backup_btn], spacing=12),
                ft.Column([
                    ft.Text("Log de sincronización", size=18, weight=ft.FontWeight.W_600),
                    ft.Container(self.log_view, height=200, padding=10),
                    self.refresh_log_btn,
                ], spacing=8),
            ],
            expand=True,
            spacing=16,
        )
        self.view = ft.Container(content=content, expand=True, padding=20)

    def _format_dt(self, value) -> str:
        if not value:
            return "—"
        if isinstance(value, str):
            return value
        return ensure_utc(value).astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")

    def refresh_status(self):
        status = self.app.sync_status() or {}
        self.online_text.value = "Conectado" if status.get("online") else "Sin conexión"
        self.queue_text.value = f"Pendientes por enviar: {status.get('queueSize', 0)}"
        last = status.get("lastDrain") or {}
        summary = (
            f" ({last.get('delivered', 0)} enviados, {last.get('failed', 0)} fallidos)" if last else ""
        )
        self.last_drain_text.value = "Última sincronización: " + self._format_dt(status.get("lastDrainAt")) + summary

    def sync_now(self, _):
        self.app.page.run_task(self._sync)

    async def _sync(self):
        await asyncio.to_thread(self.app.client.connectivity.check)
        await self.app.client.sync.drain()
        self.refresh_status()
        self.app.page.update()

    def download_backup(self, _):
        try:
            path = self.app.download_backup()
            self.app.show_message(f"Respaldo guardado en {path}")
        except Exception as e:
            self.app.show_message(f"Error en el respaldo: {e}")

    def refresh_log(self, _):
        self.log_view.value = self.app.read_sync_log()
        self.app.page.update()

    def save_session(self, _):
        try:
            self.app.sign_in(self.user_field.value or "", self.token_field.value)
        except InvalidSessionError:
            self.app.show_message("El ID de usuario debe tener 24 caracteres hexadecimales.")
            return
        self.token_field.value = ""
        self.app.show_message("Sesión guardada.")

    def clear_session(self, _):
        self.app.sign_out()
        self.user_field.value = ""
        self.token_field.value = ""
        self.app.show_message("Sesión cerrada.")
