# ui/pages/habits.py
import asyncio

import flet as ft

from core.settings import UI
from services.payloads import InvalidSessionError


class HabitsPage:
    def __init__(self, app):
        self.app = app

        self.title_field = ft.TextField(label="Título", autofocus=True)
        self.description_field = ft.TextField(label="Descripción", multiline=True, min_lines=2)
        self.day_boxes = [ft.Checkbox(label=day.capitalize(), data=day) for day in UI.weekdays]
        self.save_btn = ft.ElevatedButton("Agregar hábito", icon=ft.Icons.ADD, on_click=self.on_save)
        self.result = ft.Text("")

        content = ft.Column(
            controls=[
                ft.Text("Nuevo hábito", size=24, weight=ft.FontWeight.BOLD),
                self.title_field,
                self.description_field,
                ft.Text("Días de la semana", weight=ft.FontWeight.W_600),
                ft.Row(self.day_boxes, wrap=True, spacing=8),
                self.save_btn,
                self.result,
            ],
            expand=True,
            spacing=12,
        )
        self.view = ft.Container(content=content, expand=True, padding=20)

    def _payload(self) -> dict:
        return {
            "titulo": (self.title_field.value or "").strip(),
            "descripcion": (self.description_field.value or "").strip(),
            "diasSemana": [box.data for box in self.day_boxes if box.value],
            "estado": "pendiente",
        }

    def _reset(self):
        self.title_field.value = ""
        self.description_field.value = ""
        for box in self.day_boxes:
            box.value = False

    def on_save(self, _):
        self.app.page.run_task(self._save, self._payload())

    async def _save(self, payload: dict):
        self.save_btn.disabled = True
        self.app.page.update()
        try:
            outcome = await asyncio.to_thread(self.app.client.interceptor.submit_or_queue, payload)
        except InvalidSessionError:
            self.result.value = "Inicia sesión en la pestaña Sincronización para guardar hábitos."
        else:
            if outcome.queued:
                self.result.value = "Sin conexión: el hábito se enviará al recuperar la red."
            else:
                self.result.value = "Hábito guardado."
            self._reset()
        finally:
            self.save_btn.disabled = False
        self.app.refresh_status()
        self.app.page.update()
