from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from nicegui import ui

from paramdash.common.theme import ThemeMode, get_theme, set_theme
from paramdash.config import ConnectionSettings, normalize_namespace
from paramdash.core.selection import KeyValueStore
from paramdash.state import connection_state


class SettingsPage:
    """Settings tab page: robot connection and theme."""

    def __init__(
        self, store: KeyValueStore, reconnect: Callable[[ConnectionSettings], Awaitable[None]]
    ) -> None:
        self.store = store
        self.reconnect = reconnect
        self.uri_input: ui.input | None = None
        self.namespace_input: ui.input | None = None

    async def apply_connection(self) -> None:
        uri = (self.uri_input.value if self.uri_input else "").strip()
        if not uri.startswith(("ws://", "wss://")):
            ui.notify("Connection URI must start with ws:// or wss://", color="warning")
            return
        settings = ConnectionSettings(
            uri=uri,
            namespace=normalize_namespace(self.namespace_input.value if self.namespace_input else ""),
        )
        settings.save(self.store)
        logging.info("Connection settings saved: %s %s", settings.uri, settings.namespace or "(no namespace)")
        await self.reconnect(settings)

    def build(self) -> None:
        current = ConnectionSettings.load(self.store)
        with ui.card().classes("w-full"):
            ui.label("Connection").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2 w-full"):
                self.uri_input = ui.input(label="rosbridge URI", value=current.uri).classes("w-80")
                self.namespace_input = ui.input(label="Robot namespace", value=current.namespace).classes("w-60")
                ui.button("Save & connect", on_click=self.apply_connection).props("unelevated").bind_visibility_from(
                    connection_state, "mock", backward=lambda v: not v
                )
            ui.label("Mock mode: the dashboard is serving an in-memory robot").classes(
                "text-sm text-warning"
            ).bind_visibility_from(connection_state, "mock")

        with ui.card().classes("w-full"):
            ui.label("Theme").classes("text-md font-medium")
            saved_mode = get_theme()
            start_value = "System" if saved_mode == "system" else ("Light" if saved_mode == "light" else "Dark")
            mode_toggle = ui.toggle(options=["System", "Light", "Dark"], value=start_value).props("dense")

            def _on_mode() -> None:
                val = (mode_toggle.value or "System").lower()
                mode: ThemeMode = "system" if val.startswith("s") else ("light" if val.startswith("l") else "dark")
                set_theme(mode)
                logging.debug(f"Set theme to mode: {mode}")

            mode_toggle.on_value_change(lambda e: _on_mode())
