from __future__ import annotations

import logging
import time

from nicegui import ui

from paramdash.common.logging_config import attach_ui_log, detach_ui_log
from paramdash.core.errors import InvalidEditValue, MalformedHierarchy, NothingSelected, ReadOnlyParameter
from paramdash.core.hierarchy import Group, TreeRow, count_leaves, group_paths, render_rows
from paramdash.core.values import ParamKind, TypedValue
from paramdash.services.tuning import TuningSession
from paramdash.state import EditState, connection_state, parameter_stats


class ParametersPage:
    """Parameters tab page: tree view, inline edit and save selection."""

    def __init__(self, session: TuningSession) -> None:
        self.session = session
        self.expanded: set[str] = set()
        self.search_term = ""
        self.edit = EditState()
        # Widgets
        self.stats_label: ui.label | None = None
        self.response_log: ui.log | None = None
        self.save_button: ui.button | None = None

    # ---- Actions ----

    async def refresh(self) -> None:
        try:
            updated = await self.session.refresh()
        except MalformedHierarchy as e:
            # the whole set is unusable; do not render a partial tree
            logging.error("Cannot build parameter tree: %s", e)
            ui.notify(f"Cannot display parameters: {e}", color="negative")
            self._after_change()
            return
        except Exception as e:
            logging.error("Failed to fetch parameters: %s", e)
            ui.notify(f"Failed to fetch parameters: {e}", color="negative")
            return
        if updated:
            parameter_stats.last_refresh_ts = time.time()
            self._after_change()

    async def commit_edit(self, name: str, value: object | None = None) -> None:
        text = self.edit.text if value is None else value
        self.edit = EditState()
        if isinstance(text, str) and text == "":
            self.render_tree.refresh()
            return
        try:
            result = await self.session.apply_edit(name, text)
        except (InvalidEditValue, ReadOnlyParameter) as e:
            ui.notify(f"{name}: {e}", color="warning")
            logging.warning("Edit of %s rejected: %s", name, e)
            self.render_tree.refresh()
            return
        except Exception as e:
            logging.error("Set parameter failed: %s", e)
            ui.notify(f"Failed to update parameter: {e}", color="negative")
            self.render_tree.refresh()
            return
        if result.successful:
            ui.notify(f"{name} = {result.value.display()}", color="positive")
        else:
            ui.notify(f"Failed to update parameter {name}: {result.reason}", color="negative")
        self._after_change()

    def start_edit(self, name: str, value: TypedValue) -> None:
        if not connection_state.connected or not value.editable:
            return
        self.edit = EditState(name=name, text=value.display())
        self.render_tree.refresh()

    def cancel_edit(self) -> None:
        logging.debug("Cancelled editing %s", self.edit.name)
        self.edit = EditState()
        self.render_tree.refresh()

    def set_selected(self, name: str, flag: bool) -> None:
        self.session.selection.set(name, flag)
        self._update_stats()

    def select_all(self, flag: bool) -> None:
        self.session.selection.select_all(flag)
        self._after_change()

    async def save_selected(self) -> None:
        try:
            message = await self.session.save_selected()
        except NothingSelected as e:
            ui.notify(str(e), color="warning")
            return
        except Exception as e:
            logging.error("Failed to save parameters: %s", e)
            ui.notify(f"Failed to save parameters: {e}", color="negative")
            return
        ui.notify(message or "Parameters saved successfully.", color="positive")

    def expand_all(self) -> None:
        if self.session.tree is not None:
            self.expanded = set(group_paths(self.session.tree))
        self.render_tree.refresh()

    def collapse_all(self) -> None:
        self.expanded = set()
        self.render_tree.refresh()

    def toggle_group(self, path: str) -> None:
        self.expanded ^= {path}
        self.render_tree.refresh()

    def on_search(self, term: str) -> None:
        self.search_term = term or ""
        self.render_tree.refresh()

    def _after_change(self) -> None:
        self._update_stats()
        self.render_tree.refresh()

    def _update_stats(self) -> None:
        stats = self.session.selection.stats()
        parameter_stats.total = int(stats["total"])
        parameter_stats.selected = int(stats["selected"])
        if self.stats_label is not None:
            readonly = sum(1 for v in self.session.params.values() if not v.editable)
            text = f"{stats['selected']} of {stats['total']} selected for save"
            if readonly:
                text += f" · {readonly} read-only"
            self.stats_label.text = text

    # ---- UI ----

    def _group_row(self, row: TreeRow) -> None:
        node = row.node
        assert isinstance(node, Group)
        is_open = node.path in self.expanded
        with ui.row().classes("param-tree-group items-center gap-1 w-full").style(
            f"padding-left: {row.depth * 16}px"
        ).on("click", lambda _=None, p=node.path: self.toggle_group(p)):
            ui.icon("expand_more" if is_open else "chevron_right").classes("text-lg")
            ui.label(node.name).classes("font-medium")
            n = count_leaves(node)
            ui.label(f"{n} parameter{'s' if n != 1 else ''}").classes("text-xs text-[var(--pd-muted)]")

    def _leaf_row(self, name: str, value: TypedValue, label: str, depth: int) -> None:
        description = self.session.descriptions.get(name)
        with ui.row().classes("items-center gap-2 w-full no-wrap").style(f"padding-left: {depth * 16 + 8}px"):
            ui.checkbox(
                value=self.session.selection.get(name),
                on_change=lambda e, n=name: self.set_selected(n, bool(e.value)),
            ).props("dense")
            name_label = ui.label(label).classes("font-medium")
            if description:
                with name_label:
                    ui.tooltip(description)
            ui.label(value.kind.label).classes("param-type-badge")

            if self.edit.name == name:
                ui.input(
                    value=self.edit.text,
                    on_change=lambda e: setattr(self.edit, "text", e.value or ""),
                ).props("dense autofocus").classes("grow").on(
                    "keydown.enter", lambda _=None, n=name: self.commit_edit(n)
                ).on("keydown.escape", lambda _=None: self.cancel_edit())
                ui.button(icon="check", on_click=lambda _=None, n=name: self.commit_edit(n)).props("flat dense")
                ui.button(icon="close", on_click=self.cancel_edit).props("flat dense")
            elif value.kind is ParamKind.BOOL:
                ui.switch(
                    value=value.value,
                    on_change=lambda e, n=name: self.commit_edit(n, bool(e.value)),
                ).props("dense").bind_enabled_from(connection_state, "connected")
            elif not value.editable:
                ui.label(value.display()).classes("param-value param-readonly grow")
                ui.label("read-only").classes("text-xs text-[var(--pd-muted)]")
            else:
                ui.label(value.display()).classes("param-value grow cursor-pointer").on(
                    "click", lambda _=None, n=name, v=value: self.start_edit(n, v)
                )
                ui.button(icon="edit", on_click=lambda _=None, n=name, v=value: self.start_edit(n, v)).props(
                    "flat dense"
                ).bind_enabled_from(connection_state, "connected")

    @ui.refreshable
    def render_tree(self) -> None:
        tree = self.session.tree
        if tree is None:
            ui.label("No parameters loaded").classes("text-sm text-[var(--pd-muted)]")
            return
        if self.search_term.strip():
            names = self.session.search(self.search_term)
            if not names:
                ui.label(f"No parameter matches '{self.search_term}'").classes("text-sm")
            for name in names:
                self._leaf_row(name, self.session.params[name], name, 0)
            return
        for row in render_rows(tree, self.expanded):
            if isinstance(row.node, Group):
                self._group_row(row)
            else:
                self._leaf_row(row.node.full_name, row.node.value, row.node.name, row.depth)

    def build(self) -> None:
        """Build the Parameters page content."""
        with ui.card().classes("w-full"):
            with ui.row().classes("items-center justify-between w-full"):
                ui.label("Parameters").classes("text-md font-medium")
                with ui.row().classes("items-center gap-2"):
                    ui.button("Refresh", icon="refresh", on_click=self.refresh).props("unelevated").bind_enabled_from(
                        connection_state, "connected"
                    )
                    ui.button("Expand all", on_click=self.expand_all).props("flat dense")
                    ui.button("Collapse all", on_click=self.collapse_all).props("flat dense")
            ui.input(
                placeholder="Search parameters...", on_change=lambda e: self.on_search(e.value)
            ).props("dense clearable").classes("w-full")
            with ui.row().classes("items-center gap-2"):
                ui.button("Select all", on_click=lambda: self.select_all(True)).props("flat dense")
                ui.button("Select none", on_click=lambda: self.select_all(False)).props("flat dense")
                self.stats_label = ui.label("").classes("text-sm")
                self.save_button = ui.button("Save selected", icon="save", on_click=self.save_selected).props(
                    "unelevated color=positive"
                ).bind_enabled_from(connection_state, "connected")
            ui.separator()
            with ui.column().classes("w-full gap-1"):
                self.render_tree()

        with ui.card().classes("w-full"):
            ui.label("Activity").classes("text-md font-medium")
            self.response_log = ui.log(max_lines=200).classes("w-full h-40")
            attach_ui_log(self.response_log)
            log_widget = self.response_log
            ui.context.client.on_disconnect(lambda: detach_ui_log(log_widget))
        self._update_stats()
