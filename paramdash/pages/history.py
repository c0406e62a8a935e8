from __future__ import annotations

import json
import logging
from typing import Any

from nicegui import ui

from paramdash.core.diff import ABSENT, DiffEntry, DiffReport
from paramdash.core.hierarchy import Group, render_rows
from paramdash.services.history import HistorySession
from paramdash.services.tuning import TuningSession
from paramdash.state import connection_state, parameter_stats

_STATUS_CLASSES = {
    "changed": "diff-changed",
    "added": "diff-added",
    "removed": "diff-removed",
    "unchanged": "",
}


def _fmt(value: Any) -> str:
    if value is ABSENT:
        return "—"
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class HistoryPage:
    """History tab page: stored parameter files, preview and comparison."""

    def __init__(self, session: HistorySession, tuning: TuningSession) -> None:
        self.session = session
        self.tuning = tuning
        self.only_differences = False
        self.compare_target: str | None = None
        # Widgets
        self.files_table: ui.table | None = None
        self.compare_select: ui.select | None = None
        self.delete_dialog: ui.dialog | None = None
        self._pending_delete: str | None = None

    # ---- Actions ----

    def _selected(self) -> str | None:
        if self.files_table is None or not self.files_table.selected:
            ui.notify("Select a history file first", color="warning")
            return None
        return self.files_table.selected[0]["identifier"]

    async def refresh_files(self) -> None:
        try:
            files = await self.session.refresh_files()
        except Exception as e:
            logging.error("Failed to fetch history files: %s", e)
            ui.notify(f"Failed to fetch history files: {e}", color="negative")
            return
        if files is None:
            return
        parameter_stats.history_files = len(files)
        rows = [{"identifier": f.identifier, "filename": f.filename, "modified": f.modified} for f in files]
        if self.files_table is not None:
            self.files_table.rows = rows
            self.files_table.selected = [r for r in rows if r in self.files_table.selected]
            self.files_table.update()
        if self.compare_select is not None:
            self.compare_select.options = {f.identifier: f.filename for f in files}
            self.compare_select.update()

    async def preview(self) -> None:
        identifier = self._selected()
        if identifier is None:
            return
        try:
            params = await self.session.preview(identifier)
        except Exception as e:
            logging.error("Failed to preview parameters: %s", e)
            ui.notify(f"Failed to preview parameters: {e}", color="negative")
            return
        if params is not None:
            self.render_detail.refresh()

    async def compare_with_current(self) -> None:
        identifier = self._selected()
        if identifier is None:
            return
        if not self.tuning.params:
            ui.notify("No live parameters loaded yet", color="warning")
            return
        try:
            report = await self.session.compare_with_current(identifier, self.tuning.params)
        except Exception as e:
            logging.error("Comparison failed: %s", e)
            ui.notify(f"Comparison failed: {e}", color="negative")
            return
        if report is not None:
            self.render_detail.refresh()

    async def compare_files(self) -> None:
        identifier = self._selected()
        if identifier is None:
            return
        if not self.compare_target:
            ui.notify("Choose a file to compare against", color="warning")
            return
        try:
            report = await self.session.compare(identifier, self.compare_target)
        except Exception as e:
            logging.error("Comparison failed: %s", e)
            ui.notify(f"Failed to load comparison parameters: {e}", color="negative")
            return
        if report is not None:
            self.render_detail.refresh()

    async def restore(self) -> None:
        identifier = self._selected()
        if identifier is None:
            return
        try:
            await self.session.restore(identifier)
        except Exception as e:
            logging.error("Failed to load parameters: %s", e)
            ui.notify(f"Failed to load parameters: {e}", color="negative")
            return
        ui.notify("Parameters restored", color="positive")
        try:
            await self.tuning.refresh()
        except Exception as e:
            logging.error("Failed to fetch parameters: %s", e)

    def ask_delete(self) -> None:
        identifier = self._selected()
        if identifier is None or self.delete_dialog is None:
            return
        self._pending_delete = identifier
        self.delete_dialog.open()

    async def confirm_delete(self) -> None:
        identifier, self._pending_delete = self._pending_delete, None
        if self.delete_dialog is not None:
            self.delete_dialog.close()
        if identifier is None:
            return
        try:
            await self.session.delete(identifier)
        except Exception as e:
            logging.error("Failed to delete file: %s", e)
            ui.notify(f"Failed to delete file: {e}", color="negative")
            return
        ui.notify("History file deleted", color="primary")
        await self.refresh_files()
        self.render_detail.refresh()

    def set_only_differences(self, flag: bool) -> None:
        self.only_differences = flag
        self.render_detail.refresh()

    def clear_compare(self) -> None:
        self.session.clear_compare()
        self.render_detail.refresh()

    # ---- UI ----

    def _diff_row(self, entry: DiffEntry) -> None:
        with ui.row().classes(f"w-full no-wrap gap-2 px-2 py-1 {_STATUS_CLASSES[entry.status]}"):
            ui.label(entry.key).classes("w-1/3 font-medium break-all")
            ui.label(_fmt(entry.value_a)).classes("w-1/3 diff-value")
            ui.label(_fmt(entry.value_b)).classes("w-1/3 diff-value")

    def _render_report(self, report: DiffReport) -> None:
        counts = report.counts()
        with ui.row().classes("items-center justify-between w-full"):
            ui.label(self.session.compare_label).classes("text-md font-medium")
            ui.button("Close", on_click=self.clear_compare).props("flat dense")
        ui.label(
            f"{counts['changed']} changed · {counts['removed']} only in A · "
            f"{counts['added']} only in B · {counts['unchanged']} unchanged"
        ).classes("text-sm")
        ui.switch("Only differences", value=self.only_differences, on_change=lambda e: self.set_only_differences(e.value))
        shown = report.only_differences() if self.only_differences else report
        if not len(shown):
            ui.label("No differences").classes("text-sm")
            return
        for name, entries in sorted(shown.groups.items()):
            differing = sum(1 for e in entries if e.differs)
            with ui.expansion(f"{name} ({differing} of {len(entries)} differ)", value=differing > 0).classes("w-full"):
                for entry in entries:
                    self._diff_row(entry)

    def _render_preview(self) -> None:
        title = self.session.preview_file.filename if self.session.preview_file else "Preview"
        ui.label(title).classes("text-md font-medium")
        try:
            tree = self.session.preview_tree()
        except Exception as e:
            ui.label(f"Cannot display file: {e}").classes("text-sm text-negative")
            return
        if tree is None:
            return
        for row in render_rows(tree):
            indent = f"padding-left: {row.depth * 16}px"
            if isinstance(row.node, Group):
                ui.label(row.node.name).classes("font-medium").style(indent)
            else:
                with ui.row().classes("gap-2 no-wrap").style(indent):
                    ui.label(row.node.name)
                    ui.label(row.node.value.kind.label).classes("param-type-badge")
                    ui.label(row.node.value.display()).classes("param-value")

    @ui.refreshable
    def render_detail(self) -> None:
        if self.session.report is not None:
            self._render_report(self.session.report)
        elif self.session.preview_params is not None:
            self._render_preview()
        else:
            ui.label("Select a file to preview or compare").classes("text-sm text-[var(--pd-muted)]")

    def build(self) -> None:
        """Build the History page content."""
        with ui.dialog() as self.delete_dialog, ui.card():
            ui.label("Delete this history file? This cannot be undone.")
            with ui.row().classes("justify-end w-full"):
                ui.button("Cancel", on_click=lambda: self.delete_dialog.close()).props("flat")
                ui.button("Delete", on_click=self.confirm_delete).props("unelevated color=negative")

        with ui.row().classes("history-layout w-full no-wrap items-start gap-4"):
            with ui.card().classes("history-files w-2/5"):
                with ui.row().classes("items-center justify-between w-full"):
                    ui.label("History").classes("text-md font-medium")
                    ui.button(icon="refresh", on_click=self.refresh_files).props("flat dense").bind_enabled_from(
                        connection_state, "connected"
                    )
                self.files_table = ui.table(
                    columns=[
                        {"name": "filename", "label": "File", "field": "filename", "align": "left"},
                        {"name": "modified", "label": "Modified", "field": "modified", "align": "left", "sortable": True},
                    ],
                    rows=[],
                    row_key="identifier",
                    selection="single",
                ).classes("w-full")
                with ui.row().classes("items-center gap-2"):
                    ui.button("Preview", on_click=self.preview).props("unelevated dense")
                    ui.button("Compare with current", on_click=self.compare_with_current).props("unelevated dense")
                    ui.button("Restore", on_click=self.restore).props("unelevated dense color=warning")
                    ui.button("Delete", on_click=self.ask_delete).props("unelevated dense color=negative")
                with ui.row().classes("items-center gap-2 w-full"):
                    self.compare_select = ui.select(
                        options={},
                        label="Compare against",
                        on_change=lambda e: setattr(self, "compare_target", e.value),
                    ).classes("grow")
                    ui.button("Compare", on_click=self.compare_files).props("unelevated dense")
            with ui.card().classes("history-detail w-3/5"):
                self.render_detail()
