from __future__ import annotations

import logging
from typing import Any

from paramdash.core.diff import DiffReport, diff_nested
from paramdash.core.hierarchy import Group, group
from paramdash.core.parameters import ParameterSet
from paramdash.services.ros_client import ParameterClient, SnapshotInfo


class HistorySession:
    """
    State behind the History tab.

    Requests may still be in flight when the operator clicks something else.
    Each kind of request (files, preview, compare) takes a ticket, and a
    response whose ticket is no longer the latest of its kind returns None.
    """

    def __init__(self, client: ParameterClient) -> None:
        self.client = client
        self.files: list[SnapshotInfo] = []
        self.preview_file: SnapshotInfo | None = None
        self.preview_params: dict[str, Any] | None = None
        self.report: DiffReport | None = None
        self.compare_label: str = ""
        self._tickets: dict[str, int] = {}

    def _take(self, kind: str) -> int:
        self._tickets[kind] = self._tickets.get(kind, 0) + 1
        return self._tickets[kind]

    def _current(self, kind: str, ticket: int) -> bool:
        if self._tickets.get(kind) != ticket:
            logging.debug("Dropping superseded %s response #%d", kind, ticket)
            return False
        return True

    def find(self, identifier: str) -> SnapshotInfo | None:
        return next((f for f in self.files if f.identifier == identifier), None)

    async def refresh_files(self) -> list[SnapshotInfo] | None:
        ticket = self._take("files")
        files = await self.client.list_snapshots()
        if not self._current("files", ticket):
            return None
        self.files = files
        return files

    async def preview(self, identifier: str) -> dict[str, Any] | None:
        ticket = self._take("preview")
        params = await self.client.load_snapshot(identifier)
        if not self._current("preview", ticket):
            return None
        self.preview_file = self.find(identifier)
        self.preview_params = params
        # a fresh preview replaces any open report
        self.clear_compare()
        return params

    def preview_tree(self) -> Group | None:
        """The previewed snapshot as a parameter tree."""
        if self.preview_params is None:
            return None
        return group(ParameterSet.from_nested(self.preview_params))

    async def compare(self, identifier_a: str, identifier_b: str) -> DiffReport | None:
        """Diff two stored snapshots."""
        ticket = self._take("compare")
        params_a = await self.client.load_snapshot(identifier_a)
        params_b = await self.client.load_snapshot(identifier_b)
        if not self._current("compare", ticket):
            return None
        self.report = diff_nested(params_a, params_b)
        self.compare_label = f"{_name(self.find(identifier_a), identifier_a)} vs {_name(self.find(identifier_b), identifier_b)}"
        logging.info("Compared %s: %d of %d differ", self.compare_label, len(self.report.differences()), len(self.report))
        return self.report

    async def compare_with_current(self, identifier: str, current: ParameterSet) -> DiffReport | None:
        """Diff the live parameters (A) against a stored snapshot (B)."""
        ticket = self._take("compare")
        stored = await self.client.load_snapshot(identifier)
        if not self._current("compare", ticket):
            return None
        self.report = diff_nested(current.to_nested(), stored)
        self.compare_label = f"current vs {_name(self.find(identifier), identifier)}"
        logging.info("Compared %s: %d of %d differ", self.compare_label, len(self.report.differences()), len(self.report))
        return self.report

    async def restore(self, identifier: str) -> None:
        await self.client.restore_snapshot(identifier)
        logging.info("Restored parameters from %s", identifier)

    async def delete(self, identifier: str) -> None:
        await self.client.delete_snapshot(identifier)
        self.files = [f for f in self.files if f.identifier != identifier]
        if self.preview_file is not None and self.preview_file.identifier == identifier:
            self.preview_file = None
            self.preview_params = None
        logging.info("Deleted history file %s", identifier)

    def clear_compare(self) -> None:
        self._take("compare")
        self.report = None
        self.compare_label = ""


def _name(info: SnapshotInfo | None, identifier: str) -> str:
    return info.filename if info is not None else identifier.rsplit("/", 1)[-1]
