from __future__ import annotations

import logging
from collections.abc import MutableMapping

from nicegui import app as ng_app


class NiceGuiStore:
    """Key-value blobs kept in NiceGUI's server-wide persistent storage.

    ``app.storage.general`` is written to disk by NiceGUI and survives
    restarts of the dashboard.
    """

    def __init__(self, backend: MutableMapping | None = None) -> None:
        self._backend = backend

    @property
    def _data(self) -> MutableMapping:
        return self._backend if self._backend is not None else ng_app.storage.general

    def get(self, key: str) -> str | None:
        value = self._data.get(key)
        if value is None or isinstance(value, str):
            return value
        logging.warning("Storage key %s holds %s, expected text", key, type(value).__name__)
        return None

    def put(self, key: str, blob: str) -> None:
        # single assignment so the persisted value is never partially updated
        self._data[key] = blob


class MemoryStore:
    """In-process store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def put(self, key: str, blob: str) -> None:
        self.data[key] = blob
        self.writes += 1
