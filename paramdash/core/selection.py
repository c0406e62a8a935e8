from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

logger = logging.getLogger(__name__)

SELECTION_KEY = "selected_parameters"


class KeyValueStore(Protocol):
    """Durable blob storage keyed by string."""

    def get(self, key: str) -> str | None: ...

    def put(self, key: str, blob: str) -> None: ...


class SelectionStore:
    """Which parameters are marked for the batch save, persisted across sessions.

    The first non-empty parameter set seen while nothing is stored selects
    every parameter. Names that show up later are not auto-selected.
    """

    def __init__(self, store: KeyValueStore, key: str = SELECTION_KEY) -> None:
        self._store = store
        self._key = key
        self._flags: dict[str, bool] = self._load()
        self._known: list[str] | None = None

    def reload(self) -> None:
        """Re-read the persisted mapping (storage may only be ready after startup)."""
        self._flags = self._load()

    def _load(self) -> dict[str, bool]:
        blob = self._store.get(self._key)
        if not blob:
            return {}
        try:
            data = json.loads(blob)
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable selection state: %s", e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring selection state of type %s", type(data).__name__)
            return {}
        return {str(name): bool(flag) for name, flag in data.items()}

    def _persist(self) -> None:
        self._store.put(self._key, json.dumps(self._flags, sort_keys=True))

    # ---- Queries ----

    @property
    def known(self) -> list[str]:
        """Names of the last observed parameter set, or the stored names."""
        return list(self._known) if self._known is not None else sorted(self._flags)

    def get(self, name: str) -> bool:
        if name in self._flags:
            return self._flags[name]
        return not self._flags

    def selected_names(self) -> set[str]:
        return {name for name, flag in self._flags.items() if flag}

    def as_dict(self) -> dict[str, bool]:
        return dict(self._flags)

    def stats(self) -> dict[str, int | bool]:
        known = self.known
        total = len(known)
        selected = sum(1 for name in known if self._flags.get(name, False))
        return {
            "total": total,
            "selected": selected,
            "all_selected": total > 0 and selected == total,
            "some_selected": 0 < selected < total,
            "none_selected": selected == 0,
        }

    # ---- Mutations (each persists the full mapping) ----

    def observe(self, names: Iterable[str] | Mapping[str, object]) -> None:
        """Record the current parameter names; seeds "all selected" on first use."""
        current = list(names)
        self._known = current
        if current and not self._flags:
            self._flags = {name: True for name in current}
            self._persist()
            logger.info("Selected all %d parameters by default", len(current))

    def set(self, name: str, flag: bool) -> None:
        self._flags[name] = bool(flag)
        self._persist()
        logger.debug("Parameter %s %s", name, "selected" if flag else "deselected")

    def select_all(self, flag: bool) -> None:
        self._flags = {name: bool(flag) for name in self.known}
        self._persist()
        logger.info(
            "%s all parameters (%d total)", "Selected" if flag else "Deselected", len(self._flags)
        )
