from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from paramdash.core.errors import MalformedHierarchy, NothingSelected, RemoteCallFailure
from paramdash.core.hierarchy import Group, group
from paramdash.core.parameters import ParameterSet
from paramdash.core.selection import SelectionStore
from paramdash.core.values import TypedValue, coerce_edit
from paramdash.services.ros_client import ParameterClient


@dataclass(frozen=True)
class EditResult:
    name: str
    value: TypedValue
    successful: bool
    reason: str = ""


class TuningSession:
    """
    State behind the Parameters tab.

    - refresh(): fetch the current parameter set and descriptions, build the tree
    - apply_edit(): re-type an edit with the parameter's stored kind and send it
    - save_selected(): ask param_manager to write the selected parameters to a history file
    """

    def __init__(self, client: ParameterClient, selection: SelectionStore) -> None:
        self.client = client
        self.selection = selection
        self.params = ParameterSet()
        self.tree: Group | None = None
        self.descriptions: dict[str, str] = {}
        self._generation = 0

    async def refresh(self) -> bool:
        """Fetch everything again. Returns False if a newer refresh superseded this one."""
        self._generation += 1
        ticket = self._generation
        params = await self.client.fetch_all()
        try:
            descriptions = await self.client.describe_parameters(list(params))
        except RemoteCallFailure as e:
            logging.warning("Parameter descriptions unavailable: %s", e)
            descriptions = {}
        if ticket != self._generation:
            logging.debug("Dropping superseded parameter refresh #%d", ticket)
            return False
        self.install(params, descriptions)
        return True

    def install(self, params: ParameterSet, descriptions: dict[str, str] | None = None) -> None:
        """Adopt a fetched set; a malformed hierarchy leaves no tree at all."""
        try:
            tree = group(params)
        except MalformedHierarchy:
            self.params = ParameterSet()
            self.tree = None
            raise
        self.params = params
        self.tree = tree
        self.descriptions = descriptions or {}
        self.selection.observe(params)
        logging.info("Loaded %d parameters", len(params))

    async def apply_edit(self, name: str, text: Any) -> EditResult:
        current = self.params[name]
        value = coerce_edit(current.kind, text)
        result = await self.client.set_parameter(name, value)
        if not result.successful:
            logging.error("Failed to update parameter %s: %s", name, result.reason)
            return EditResult(name, value, False, result.reason)
        self.params = self.params.with_value(name, value)
        self.tree = group(self.params)
        logging.info("Parameter %s updated to %s", name, value.display())
        return EditResult(name, value, True)

    async def save_selected(self) -> str:
        names = sorted(n for n in self.selection.selected_names() if n in self.params)
        if not names:
            raise NothingSelected("Please select at least one parameter to save")
        message = await self.client.save_parameters(names)
        logging.info("Saved %d parameters", len(names))
        return message

    def search(self, term: str) -> list[str]:
        return self.params.search(term) if term.strip() else []
