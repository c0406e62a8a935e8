from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

from paramdash.core.errors import RemoteCallFailure
from paramdash.core.parameters import ParameterSet
from paramdash.services.mock_client import MockParameterClient


class GatedClient(MockParameterClient):
    """Mock robot whose fetches wait on per-call gates, to reorder responses in tests."""

    def __init__(self, params: ParameterSet | None = None) -> None:
        super().__init__(params)
        self.gates: list[asyncio.Event] = []

    def _next_gate(self) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates.append(gate)
        return gate

    async def fetch_all(self) -> ParameterSet:
        snapshot = self.params
        await self._next_gate().wait()
        return snapshot

    async def load_snapshot(self, identifier: str) -> dict[str, Any]:
        stored = await super().load_snapshot(identifier)
        await self._next_gate().wait()
        return stored

    async def wait_for_gates(self, count: int) -> None:
        while len(self.gates) < count:
            await asyncio.sleep(0)


class FailingDescriptions(MockParameterClient):
    """Mock robot without a describe_parameters service."""

    async def describe_parameters(self, names: Sequence[str]) -> dict[str, str]:
        raise RemoteCallFailure("describe_parameters unavailable")
