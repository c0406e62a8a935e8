from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from nicegui import ui

from paramdash import main
from paramdash.services.mock_client import SAMPLE_PARAMETERS, MockParameterClient
from paramdash.state import connection_state, parameter_stats

if TYPE_CHECKING:
    from collections.abc import Iterator

    from nicegui.testing import User
    from pytest import MonkeyPatch


@pytest.fixture
def reset_state() -> Iterator[None]:
    yield
    connection_state.connected = False
    connection_state.status = "Disconnected"
    parameter_stats.total = 0
    parameter_stats.selected = 0
    parameter_stats.history_files = 0


async def _install_mock() -> MockParameterClient:
    client = MockParameterClient()
    await client.connect()
    main.tuning_session.client = client
    main.history_session.client = client
    connection_state.connected = True
    return client


@pytest.mark.unit
@pytest.mark.module_under_test(main)
async def test_page_loads_parameters_of_connected_robot(user: User, reset_state: None):
    """Open the real page with a connected mock robot; the tree and counters fill in."""
    await _install_mock()

    await user.open("/")
    await user.should_see("Parameters")
    await user.should_see("quintic_walk")
    await user.should_see("use_sim_time")
    await user.should_see(f"{len(SAMPLE_PARAMETERS)} parameters")
    assert main.tuning_session.tree is not None


@pytest.mark.unit
@pytest.mark.module_under_test(main)
async def test_footer_connect_uses_stored_settings(user: User, monkeypatch: MonkeyPatch, reset_state: None):
    """Connect in the footer goes through connect_robot; no rosbridge needed."""
    seen: list[object] = []

    async def _fake_connect(settings=None) -> None:
        seen.append(settings)
        await _install_mock()

    monkeypatch.setattr(main, "connect_robot", _fake_connect, raising=True)

    await user.open("/")
    await user.should_see("Disconnected")
    user.find(kind=ui.button, content="Connect").click()
    await user.should_see("quintic_walk")
    assert seen == [None]
