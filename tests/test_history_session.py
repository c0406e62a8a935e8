from __future__ import annotations

import asyncio

import pytest

from paramdash.core.diff import ABSENT
from paramdash.core.errors import RemoteCallFailure
from paramdash.core.parameters import ParameterSet
from paramdash.core.values import ParamKind, TypedValue, from_parameter_value
from paramdash.services.history import HistorySession
from paramdash.services.mock_client import MockParameterClient, sample_parameters
from tests.utils.fakes import GatedClient

CURRENT = "/mock/history/config_2024_01_15_14_30.yaml"
SLOWER = "/mock/history/config_2024_01_15_10_15.yaml"
OLDER = "/mock/history/config_2024_01_14_16_45.yaml"


@pytest.fixture
def session(mock_client) -> HistorySession:
    return HistorySession(mock_client)


@pytest.mark.unit
async def test_refresh_lists_newest_first(session):
    files = await session.refresh_files()
    assert [f.identifier for f in files] == [CURRENT, SLOWER, OLDER]
    assert session.find(SLOWER).filename == "config_2024_01_15_10_15.yaml"


@pytest.mark.unit
async def test_preview_builds_a_tree(session):
    await session.refresh_files()
    params = await session.preview(SLOWER)
    assert params["quintic_walk"]["engine"]["freq"] == 1.5
    assert session.preview_file.identifier == SLOWER
    tree = session.preview_tree()
    assert "quintic_walk" in tree.children


@pytest.mark.unit
async def test_compare_two_files(session):
    await session.refresh_files()
    report = await session.compare(CURRENT, OLDER)
    assert session.compare_label == "config_2024_01_15_14_30.yaml vs config_2024_01_14_16_45.yaml"
    changed = {e.key: e.status for e in report.differences()}
    assert changed == {
        "quintic_walk.engine.freq": "changed",
        "quintic_walk.engine.foot_rise": "changed",
        "quintic_walk.node.controlled_joints": "removed",
        "quintic_walk.node.legacy_mode": "added",
    }
    assert report["quintic_walk.node.legacy_mode"].value_a is ABSENT


@pytest.mark.unit
async def test_compare_with_current_matches_identical_file(session, mock_client):
    await session.refresh_files()
    report = await session.compare_with_current(CURRENT, mock_client.params)
    assert report.differences() == []
    assert len(report) == len(sample_parameters())

    edited = mock_client.params.with_value("quintic_walk.engine.freq", TypedValue(ParamKind.DOUBLE, 2.0))
    report = await session.compare_with_current(CURRENT, edited)
    assert [e.key for e in report.differences()] == ["quintic_walk.engine.freq"]
    assert report["quintic_walk.engine.freq"].value_a == 2.0


@pytest.mark.unit
async def test_array_parameters_compare_as_single_values():
    live = ParameterSet(
        {
            "ctrl.gains": from_parameter_value({"type": 8, "double_array_value": [0.1, 0.2]}),
            "ctrl.rate": TypedValue(ParamKind.INT, 5),
        }
    )
    client = MockParameterClient(live)
    await client.connect()
    session = HistorySession(client)
    await client.save_parameters(list(live))
    saved = list(client.history)[-1]
    assert client.history[saved][1] == {"ctrl": {"gains": [0.1, 0.2], "rate": 5}}

    report = await session.compare_with_current(saved, live)
    assert [e.key for e in report] == ["ctrl.gains", "ctrl.rate"]
    assert report.differences() == []

    client.history[saved][1]["ctrl"]["gains"] = [0.1, 0.3]
    report = await session.compare_with_current(saved, live)
    assert len(report) == 2
    assert report["ctrl.gains"].status == "changed"
    assert report["ctrl.gains"].value_a == [0.1, 0.2]

    await session.restore(saved)
    # opaque values stay as the robot reported them
    assert client.params["ctrl.gains"] == live["ctrl.gains"]


@pytest.mark.unit
async def test_preview_replaces_an_open_report(session):
    await session.refresh_files()
    await session.compare(CURRENT, SLOWER)
    assert session.report is not None
    await session.preview(OLDER)
    assert session.report is None
    assert session.compare_label == ""
    assert session.preview_file.identifier == OLDER


@pytest.mark.unit
async def test_restore_applies_stored_values(session, mock_client):
    await session.restore(SLOWER)
    assert mock_client.params["quintic_walk.engine.freq"] == TypedValue(ParamKind.DOUBLE, 1.5)
    # whole numbers in the file keep the parameter's double kind
    assert mock_client.params["quintic_walk.node.engine_freq"].kind is ParamKind.DOUBLE


@pytest.mark.unit
async def test_delete_forgets_the_file_and_its_preview(session):
    await session.refresh_files()
    await session.preview(OLDER)
    await session.delete(OLDER)
    assert session.find(OLDER) is None
    assert session.preview_params is None
    with pytest.raises(RemoteCallFailure):
        await session.delete(OLDER)


@pytest.mark.unit
async def test_clear_compare(session):
    await session.compare(CURRENT, SLOWER)
    session.clear_compare()
    assert session.report is None
    assert session.compare_label == ""


@pytest.mark.unit
async def test_late_preview_response_is_dropped():
    client = GatedClient()
    await client.connect()
    session = HistorySession(client)

    first = asyncio.create_task(session.preview(SLOWER))
    await client.wait_for_gates(1)
    second = asyncio.create_task(session.preview(OLDER))
    await client.wait_for_gates(2)

    client.gates[1].set()
    assert await second is not None
    client.gates[0].set()
    assert await first is None
    assert "legacy_mode" in session.preview_params["quintic_walk"]["node"]


@pytest.mark.unit
async def test_clearing_drops_a_pending_comparison():
    client = GatedClient()
    await client.connect()
    session = HistorySession(client)

    pending = asyncio.create_task(session.compare(CURRENT, SLOWER))
    await client.wait_for_gates(1)
    session.clear_compare()
    client.gates[0].set()
    await client.wait_for_gates(2)
    client.gates[1].set()
    assert await pending is None
    assert session.report is None
