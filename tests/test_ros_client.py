from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

import paramdash.services.ros_client as ros_mod
from paramdash.core.errors import RemoteCallFailure
from paramdash.core.values import ParamKind, TypedValue
from paramdash.services.ros_client import RosParameterClient, SnapshotInfo

if TYPE_CHECKING:
    from pytest import MonkeyPatch


class FakeRos:
    is_connected = True

    def close(self) -> None:
        self.is_connected = False


class FakeRosbridge:
    """Stands in for roslibpy Service/Topic; records traffic in order."""

    def __init__(self, replies: dict[str, dict[str, Any]]) -> None:
        self.replies = replies
        self.traffic: list[tuple[str, str, Any]] = []

    def service(self, ros: Any, name: str, service_type: str) -> Any:
        bridge = self

        class _Service:
            def call(self, request, callback=None, errback=None, timeout=None):
                bridge.traffic.append(("call", name, dict(request)))
                reply = bridge.replies.get(name)
                if reply is None:
                    raise Exception(f"No service response received for {name}")
                return reply

        return _Service()

    def topic(self, ros: Any, name: str, message_type: str) -> Any:
        bridge = self

        class _Topic:
            def publish(self, message):
                bridge.traffic.append(("publish", name, message["data"]))

        return _Topic()


@pytest.fixture
def bridge(monkeypatch: MonkeyPatch) -> FakeRosbridge:
    fake = FakeRosbridge({})
    monkeypatch.setattr(ros_mod.roslibpy, "Service", fake.service)
    monkeypatch.setattr(ros_mod.roslibpy, "Topic", fake.topic)
    monkeypatch.setattr(ros_mod, "TOPIC_SETTLE_S", 0.0)
    return fake


@pytest.fixture
def client() -> RosParameterClient:
    c = RosParameterClient(host="robot", port=9090, namespace="/walk", timeout=1.0)
    c._ros = FakeRos()
    return c


@pytest.mark.unit
async def test_calls_fail_without_connection():
    c = RosParameterClient()
    assert not c.connected
    with pytest.raises(RemoteCallFailure):
        await c.list_parameters()


@pytest.mark.unit
async def test_fetch_all_uses_namespaced_node_services(bridge, client):
    bridge.replies = {
        "/walk/list_parameters": {"result": {"names": ["engine.freq", "node.tf.odom_frame"]}},
        "/walk/get_parameters": {
            "values": [
                {"type": 3, "double_value": 1.85},
                {"type": 4, "string_value": "odom"},
            ]
        },
    }
    params = await client.fetch_all()
    assert params["engine.freq"] == TypedValue(ParamKind.DOUBLE, 1.85)
    assert params["node.tf.odom_frame"] == TypedValue(ParamKind.STRING, "odom")
    assert bridge.traffic[1] == ("call", "/walk/get_parameters", {"names": ["engine.freq", "node.tf.odom_frame"]})


@pytest.mark.unit
async def test_set_parameter_sends_typed_value(bridge, client):
    bridge.replies = {"/walk/set_parameters": {"results": [{"successful": False, "reason": "read only"}]}}
    result = await client.set_parameter("engine.steps", TypedValue(ParamKind.INT, 4))
    assert not result.successful
    assert result.reason == "read only"
    request = bridge.traffic[0][2]
    assert request == {
        "parameters": [{"name": "engine.steps", "value": {"type": 2, "integer_value": 4}}]
    }


@pytest.mark.unit
async def test_describe_parameters_keeps_non_empty_descriptions(bridge, client):
    bridge.replies = {
        "/walk/describe_parameters": {
            "descriptors": [
                {"name": "engine.freq", "description": "Walking frequency"},
                {"name": "engine.steps", "description": ""},
            ]
        }
    }
    assert await client.describe_parameters(["engine.freq", "engine.steps"]) == {"engine.freq": "Walking frequency"}


@pytest.mark.unit
async def test_service_errors_become_remote_call_failures(bridge, client):
    with pytest.raises(RemoteCallFailure):
        await client.list_parameters()


@pytest.mark.unit
async def test_history_preview_publishes_path_before_calling(bridge, client):
    bridge.replies = {
        "/param_manager/get_parameters_from_file": {
            "success": True,
            "message": json.dumps({"engine": {"freq": 1.5}}),
        }
    }
    params = await client.load_snapshot("/cfg/a.yaml")
    assert params == {"engine": {"freq": 1.5}}
    assert bridge.traffic == [
        ("publish", "/param_manager/file_path_preview", "/cfg/a.yaml"),
        ("call", "/param_manager/get_parameters_from_file", {}),
    ]


@pytest.mark.unit
async def test_list_snapshots_parses_file_list(bridge, client):
    files = [{"path": "/cfg/a.yaml", "filename": "a.yaml", "modified": "2024-01-15 14:30:25"}, {"path": "/cfg/b.yaml"}]
    bridge.replies = {"/param_manager/get_all_history_file": {"success": True, "message": json.dumps(files)}}
    snapshots = await client.list_snapshots()
    assert snapshots == [
        SnapshotInfo("/cfg/a.yaml", "a.yaml", "2024-01-15 14:30:25"),
        SnapshotInfo("/cfg/b.yaml", "b.yaml", ""),
    ]


@pytest.mark.unit
async def test_unsuccessful_trigger_reports_its_message(bridge, client):
    bridge.replies = {"/param_manager/delete_parameter_file": {"success": False, "message": "File not found"}}
    with pytest.raises(RemoteCallFailure, match="File not found"):
        await client.delete_snapshot("/cfg/missing.yaml")


@pytest.mark.unit
async def test_unparsable_history_reply(bridge, client):
    bridge.replies = {"/param_manager/get_all_history_file": {"success": True, "message": "not json"}}
    with pytest.raises(RemoteCallFailure):
        await client.list_snapshots()


@pytest.mark.unit
async def test_save_and_restore_use_their_topics(bridge, client):
    bridge.replies = {
        "/param_manager/save_parameters": {"success": True, "message": "Saved"},
        "/param_manager/load_parameters_from_file": {"success": True, "message": ""},
    }
    assert await client.save_parameters(["engine.freq", "engine.steps"]) == "Saved"
    await client.restore_snapshot("/cfg/a.yaml")
    published = [(name, data) for kind, name, data in bridge.traffic if kind == "publish"]
    assert published == [
        ("/param_manager/params_to_save", "engine.freq,engine.steps"),
        ("/param_manager/file_path", "/cfg/a.yaml"),
    ]


@pytest.mark.unit
async def test_close_drops_the_connection(client):
    await client.close()
    assert not client.connected
