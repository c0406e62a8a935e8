from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import roslibpy

from paramdash.constants import CALL_TIMEOUT_S, PARAM_MANAGER, TOPIC_SETTLE_S
from paramdash.core.errors import RemoteCallFailure
from paramdash.core.parameters import ParameterSet
from paramdash.core.values import TypedValue, to_parameter_value


@dataclass(frozen=True)
class SetResult:
    successful: bool
    reason: str = ""


@dataclass(frozen=True)
class SnapshotInfo:
    """A stored parameter history file."""

    identifier: str  # file path on the robot
    filename: str
    modified: str  # human-readable timestamp

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotInfo":
        path = str(data.get("path", ""))
        return cls(
            identifier=path,
            filename=str(data.get("filename") or path.rsplit("/", 1)[-1]),
            modified=str(data.get("modified", "")),
        )


class ParameterClient(Protocol):
    """What the pages need from the robot: parameter services and history files."""

    @property
    def connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def list_parameters(self) -> list[str]: ...

    async def get_parameters(self, names: Sequence[str]) -> ParameterSet: ...

    async def describe_parameters(self, names: Sequence[str]) -> dict[str, str]: ...

    async def set_parameter(self, name: str, value: TypedValue) -> SetResult: ...

    async def fetch_all(self) -> ParameterSet: ...

    async def list_snapshots(self) -> list[SnapshotInfo]: ...

    async def load_snapshot(self, identifier: str) -> dict[str, Any]: ...

    async def restore_snapshot(self, identifier: str) -> None: ...

    async def delete_snapshot(self, identifier: str) -> None: ...

    async def save_parameters(self, names: Sequence[str]) -> str: ...


class RosParameterClient:
    """
    Parameter access through a rosbridge websocket.

    - Node parameters use the standard rcl_interfaces services under the
      robot namespace (typed values).
    - History files go through the param_manager node: a file path is
      published on a topic, then a std_srvs/Trigger service answers with
      JSON in its message (untyped nested values).

    roslibpy calls block, so each one runs in a worker thread.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 9090,
        namespace: str = "",
        timeout: float = CALL_TIMEOUT_S,
        secure: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.namespace = namespace
        self.timeout = timeout or None
        self.secure = secure
        self._ros: roslibpy.Ros | None = None
        # publish+call pairs share param_manager topics; never interleave them
        self._manager_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._ros is not None and self._ros.is_connected

    async def connect(self) -> None:
        await self.close()
        ros = roslibpy.Ros(host=self.host, port=self.port, is_secure=self.secure)
        try:
            await asyncio.to_thread(ros.run, self.timeout or 10)
        except Exception as e:
            raise RemoteCallFailure(f"Could not connect to rosbridge at {self.host}:{self.port}: {e}") from e
        self._ros = ros
        logging.info("Connected to rosbridge at %s:%s", self.host, self.port)

    async def close(self) -> None:
        ros, self._ros = self._ros, None
        if ros is not None:
            try:
                await asyncio.to_thread(ros.close)
            except Exception as e:
                logging.debug("rosbridge close failed: %s", e)
            logging.info("Disconnected from rosbridge")

    # ---- plumbing ----

    def _require(self) -> roslibpy.Ros:
        if not self.connected:
            raise RemoteCallFailure("ROS connection not established")
        assert self._ros is not None
        return self._ros

    async def _call(self, name: str, service_type: str, request: dict[str, Any] | None = None) -> dict:
        ros = self._require()
        service = roslibpy.Service(ros, name, service_type)
        try:
            response = await asyncio.to_thread(
                service.call, roslibpy.ServiceRequest(request or {}), None, None, self.timeout
            )
        except Exception as e:
            raise RemoteCallFailure(f"Service call {name} failed: {e}") from e
        logging.debug("%s -> %s", name, response)
        return dict(response)

    def _publish(self, topic: str, data: str) -> None:
        ros = self._require()
        roslibpy.Topic(ros, topic, "std_msgs/String").publish(roslibpy.Message({"data": data}))

    async def _trigger(self, service: str, topic: str | None = None, data: str = "") -> str:
        """Optionally publish ``data`` on ``topic``, then call a Trigger service."""
        async with self._manager_lock:
            if topic is not None:
                self._publish(f"{PARAM_MANAGER}/{topic}", data)
                await asyncio.sleep(TOPIC_SETTLE_S)
            response = await self._call(f"{PARAM_MANAGER}/{service}", "std_srvs/srv/Trigger")
        if not response.get("success"):
            raise RemoteCallFailure(str(response.get("message") or f"{service} failed"))
        return str(response.get("message", ""))

    def _node_service(self, name: str) -> str:
        return f"{self.namespace}/{name}"

    # ---- node parameters ----

    async def list_parameters(self) -> list[str]:
        response = await self._call(
            self._node_service("list_parameters"), "rcl_interfaces/srv/ListParameters"
        )
        return list(response.get("result", {}).get("names", []))

    async def get_parameters(self, names: Sequence[str]) -> ParameterSet:
        response = await self._call(
            self._node_service("get_parameters"),
            "rcl_interfaces/srv/GetParameters",
            {"names": list(names)},
        )
        return ParameterSet.from_typed(list(names), response.get("values", []))

    async def describe_parameters(self, names: Sequence[str]) -> dict[str, str]:
        response = await self._call(
            self._node_service("describe_parameters"),
            "rcl_interfaces/srv/DescribeParameters",
            {"names": list(names)},
        )
        return {
            d.get("name", ""): d.get("description", "")
            for d in response.get("descriptors", [])
            if d.get("description")
        }

    async def set_parameter(self, name: str, value: TypedValue) -> SetResult:
        response = await self._call(
            self._node_service("set_parameters"),
            "rcl_interfaces/srv/SetParameters",
            {"parameters": [{"name": name, "value": to_parameter_value(value)}]},
        )
        results = response.get("results") or [{}]
        first = results[0]
        return SetResult(bool(first.get("successful")), str(first.get("reason", "")))

    async def fetch_all(self) -> ParameterSet:
        names = await self.list_parameters()
        return await self.get_parameters(names)

    # ---- param_manager history ----

    async def list_snapshots(self) -> list[SnapshotInfo]:
        message = await self._trigger("get_all_history_file")
        try:
            files = json.loads(message)
        except ValueError as e:
            raise RemoteCallFailure(f"Error parsing history files: {e}") from e
        return [SnapshotInfo.from_dict(f) for f in files]

    async def load_snapshot(self, identifier: str) -> dict[str, Any]:
        message = await self._trigger("get_parameters_from_file", "file_path_preview", identifier)
        try:
            params = json.loads(message)
        except ValueError as e:
            raise RemoteCallFailure(f"Error parsing parameters: {e}") from e
        if not isinstance(params, dict):
            raise RemoteCallFailure(f"Expected a JSON object for {identifier}")
        return params

    async def restore_snapshot(self, identifier: str) -> None:
        await self._trigger("load_parameters_from_file", "file_path", identifier)

    async def delete_snapshot(self, identifier: str) -> None:
        await self._trigger("delete_parameter_file", "file_path_delete", identifier)

    async def save_parameters(self, names: Sequence[str]) -> str:
        return await self._trigger("save_parameters", "params_to_save", ",".join(names))
