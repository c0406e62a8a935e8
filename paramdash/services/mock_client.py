from __future__ import annotations

import asyncio
import copy
import logging
import time
from collections.abc import Sequence
from typing import Any

from paramdash.core.errors import RemoteCallFailure
from paramdash.core.parameters import ParameterSet
from paramdash.core.values import ParamKind, TypedValue
from paramdash.services.ros_client import SetResult, SnapshotInfo

# Sample walking-engine parameters (subset of a real quintic_walk config)
SAMPLE_PARAMETERS: dict[str, tuple[ParamKind, Any]] = {
    "quintic_walk.engine.freq": (ParamKind.DOUBLE, 1.85),
    "quintic_walk.engine.double_support_ratio": (ParamKind.DOUBLE, 0.045),
    "quintic_walk.engine.first_step_swing_factor": (ParamKind.DOUBLE, 0.7),
    "quintic_walk.engine.foot_distance": (ParamKind.DOUBLE, 0.18),
    "quintic_walk.engine.foot_rise": (ParamKind.DOUBLE, 0.04),
    "quintic_walk.engine.kick_length": (ParamKind.DOUBLE, 0.12),
    "quintic_walk.engine.trunk_height": (ParamKind.DOUBLE, 0.2),
    "quintic_walk.engine.trunk_pitch": (ParamKind.DOUBLE, 0.2),
    "quintic_walk.engine.trunk_x_offset": (ParamKind.DOUBLE, -0.004),
    "quintic_walk.node.debug_active": (ParamKind.BOOL, True),
    "quintic_walk.node.engine_freq": (ParamKind.DOUBLE, 125.0),
    "quintic_walk.node.ik.reset": (ParamKind.BOOL, True),
    "quintic_walk.node.ik.timeout": (ParamKind.DOUBLE, 0.01),
    "quintic_walk.node.max_step_x": (ParamKind.DOUBLE, 1.0),
    "quintic_walk.node.max_step_y": (ParamKind.DOUBLE, 1.0),
    "quintic_walk.node.phase_reset.min_phase": (ParamKind.DOUBLE, 0.9),
    "quintic_walk.node.phase_reset.imu.active": (ParamKind.BOOL, False),
    "quintic_walk.node.stability_stop.pause_duration": (ParamKind.DOUBLE, 3.0),
    "quintic_walk.node.tf.base_link_frame": (ParamKind.STRING, "body_link"),
    "quintic_walk.node.tf.odom_frame": (ParamKind.STRING, "odom"),
    "quintic_walk.node.trunk_pid.pitch.p": (ParamKind.DOUBLE, 0.0035),
    "quintic_walk.node.trunk_pid.pitch.d": (ParamKind.DOUBLE, 0.004),
    "quintic_walk.node.controlled_joints": (ParamKind.STRING_LIST, ["l_hip", "r_hip"]),
    "quintic_walk.node.log_every": (ParamKind.INT, 50),
    "use_sim_time": (ParamKind.BOOL, False),
}

SAMPLE_DESCRIPTIONS = {
    "quintic_walk.engine.freq": "Walking frequency in Hz",
    "quintic_walk.engine.double_support_ratio": "Ratio of double support phase",
    "quintic_walk.engine.foot_distance": "Distance between feet",
    "quintic_walk.engine.foot_rise": "Height of foot during swing phase",
    "quintic_walk.engine.trunk_height": "Height of the robot trunk",
    "quintic_walk.node.debug_active": "Enable debug mode",
    "quintic_walk.node.engine_freq": "Engine update frequency",
    "quintic_walk.node.max_step_x": "Maximum step in X direction",
    "quintic_walk.node.max_step_y": "Maximum step in Y direction",
}


def sample_parameters() -> ParameterSet:
    return ParameterSet({name: TypedValue(kind, value) for name, (kind, value) in SAMPLE_PARAMETERS.items()})


def _sample_history() -> dict[str, tuple[SnapshotInfo, dict[str, Any]]]:
    current = sample_parameters().to_nested()
    slower = copy.deepcopy(current)
    slower["quintic_walk"]["engine"]["freq"] = 1.5
    slower["quintic_walk"]["engine"]["foot_rise"] = 0.05
    older = copy.deepcopy(slower)
    older["quintic_walk"]["node"].pop("controlled_joints")
    older["quintic_walk"]["node"]["legacy_mode"] = True
    files = {
        "config_2024_01_15_14_30.yaml": ("2024-01-15 14:30:25", current),
        "config_2024_01_15_10_15.yaml": ("2024-01-15 10:15:12", slower),
        "config_2024_01_14_16_45.yaml": ("2024-01-14 16:45:08", older),
    }
    return {
        f"/mock/history/{name}": (SnapshotInfo(f"/mock/history/{name}", name, modified), params)
        for name, (modified, params) in files.items()
    }


class MockParameterClient:
    """In-memory robot with the same interface as the rosbridge client."""

    def __init__(self, params: ParameterSet | None = None, latency: float = 0.0) -> None:
        self.params = params if params is not None else sample_parameters()
        self.descriptions = dict(SAMPLE_DESCRIPTIONS)
        self.history = _sample_history()
        self.latency = latency
        self._connected = False
        self.calls: list[str] = []

    @property
    def connected(self) -> bool:
        return self._connected

    async def _tick(self, what: str) -> None:
        if not self._connected:
            raise RemoteCallFailure("ROS connection not established")
        self.calls.append(what)
        if self.latency:
            await asyncio.sleep(self.latency)

    async def connect(self) -> None:
        self._connected = True
        logging.info("Mock robot connected")

    async def close(self) -> None:
        self._connected = False

    async def list_parameters(self) -> list[str]:
        await self._tick("list_parameters")
        return list(self.params)

    async def get_parameters(self, names: Sequence[str]) -> ParameterSet:
        await self._tick("get_parameters")
        return self.params.subset(names)

    async def describe_parameters(self, names: Sequence[str]) -> dict[str, str]:
        await self._tick("describe_parameters")
        return {n: d for n, d in self.descriptions.items() if n in set(names)}

    async def set_parameter(self, name: str, value: TypedValue) -> SetResult:
        await self._tick("set_parameters")
        current = self.params.get(name)
        if current is None:
            return SetResult(False, f"parameter '{name}' is not declared")
        if current.kind != value.kind:
            return SetResult(False, f"wrong parameter type, expected {current.kind.label}")
        self.params = self.params.with_value(name, value)
        return SetResult(True)

    async def fetch_all(self) -> ParameterSet:
        names = await self.list_parameters()
        return await self.get_parameters(names)

    async def list_snapshots(self) -> list[SnapshotInfo]:
        await self._tick("get_all_history_file")
        infos = [info for info, _ in self.history.values()]
        return sorted(infos, key=lambda i: i.modified, reverse=True)

    def _entry(self, identifier: str) -> tuple[SnapshotInfo, dict[str, Any]]:
        try:
            return self.history[identifier]
        except KeyError:
            raise RemoteCallFailure(f"File not found: {identifier}") from None

    async def load_snapshot(self, identifier: str) -> dict[str, Any]:
        await self._tick("get_parameters_from_file")
        return copy.deepcopy(self._entry(identifier)[1])

    async def restore_snapshot(self, identifier: str) -> None:
        await self._tick("load_parameters_from_file")
        stored = ParameterSet.from_nested(self._entry(identifier)[1])
        changes = {}
        for name, value in stored.items():
            current = self.params.get(name)
            if current is None or not current.editable:
                continue
            if current.kind is ParamKind.DOUBLE and value.kind is ParamKind.INT:
                # untyped files lose the double-ness of whole numbers
                value = TypedValue(ParamKind.DOUBLE, float(value.value))
            changes[name] = value
        self.params = self.params.patch(changes)

    async def delete_snapshot(self, identifier: str) -> None:
        await self._tick("delete_parameter_file")
        self._entry(identifier)
        del self.history[identifier]

    async def save_parameters(self, names: Sequence[str]) -> str:
        await self._tick("save_parameters")
        if not names:
            raise RemoteCallFailure("No parameters to save")
        stamp = time.strftime("%Y_%m_%d_%H_%M_%S")
        filename = f"config_{stamp}_{len(self.history)}.yaml"
        identifier = f"/mock/history/{filename}"
        info = SnapshotInfo(identifier, filename, time.strftime("%Y-%m-%d %H:%M:%S"))
        self.history[identifier] = (info, self.params.subset(names).to_nested())
        return f"Saved {len(names)} parameters to {filename}"
