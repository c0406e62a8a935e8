"""Leaf-by-leaf comparison of two parameter snapshots.

The report is a full inventory: every name from either side gets exactly one
entry, including the ones whose values are equal.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from paramdash.core.errors import MalformedHierarchy
from paramdash.core.hierarchy import Group, Leaf, group
from paramdash.core.parameters import SEPARATOR, ParameterSet, top_segment
from paramdash.core.values import TypedValue

DiffStatus = Literal["unchanged", "changed", "added", "removed"]


class _Absent:
    """Marks a side of a diff entry where the name does not exist."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "<absent>"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Any = _Absent()


@dataclass(frozen=True)
class DiffEntry:
    key: str
    value_a: Any
    value_b: Any
    differs: bool

    @property
    def group(self) -> str:
        return top_segment(self.key)

    @property
    def status(self) -> DiffStatus:
        if self.value_a is ABSENT:
            return "added"
        if self.value_b is ABSENT:
            return "removed"
        return "changed" if self.differs else "unchanged"


class DiffReport:
    """Diff entries, also grouped by the top-level segment of their key."""

    def __init__(self, entries: Iterable[DiffEntry] = ()) -> None:
        self._entries = tuple(sorted(entries, key=lambda e: e.key))
        self._by_key = {e.key: e for e in self._entries}
        groups: dict[str, list[DiffEntry]] = {}
        for entry in self._entries:
            groups.setdefault(entry.group, []).append(entry)
        self._groups = {name: tuple(items) for name, items in groups.items()}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DiffEntry]:
        return iter(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __getitem__(self, key: str) -> DiffEntry:
        return self._by_key[key]

    def __repr__(self) -> str:
        return f"DiffReport({len(self)} entries, {len(self.differences())} differ)"

    @property
    def entries(self) -> tuple[DiffEntry, ...]:
        return self._entries

    @property
    def groups(self) -> dict[str, tuple[DiffEntry, ...]]:
        return dict(self._groups)

    def group_names(self) -> list[str]:
        return sorted(self._groups)

    def differences(self) -> list[DiffEntry]:
        return [e for e in self._entries if e.differs]

    def only_differences(self) -> DiffReport:
        return DiffReport(self.differences())

    def counts(self) -> dict[str, int]:
        counts = Counter(e.status for e in self._entries)
        return {status: counts.get(status, 0) for status in ("unchanged", "changed", "added", "removed")}


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def values_equal(a: Any, b: Any) -> bool:
    """Deep structural equality for leaf values.

    Floats compare exactly (NaN equals NaN); bools never equal numbers; ints
    and floats compare by value; sequences compare element-wise in order.
    """
    if a is ABSENT or b is ABSENT:
        return a is b
    if isinstance(a, TypedValue) or isinstance(b, TypedValue):
        if not (isinstance(a, TypedValue) and isinstance(b, TypedValue)):
            return False
        return a.kind == b.kind and values_equal(a.value, b.value)
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
            return True
        return a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    return a == b


def _children(node: Any) -> dict[str, Any] | None:
    """Sub-nodes of a group (tree Group or nested mapping), None for a leaf."""
    if isinstance(node, Group):
        return node.children
    if isinstance(node, Mapping):
        return {str(k): v for k, v in node.items()}
    return None


def _leaf_value(node: Any) -> Any:
    return node.value if isinstance(node, Leaf) else node


def _entry(key: str, a: Any, b: Any) -> DiffEntry:
    return DiffEntry(key=key, value_a=a, value_b=b, differs=not values_equal(a, b))


def _walk(a: Any, b: Any, prefix: str | None, out: list[DiffEntry]) -> None:
    ca = _children(a) or {}
    cb = _children(b) or {}
    keys = list(ca) + [k for k in cb if k not in ca]
    for key in keys:
        full = key if prefix is None else f"{prefix}{SEPARATOR}{key}"
        na = ca.get(key, ABSENT)
        nb = cb.get(key, ABSENT)
        a_group = _children(na) is not None
        b_group = _children(nb) is not None
        if not (a_group or b_group):
            out.append(_entry(full, _leaf_value(na), _leaf_value(nb)))
            continue
        # A group on either side: its leaves are listed against ABSENT on the
        # other side, and a leaf at the same key still gets its own entry.
        _walk(na if a_group else ABSENT, nb if b_group else ABSENT, full, out)
        if not a_group and na is not ABSENT:
            out.append(_entry(full, _leaf_value(na), ABSENT))
        if not b_group and nb is not ABSENT:
            out.append(_entry(full, ABSENT, _leaf_value(nb)))


def _merge(dst: dict[str, Any], key: str, value: Any, path: str | None) -> None:
    full = key if path is None else f"{path}{SEPARATOR}{key}"
    if key not in dst:
        dst[key] = value
        return
    current = dst[key]
    if isinstance(current, dict) and isinstance(value, dict):
        for k, v in value.items():
            _merge(current, k, v, full)
        return
    raise MalformedHierarchy(full, "name occurs twice in nested data")


def _expand(node: Mapping[str, Any], path: str | None = None) -> dict[str, Any]:
    """Split dotted keys so ``{"a.b": 1}`` and ``{"a": {"b": 1}}`` walk alike."""
    out: dict[str, Any] = {}
    for key, value in node.items():
        segments = str(key).split(SEPARATOR)
        if isinstance(value, Mapping):
            value = _expand(value, str(key) if path is None else f"{path}{SEPARATOR}{key}")
        for seg in reversed(segments[1:]):
            value = {seg: value}
        _merge(out, segments[0], value, path)
    return out


def diff_trees(a: Group, b: Group) -> DiffReport:
    out: list[DiffEntry] = []
    _walk(a, b, None, out)
    return DiffReport(out)


def diff_nested(a: Mapping[str, Any] | None, b: Mapping[str, Any] | None) -> DiffReport:
    """Compare two nested JSON snapshots (the stored history shape) directly."""
    out: list[DiffEntry] = []
    _walk(_expand(a or {}), _expand(b or {}), None, out)
    return DiffReport(out)


def diff(a: ParameterSet | Mapping[str, Any], b: ParameterSet | Mapping[str, Any]) -> DiffReport:
    """Compare two parameter sets by building and walking both trees."""
    return diff_trees(group(ParameterSet.coerce(a)), group(ParameterSet.coerce(b)))
