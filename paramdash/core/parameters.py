from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from paramdash.core.errors import InvalidParameterName, MalformedHierarchy
from paramdash.core.values import TypedValue, from_parameter_value, typed_from_raw

SEPARATOR = "."


def check_name(name: Any) -> str:
    """Validate a dotted parameter name and return it."""
    if not isinstance(name, str) or not name:
        raise InvalidParameterName(f"parameter name must be a non-empty string, got {name!r}")
    if any(unicodedata.category(ch) == "Cc" for ch in name):
        raise InvalidParameterName(f"parameter name contains control characters: {name!r}")
    return name


def top_segment(name: str) -> str:
    return name.split(SEPARATOR, 1)[0]


class ParameterSet(Mapping[str, TypedValue]):
    """Immutable mapping from dotted parameter name to :class:`TypedValue`.

    This is the flat form exchanged with the robot. Edits never change an
    instance; they return a new set.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, TypedValue] | Iterable[tuple[str, TypedValue]] = ()) -> None:
        pairs = items.items() if isinstance(items, Mapping) else items
        data: dict[str, TypedValue] = {}
        for name, value in pairs:
            check_name(name)
            if not isinstance(value, TypedValue):
                raise TypeError(f"value for '{name}' must be a TypedValue, got {type(value).__name__}")
            data[name] = value
        self._items = data

    # ---- Mapping protocol ----

    def __getitem__(self, name: str) -> TypedValue:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"ParameterSet({len(self)} parameters)"

    # ---- Constructors ----

    @classmethod
    def from_typed(cls, names: Sequence[str], values: Sequence[Mapping[str, Any]]) -> ParameterSet:
        """Build from parallel name / ``ParameterValue`` lists (GetParameters reply)."""
        if len(names) != len(values):
            raise ValueError(f"got {len(names)} names but {len(values)} values")
        return cls((name, from_parameter_value(msg)) for name, msg in zip(names, values))

    @classmethod
    def from_nested(cls, data: Mapping[str, Any]) -> ParameterSet:
        """Normalise untyped JSON, nested or flat, into fully-qualified dotted names.

        ``{"a": {"b": 1}}`` and ``{"a.b": 1}`` give the same set. A name
        produced twice is a conflict in the source data.
        """
        items: dict[str, TypedValue] = {}

        def _walk(node: Mapping[str, Any], prefix: str | None) -> None:
            for key, raw in node.items():
                name = str(key) if prefix is None else f"{prefix}{SEPARATOR}{key}"
                if isinstance(raw, Mapping):
                    _walk(raw, name)
                    continue
                check_name(name)
                if name in items:
                    raise MalformedHierarchy(name, "name occurs twice in nested data")
                items[name] = typed_from_raw(raw)

        _walk(data, None)
        return cls(items)

    from_raw = from_nested

    @classmethod
    def coerce(cls, data: ParameterSet | Mapping[str, Any]) -> ParameterSet:
        """Accept a set, a flat mapping of typed values, or untyped JSON."""
        if isinstance(data, ParameterSet):
            return data
        if data and all(isinstance(v, TypedValue) for v in data.values()):
            return cls(data)
        return cls.from_nested(data)

    # ---- Derived sets ----

    def with_value(self, name: str, value: TypedValue) -> ParameterSet:
        return self.patch({name: value})

    def patch(self, changes: Mapping[str, TypedValue]) -> ParameterSet:
        merged = dict(self._items)
        merged.update(changes)
        return type(self)(merged)

    def without(self, names: Iterable[str]) -> ParameterSet:
        drop = set(names)
        return type(self)((n, v) for n, v in self._items.items() if n not in drop)

    def subset(self, names: Iterable[str]) -> ParameterSet:
        keep = set(names)
        return type(self)((n, v) for n, v in self._items.items() if n in keep)

    # ---- Views ----

    def to_plain(self) -> dict[str, Any]:
        return {name: tv.to_plain() for name, tv in self._items.items()}

    def to_nested(self) -> dict[str, Any]:
        """Nested JSON form, the shape history snapshots are stored in."""
        root: dict[str, Any] = {}
        for name, tv in self._items.items():
            *parents, leaf = name.split(SEPARATOR)
            node = root
            for seg in parents:
                child = node.setdefault(seg, {})
                if not isinstance(child, dict):
                    raise MalformedHierarchy(name, f"'{seg}' is already a value")
                node = child
            if isinstance(node.get(leaf), dict):
                raise MalformedHierarchy(name, "name is also a group")
            node[leaf] = tv.to_plain()
        return root

    def search(self, term: str) -> list[str]:
        needle = term.strip().lower()
        return sorted(n for n in self._items if needle in n.lower())

    def top_level(self) -> set[str]:
        return {top_segment(n) for n in self._items}
