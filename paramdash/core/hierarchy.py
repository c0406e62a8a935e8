from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Union

from paramdash.core.errors import MalformedHierarchy
from paramdash.core.parameters import SEPARATOR, ParameterSet
from paramdash.core.values import TypedValue


@dataclass(frozen=True)
class Leaf:
    name: str  # last segment
    full_name: str  # dotted name in the originating set
    value: TypedValue


@dataclass(frozen=True)
class Group:
    name: str  # segment, "" for the root
    path: str | None  # dotted path, None for the root
    children: dict[str, Node] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.children)


Node = Union[Leaf, Group]


@dataclass(frozen=True)
class TreeRow:
    """One displayable line of a depth-first walk."""

    depth: int
    node: Node


def _join(prefix: str | None, segment: str) -> str:
    # "" is a valid first segment, so only None marks the root
    return segment if prefix is None else f"{prefix}{SEPARATOR}{segment}"


def group(params: ParameterSet) -> Group:
    """Turn a flat dotted-name set into a tree of groups and leaves.

    Raises MalformedHierarchy when one name is both a parameter and the
    prefix of another, regardless of the order the names arrive in.
    """
    # Built from plain dicts first; nodes are frozen once complete.
    root: dict[str, object] = {}
    for full_name, value in params.items():
        *parents, last = full_name.split(SEPARATOR)
        level = root
        path: str | None = None
        for seg in parents:
            path = _join(path, seg)
            child = level.get(seg)
            if child is None:
                child = level[seg] = {}
            elif isinstance(child, Leaf):
                raise MalformedHierarchy(path, f"parameter is also the prefix of '{full_name}'")
            level = child
        existing = level.get(last)
        if isinstance(existing, dict):
            raise MalformedHierarchy(full_name, "parameter is also a group of other parameters")
        level[last] = Leaf(name=last, full_name=full_name, value=value)

    def _freeze(name: str, path: str | None, raw: dict) -> Group:
        children: dict[str, Node] = {}
        for seg, child in raw.items():
            if isinstance(child, dict):
                children[seg] = _freeze(seg, _join(path, seg), child)
            else:
                children[seg] = child
        return Group(name=name, path=path, children=children)

    return _freeze("", None, root)


def flatten(tree: Group) -> ParameterSet:
    """Inverse of :func:`group`: rebuild the flat set from the leaves."""
    items: dict[str, TypedValue] = {}

    def _walk(node: Group, path: str | None) -> None:
        for seg, child in node.children.items():
            child_path = _join(path, seg)
            if isinstance(child, Group):
                _walk(child, child_path)
                continue
            if child.full_name != child_path:
                raise MalformedHierarchy(
                    child_path, f"leaf is named '{child.full_name}' but sits at '{child_path}'"
                )
            items[child_path] = child.value

    _walk(tree, tree.path)
    return ParameterSet(items)


def iter_leaves(node: Node) -> Iterator[Leaf]:
    if isinstance(node, Leaf):
        yield node
        return
    for child in node.children.values():
        yield from iter_leaves(child)


def count_leaves(node: Node) -> int:
    return sum(1 for _ in iter_leaves(node))


def find(tree: Group, path: str | None = None) -> Node | None:
    """Return the node at a dotted path (the root for None), or None."""
    if path is None:
        return tree
    node: Node = tree
    for seg in path.split(SEPARATOR):
        if not isinstance(node, Group) or seg not in node.children:
            return None
        node = node.children[seg]
    return node


def group_paths(tree: Group) -> list[str]:
    """Paths of every non-root group, e.g. for an "expand all" control."""
    paths: list[str] = []

    def _walk(node: Group) -> None:
        for child in node.children.values():
            if isinstance(child, Group):
                paths.append(child.path)
                _walk(child)

    _walk(tree)
    return paths


def render_rows(tree: Group, expanded: set[str] | None = None) -> list[TreeRow]:
    """Depth-first rows, groups before leaves, both sorted by name.

    With ``expanded`` given, the children of groups not in it are skipped.
    """
    rows: list[TreeRow] = []

    def _walk(node: Group, depth: int) -> None:
        groups = sorted((c for c in node.children.values() if isinstance(c, Group)), key=lambda g: g.name)
        leaves = sorted((c for c in node.children.values() if isinstance(c, Leaf)), key=lambda l: l.name)
        for child in groups:
            rows.append(TreeRow(depth, child))
            if expanded is None or child.path in expanded:
                _walk(child, depth + 1)
        for leaf in leaves:
            rows.append(TreeRow(depth, leaf))

    _walk(tree, 0)
    return rows
