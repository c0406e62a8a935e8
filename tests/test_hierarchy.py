from __future__ import annotations

import pytest

from paramdash.core.errors import MalformedHierarchy
from paramdash.core.hierarchy import (
    Group,
    Leaf,
    count_leaves,
    find,
    flatten,
    group,
    group_paths,
    iter_leaves,
    render_rows,
)
from paramdash.core.parameters import ParameterSet
from paramdash.core.values import ParamKind, TypedValue
from paramdash.services.mock_client import sample_parameters


@pytest.mark.unit
def test_group_builds_nested_groups_and_leaves(small_set):
    tree = group(small_set)
    assert list(tree.children) == ["a"]
    a = tree.children["a"]
    assert isinstance(a, Group) and a.path == "a"
    b = a.children["b"]
    assert isinstance(b, Group) and b.path == "a.b"
    assert set(b.children) == {"c", "d"}
    e = a.children["e"]
    assert isinstance(e, Leaf)
    assert e.full_name == "a.e"
    assert e.value == TypedValue(ParamKind.STRING, "hi")


@pytest.mark.unit
def test_flatten_reproduces_the_original_set(small_set):
    assert flatten(group(small_set)) == small_set


@pytest.mark.unit
def test_round_trip_of_the_sample_robot():
    params = sample_parameters()
    tree = group(params)
    assert flatten(tree) == params
    assert count_leaves(tree) == len(params)


@pytest.mark.unit
def test_empty_set_gives_empty_root():
    tree = group(ParameterSet())
    assert len(tree) == 0
    assert flatten(tree) == ParameterSet()


@pytest.mark.unit
@pytest.mark.parametrize(
    "names",
    [
        ["a", "a.b"],
        ["a.b", "a"],
        ["x.y", "x.y.z"],
        ["x.y.z", "x.y"],
    ],
)
def test_leaf_that_is_also_a_prefix_is_rejected_in_any_order(names):
    params = ParameterSet({n: TypedValue(ParamKind.INT, i) for i, n in enumerate(names)})
    with pytest.raises(MalformedHierarchy):
        group(params)


@pytest.mark.unit
def test_flatten_rejects_misplaced_leaf():
    leaf = Leaf(name="b", full_name="other.b", value=TypedValue(ParamKind.INT, 1))
    tree = Group(name="", path=None, children={"a": Group(name="a", path="a", children={"b": leaf})})
    with pytest.raises(MalformedHierarchy):
        flatten(tree)


@pytest.mark.unit
def test_find_and_group_paths(small_set):
    tree = group(small_set)
    assert find(tree) is tree
    assert find(tree, "") is None
    assert isinstance(find(tree, "a.b"), Group)
    assert find(tree, "a.b.c").value.value == 1.5
    assert find(tree, "a.e.x") is None
    assert find(tree, "nope") is None
    assert group_paths(tree) == ["a", "a.b"]


@pytest.mark.unit
def test_render_rows_lists_groups_before_leaves(small_set):
    tree = group(small_set)
    rows = [(r.depth, r.node.name) for r in render_rows(tree)]
    assert rows == [(0, "a"), (1, "b"), (2, "c"), (2, "d"), (1, "e")]


@pytest.mark.unit
def test_render_rows_skips_collapsed_groups(small_set):
    tree = group(small_set)
    assert [r.node.name for r in render_rows(tree, expanded=set())] == ["a"]
    assert [r.node.name for r in render_rows(tree, expanded={"a"})] == ["a", "b", "e"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "names",
    [
        [".a"],
        [".a", "a"],
        ["a.", "a.b"],
        ["x..y", "x.y"],
        [".", "a"],
    ],
)
def test_empty_segments_survive_the_round_trip(names):
    params = ParameterSet({n: TypedValue(ParamKind.INT, i) for i, n in enumerate(names)})
    tree = group(params)
    assert flatten(tree) == params
    assert {leaf.full_name for leaf in iter_leaves(tree)} == set(names)


@pytest.mark.unit
def test_leading_dot_sits_under_an_empty_group():
    tree = group(ParameterSet({".a": TypedValue(ParamKind.INT, 1)}))
    empty = tree.children[""]
    assert isinstance(empty, Group) and empty.path == ""
    assert find(tree, ".a").full_name == ".a"
    assert group_paths(tree) == [""]
