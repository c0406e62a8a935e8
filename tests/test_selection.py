from __future__ import annotations

import json

import pytest

from paramdash.core.selection import SELECTION_KEY, SelectionStore
from paramdash.services.storage import MemoryStore


@pytest.mark.unit
def test_everything_selected_until_first_observation(selection):
    assert selection.get("anything")
    assert selection.selected_names() == set()


@pytest.mark.unit
def test_first_observation_selects_all_and_persists(memory_store, selection):
    selection.observe(["a.x", "a.y", "b"])
    assert selection.selected_names() == {"a.x", "a.y", "b"}
    assert json.loads(memory_store.data[SELECTION_KEY]) == {"a.x": True, "a.y": True, "b": True}


@pytest.mark.unit
def test_names_seen_later_are_not_auto_selected(selection):
    selection.observe(["a", "b"])
    selection.observe(["a", "b", "c"])
    assert not selection.get("c")
    assert selection.selected_names() == {"a", "b"}
    assert selection.stats() == {
        "total": 3,
        "selected": 2,
        "all_selected": False,
        "some_selected": True,
        "none_selected": False,
    }


@pytest.mark.unit
def test_selection_survives_a_restart(memory_store):
    first = SelectionStore(memory_store)
    first.observe(["a", "b"])
    first.set("a", False)

    second = SelectionStore(memory_store)
    second.observe(["a", "b"])
    assert not second.get("a")
    assert second.get("b")
    assert second.selected_names() == {"b"}


@pytest.mark.unit
def test_every_change_is_written(memory_store, selection):
    selection.observe(["a"])
    writes = memory_store.writes
    selection.set("a", False)
    selection.select_all(True)
    assert memory_store.writes == writes + 2


@pytest.mark.unit
def test_select_all_covers_exactly_the_known_names(memory_store, selection):
    selection.observe(["a", "b"])
    selection.set("gone", True)
    selection.select_all(False)
    assert selection.as_dict() == {"a": False, "b": False}
    assert selection.stats()["none_selected"]
    selection.select_all(True)
    assert selection.stats()["all_selected"]


@pytest.mark.unit
def test_empty_observation_does_not_seed(memory_store, selection):
    selection.observe([])
    assert SELECTION_KEY not in memory_store.data
    assert selection.get("later")


@pytest.mark.unit
@pytest.mark.parametrize("blob", ["{not json", "[1, 2]", '"text"'])
def test_unreadable_state_is_ignored(blob):
    store = MemoryStore({SELECTION_KEY: blob})
    selection = SelectionStore(store)
    assert selection.as_dict() == {}
    selection.observe(["a"])
    assert selection.get("a")


@pytest.mark.unit
def test_reload_picks_up_storage_written_later():
    store = MemoryStore()
    selection = SelectionStore(store)
    store.data[SELECTION_KEY] = json.dumps({"a": False})
    selection.reload()
    assert not selection.get("a")
    assert selection.known == ["a"]
