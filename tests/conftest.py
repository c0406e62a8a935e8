from __future__ import annotations

import os

import pytest

from paramdash.core.parameters import ParameterSet
from paramdash.core.selection import SelectionStore
from paramdash.core.values import ParamKind, TypedValue
from paramdash.services.mock_client import MockParameterClient
from paramdash.services.storage import MemoryStore

pytest_plugins = ["nicegui.testing.user_plugin"]


@pytest.fixture(scope="session", autouse=True)
def webapp_env_session() -> None:
    """
    Global test defaults for the NiceGUI webapp (set at session start via os.environ):
      - Disable auto-connect when a page opens (tests install their own client)
    These can still be overridden per-test with monkeypatch.setenv if needed.
    """
    os.environ["PARAMDASH_AUTO_CONNECT"] = "0"


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def selection(memory_store: MemoryStore) -> SelectionStore:
    return SelectionStore(memory_store)


@pytest.fixture
async def mock_client() -> MockParameterClient:
    client = MockParameterClient()
    await client.connect()
    return client


@pytest.fixture
def small_set() -> ParameterSet:
    """Three parameters in two levels of groups."""
    return ParameterSet(
        {
            "a.b.c": TypedValue(ParamKind.DOUBLE, 1.5),
            "a.b.d": TypedValue(ParamKind.BOOL, False),
            "a.e": TypedValue(ParamKind.STRING, "hi"),
        }
    )
