"""Fixtures for contract tests — one parameterized fixture per hook interface.

Each fixture yields a fresh implementation instance, once per registered
backend. Every contract test runs against every backend.

To test a new backend against the contracts:
    1. Add its param string to the params list.
    2. Add an elif branch that yields the instance.
    3. Run: python -m pytest guru/tests/contracts/ -v

Uses @pytest_asyncio.fixture (not @pytest.fixture) for async fixture support
in strict mode.
"""

import pytest_asyncio

from guru.hooks.database import SqlStore
from guru.hooks.kv import JsonFileStore, KeyValueProgressBackend
from guru.hooks.memory import (
    InMemoryKeyValueStore,
    InMemoryProgressBackend,
    InMemorySessionLog,
)


@pytest_asyncio.fixture(params=["memory", "sql", "key-value"])
async def progress_tier(request, tmp_path):
    """Yields a ProgressBackend implementation."""
    if request.param == "memory":
        yield InMemoryProgressBackend()
    elif request.param == "sql":
        store = SqlStore("sqlite://")
        yield store
        store.dispose()
    elif request.param == "key-value":
        yield KeyValueProgressBackend(JsonFileStore(tmp_path / "kv.json"))


@pytest_asyncio.fixture(params=["memory", "sql", "sql-file"])
async def session_tier(request, tmp_path):
    """Yields a SessionLog implementation."""
    if request.param == "memory":
        yield InMemorySessionLog()
    elif request.param == "sql":
        store = SqlStore("sqlite://")
        yield store
        store.dispose()
    elif request.param == "sql-file":
        store = SqlStore(f"sqlite:///{tmp_path / 'db' / 'guru.db'}")
        yield store
        store.dispose()


@pytest_asyncio.fixture(params=["memory", "json-file"])
async def kv_store(request, tmp_path):
    """Yields a KeyValueStore implementation."""
    if request.param == "memory":
        yield InMemoryKeyValueStore()
    elif request.param == "json-file":
        yield JsonFileStore(tmp_path / "kv.json")
