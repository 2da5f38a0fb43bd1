"""Tests for guru.hooks.interfaces — ABC contract enforcement.

Behavioral contract tests live in guru/tests/contracts/.
"""

import pytest

from guru.hooks.interfaces import KeyValueStore, ProgressBackend, SessionLog


class TestProgressBackend:
    def test_cannot_instantiate_directly(self) -> None:
        with pytest.raises(TypeError):
            ProgressBackend()  # type: ignore[abstract]

    def test_incomplete_subclass_missing_save(self) -> None:
        class Partial(ProgressBackend):
            async def load_progress(self, player_id):
                return None

        with pytest.raises(TypeError):
            Partial()  # type: ignore[abstract]

    def test_complete_subclass(self) -> None:
        class Complete(ProgressBackend):
            async def load_progress(self, player_id):
                return None

            async def save_progress(self, progress):
                pass

        assert Complete().name == "backend"


class TestSessionLog:
    def test_cannot_instantiate_directly(self) -> None:
        with pytest.raises(TypeError):
            SessionLog()  # type: ignore[abstract]

    def test_incomplete_subclass_missing_list(self) -> None:
        class Partial(SessionLog):
            async def save_session(self, session):
                pass

            async def get_session(self, session_id):
                return None

        with pytest.raises(TypeError):
            Partial()  # type: ignore[abstract]


class TestKeyValueStore:
    def test_cannot_instantiate_directly(self) -> None:
        with pytest.raises(TypeError):
            KeyValueStore()  # type: ignore[abstract]

    def test_incomplete_subclass_missing_delete(self) -> None:
        class Partial(KeyValueStore):
            async def get(self, key):
                return None

            async def set(self, key, value):
                pass

        with pytest.raises(TypeError):
            Partial()  # type: ignore[abstract]
