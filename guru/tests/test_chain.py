"""Tests for guru.hooks.chain — tiered fallback for progress and sessions."""

import logging

import pytest

from guru.hooks.chain import FallbackProgressChain, FallbackSessionLog
from guru.hooks.memory import InMemoryProgressBackend, InMemorySessionLog


class _DownProgress(InMemoryProgressBackend):
    name = "down"

    async def load_progress(self, player_id):
        raise ConnectionError("database unreachable")

    async def save_progress(self, progress) -> None:
        raise ConnectionError("database unreachable")


class _DownSessions(InMemorySessionLog):
    name = "down"

    async def save_session(self, session) -> None:
        raise ConnectionError("database unreachable")

    async def get_session(self, session_id):
        raise ConnectionError("database unreachable")

    async def list_sessions(self, stage=None):
        raise ConnectionError("database unreachable")


class TestFallbackProgressChain:
    def test_memory_tier_is_appended(self) -> None:
        chain = FallbackProgressChain([_DownProgress()])
        assert [t.name for t in chain.tiers] == ["down", "memory"]

    def test_existing_memory_tier_is_not_duplicated(self) -> None:
        chain = FallbackProgressChain([InMemoryProgressBackend()])
        assert len(chain.tiers) == 1

    @pytest.mark.asyncio
    async def test_write_goes_to_first_healthy_tier(self, make_progress) -> None:
        durable = InMemoryProgressBackend()
        chain = FallbackProgressChain([durable])
        assert await chain.save_progress(make_progress()) == "memory"
        assert await durable.load_progress("player-test") is not None

    @pytest.mark.asyncio
    async def test_failed_tier_is_skipped(self, make_progress, caplog: pytest.LogCaptureFixture) -> None:
        chain = FallbackProgressChain([_DownProgress()])
        with caplog.at_level(logging.WARNING, logger="guru.hooks.chain"):
            tier = await chain.save_progress(make_progress(completed=1))
            loaded = await chain.load_progress("player-test")

        assert tier == "memory"
        assert loaded.completion(1).is_completed
        assert "database unreachable" in caplog.text

    @pytest.mark.asyncio
    async def test_read_prefers_durable_tier(self, make_progress) -> None:
        durable, fallback = InMemoryProgressBackend(), InMemoryProgressBackend()
        await durable.save_progress(make_progress(completed=2))
        await fallback.save_progress(make_progress(completed=1))

        chain = FallbackProgressChain([durable, fallback])
        assert (await chain.load_progress("player-test")).current_stage == 3

    @pytest.mark.asyncio
    async def test_unknown_player_reads_none(self) -> None:
        assert await FallbackProgressChain([]).load_progress("nobody") is None


class TestFallbackSessionLog:
    @pytest.mark.asyncio
    async def test_failed_tier_is_skipped(self, make_session_data) -> None:
        chain = FallbackSessionLog([_DownSessions()])
        session = make_session_data()

        assert await chain.save_session(session) == "memory"
        assert await chain.get_session(session.session_id) == session
        assert await chain.list_sessions() == [session]

    @pytest.mark.asyncio
    async def test_listing_merges_tiers_without_duplicates(self, make_session_data) -> None:
        durable, fallback = InMemorySessionLog(), InMemorySessionLog()
        shared = make_session_data(start_time=2)
        await durable.save_session(shared)
        await fallback.save_session(shared)
        only_fallback = make_session_data(start_time=1, stage=2)
        await fallback.save_session(only_fallback)

        chain = FallbackSessionLog([durable, fallback])
        assert await chain.list_sessions() == [only_fallback, shared]
        assert await chain.list_sessions(stage=2) == [only_fallback]
