"""Tests for guru.patterns — gallery stars, XP and sequential unlocks."""

import json
import logging

import pytest

from guru.hooks.memory import InMemoryKeyValueStore
from guru.patterns import PATTERN_PROGRESS_KEY, PatternTracker, star_rating


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


class TestStarRating:
    @pytest.mark.parametrize(
        "accuracy, stars",
        [(100, 5), (95, 5), (94.9, 4), (85, 4), (75, 3), (60, 2), (59.9, 1), (0, 1)],
    )
    def test_thresholds(self, accuracy: float, stars: int) -> None:
        assert star_rating(accuracy) == stars


class TestPatternTracker:
    @pytest.mark.asyncio
    async def test_new_player_defaults(self, kv) -> None:
        tracker = PatternTracker(kv, "p1")
        progress = await tracker.load()
        assert progress.player_id == "p1"
        assert progress.total_xp == 0
        assert progress.settings.target_opacity == 50

    @pytest.mark.asyncio
    async def test_local_player_gets_an_id(self, kv) -> None:
        progress = await PatternTracker(kv).load()
        assert progress.player_id

    @pytest.mark.asyncio
    async def test_sequential_unlocks(self, kv) -> None:
        tracker = PatternTracker(kv, "p1")
        await tracker.load()
        assert tracker.is_pattern_unlocked(1)
        assert not tracker.is_pattern_unlocked(2)

        await tracker.complete_pattern(1, accuracy=70, time_seconds=30)
        assert tracker.is_pattern_unlocked(2)
        assert not tracker.is_pattern_unlocked(3)

    @pytest.mark.asyncio
    async def test_completion_awards_xp_and_stars(self, kv) -> None:
        tracker = PatternTracker(kv, "p1")
        record = await tracker.complete_pattern(1, accuracy=88.0, time_seconds=40)

        assert record.completed
        assert record.stars == 4
        assert record.best_accuracy == 88.0
        assert record.attempts == 1
        assert record.completed_at
        assert tracker.progress.total_xp == 30

    @pytest.mark.asyncio
    async def test_worse_attempt_keeps_best(self, kv) -> None:
        tracker = PatternTracker(kv, "p1")
        await tracker.complete_pattern(1, accuracy=96.0, time_seconds=10)
        record = await tracker.complete_pattern(1, accuracy=50.0, time_seconds=15)

        assert record.stars == 5
        assert record.best_accuracy == 96.0
        assert record.attempts == 2
        assert record.total_time_seconds == 25
        # XP uses the record's stars each time: 35 + 35
        assert tracker.progress.total_xp == 70

    @pytest.mark.asyncio
    async def test_progress_is_saved_per_player(self, kv) -> None:
        await PatternTracker(kv, "p1").complete_pattern(1, accuracy=80.0, time_seconds=5)

        reloaded = PatternTracker(kv, "p1")
        await reloaded.load()
        assert reloaded.get_pattern_status(1).stars == 3
        assert await kv.get(f"{PATTERN_PROGRESS_KEY}:p1") is not None

        other = PatternTracker(kv, "p2")
        await other.load()
        assert other.get_pattern_status(1) is None

    @pytest.mark.asyncio
    async def test_local_player_uses_bare_key(self, kv) -> None:
        await PatternTracker(kv).complete_pattern(1, accuracy=80.0, time_seconds=5)
        stored = json.loads(await kv.get(PATTERN_PROGRESS_KEY))
        assert stored["total_xp"] == 25

    @pytest.mark.asyncio
    async def test_unreadable_record_starts_fresh(self, kv, caplog: pytest.LogCaptureFixture) -> None:
        await kv.set(f"{PATTERN_PROGRESS_KEY}:p1", "{not json")
        with caplog.at_level(logging.WARNING, logger="guru.patterns"):
            progress = await PatternTracker(kv, "p1").load()
        assert progress.patterns_completed == {}
        assert "Discarding unreadable pattern progress" in caplog.text
