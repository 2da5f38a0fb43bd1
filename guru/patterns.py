"""Pattern gallery tracker — per-pattern stars, XP and sequential unlocks.

The older, lighter progression that runs beside the mastery ladder:
pattern 1 is always open, pattern n opens once pattern n-1 is completed.
Each completion counts an attempt and awards 10 + 5 × stars XP. Stars
come from the best accuracy (0-100) seen for the pattern.

The record lives in the flat key-value tier as one JSON blob. Without a
player id the tracker serves the single local player under the bare key
and mints a fresh id on first load.

Tier 2 service: imports from hooks/interfaces and schemas (Tier 1).

Usage:
    tracker = PatternTracker(JsonFileStore("data/guru-kv.json"), "player-1")
    await tracker.load()
    record = await tracker.complete_pattern(3, accuracy=88.5, time_seconds=42)
"""

import asyncio
import logging
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import ValidationError

from guru.hooks.interfaces import KeyValueStore
from guru.schemas import PatternRecord, PlayerProgress

logger = logging.getLogger("guru.patterns")

PATTERN_PROGRESS_KEY = "rangoli-learning-progress-v1"

BASE_XP = 10
XP_PER_STAR = 5

# (minimum accuracy, stars), checked top down
STAR_THRESHOLDS = ((95.0, 5), (85.0, 4), (75.0, 3), (60.0, 2))


def star_rating(accuracy: float) -> int:
    """Maps a 0-100 accuracy to 1-5 stars."""
    for minimum, stars in STAR_THRESHOLDS:
        if accuracy >= minimum:
            return stars
    return 1


class PatternTracker:
    """Gallery progress for one player.

    Args:
        kv: Key-value store holding the serialized PlayerProgress.
        player_id: Player to track. None means the single local player.
    """

    def __init__(self, kv: KeyValueStore, player_id: str | None = None) -> None:
        self._kv = kv
        self._player_id = player_id
        self._key = (
            PATTERN_PROGRESS_KEY if player_id is None else f"{PATTERN_PROGRESS_KEY}:{player_id}"
        )
        self._progress: PlayerProgress | None = None
        self._lock = asyncio.Lock()

    def _fresh(self) -> PlayerProgress:
        return PlayerProgress(player_id=self._player_id or str(uuid4()))

    async def load(self) -> PlayerProgress:
        """Reads the stored record once. Unreadable data starts a new player."""
        if self._progress is not None:
            return self._progress

        raw = None
        try:
            raw = await self._kv.get(self._key)
        except Exception as exc:
            logger.warning("Pattern progress read failed (%s): %s", self._key, exc)

        progress = None
        if raw is not None:
            try:
                progress = PlayerProgress.model_validate_json(raw)
            except ValidationError as exc:
                logger.warning("Discarding unreadable pattern progress (%s): %s", self._key, exc)
        self._progress = progress or self._fresh()
        return self._progress

    @property
    def progress(self) -> PlayerProgress:
        if self._progress is None:
            self._progress = self._fresh()
        return self._progress

    def get_pattern_status(self, pattern_id: int) -> PatternRecord | None:
        return self.progress.patterns_completed.get(pattern_id)

    def is_pattern_unlocked(self, pattern_id: int) -> bool:
        if pattern_id == 1:
            return True
        previous = self.progress.patterns_completed.get(pattern_id - 1)
        return bool(previous and previous.completed)

    async def complete_pattern(
        self, pattern_id: int, accuracy: float, time_seconds: float
    ) -> PatternRecord:
        """Records a finished pattern and awards XP.

        Args:
            pattern_id: Gallery pattern number.
            accuracy: Drawing accuracy, 0-100.
            time_seconds: Time spent on this attempt.

        Returns:
            The updated record for the pattern.
        """
        await self.load()
        async with self._lock:
            progress = self.progress
            record = progress.patterns_completed.get(pattern_id) or PatternRecord()
            record = record.model_copy(
                update={
                    "completed": True,
                    "attempts": record.attempts + 1,
                    "total_time_seconds": record.total_time_seconds + time_seconds,
                    "completed_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            if accuracy > record.best_accuracy:
                record = record.model_copy(
                    update={"best_accuracy": accuracy, "stars": star_rating(accuracy)}
                )

            progress.total_xp += BASE_XP + record.stars * XP_PER_STAR
            progress.patterns_completed[pattern_id] = record
            await self._save()
        return record

    async def _save(self) -> None:
        try:
            await self._kv.set(self._key, self.progress.model_dump_json())
        except Exception as exc:
            logger.warning("Pattern progress write failed (%s): %s", self._key, exc)
