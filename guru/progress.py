"""Mastery progress store — the authoritative per-player state machine.

Each stage moves locked → unlocked-incomplete → completed. Stage 1 starts
unlocked; passing stage s unlocks s+1 and advances current_stage. Every
completion call counts an attempt, pass or fail. A session is applied at
most once, on the stage it was started on; replays raise
SessionAlreadyCompletedError.

complete_session is serialised per player with an asyncio.Lock and works
on a deep copy of the record: the new value is swapped in only after
every field (attempts, best metrics, transitions, practice time, guru
score, achievements) has been computed and the whole record handed to the
storage chain. Readers never see a half-applied completion.

Subscribers registered with subscribe() are notified with the new record
after each completion (the live current-stage / guru-score feed for UIs).

Tier 3 orchestration module: imports from scoring/composite, feedback,
achievements, recorder, hooks/interfaces (Tier 2), stages, schemas,
errors (Tier 1).

Usage:
    registry = ProgressRegistry(backend, recorder)
    store = await registry.get("player-1")
    session_id = await store.start_session(pattern_id=7, stage=1)
    result = await store.complete_session(session_id, 1, 7, metrics, 90_000)
"""

import asyncio
import logging
import math
from collections.abc import Callable
from statistics import fmean

from guru.achievements import HOUR_MS, evaluate_achievements
from guru.errors import (
    InvalidStageError,
    SessionAlreadyCompletedError,
    SessionStageMismatchError,
    StageLockedError,
)
from guru.feedback import generate_feedback
from guru.hooks.interfaces import ProgressBackend
from guru.recorder import SessionRecorder
from guru.schemas import STAGE_COUNT, MasteryProgress, SessionResult, SkillMetrics, now_ms
from guru.scoring.composite import composite_score, passes
from guru.stages import FINAL_STAGE, resolve_stage

logger = logging.getLogger("guru.progress")

ALL_STAGES_BONUS = 0.10
TIME_BONUS_CAP = 0.10
TIME_BONUS_RATE = 0.05

ProgressListener = Callable[[MasteryProgress], None]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_guru_score(progress: MasteryProgress) -> int:
    """Derives the 0-100 Guru Score from stage completions.

    Mean composite of best metrics over completed stages (each with its
    own stage weights), +0.10 when all five are completed, plus a
    diminishing practice-time bonus min(0.10, log10(hours + 1) × 0.05).
    Scaled ×100, capped at 100, rounded half up. No completed stages → 0.
    """
    completed = [sc for sc in progress.stage_completions if sc.is_completed]
    if not completed:
        return 0

    score = fmean(composite_score(sc.best_metrics, sc.stage) for sc in completed)
    if len(completed) == STAGE_COUNT:
        score += ALL_STAGES_BONUS

    hours = max(0, progress.total_practice_time) / HOUR_MS
    score += min(TIME_BONUS_CAP, math.log10(hours + 1) * TIME_BONUS_RATE)

    return max(0, min(100, _round_half_up(score * 100)))


class MasteryProgressStore:
    """Owns one player's MasteryProgress.

    Call load() once before use (ProgressRegistry.get does this).

    Args:
        player_id: The player this store serves.
        backend: Storage for the whole record (usually a fallback chain).
        recorder: Session recorder for the audit log.
        clock: Millisecond clock, injectable for tests.
    """

    def __init__(
        self,
        player_id: str,
        backend: ProgressBackend,
        recorder: SessionRecorder,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._player_id = player_id
        self._backend = backend
        self._recorder = recorder
        self._clock = clock
        self._progress: MasteryProgress | None = None
        self._lock = asyncio.Lock()
        self._listeners: list[ProgressListener] = []

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def recorder(self) -> SessionRecorder:
        return self._recorder

    async def load(self) -> MasteryProgress:
        """Loads the record from storage once; new players get the initial state."""
        async with self._lock:
            if self._progress is None:
                stored = None
                try:
                    stored = await self._backend.load_progress(self._player_id)
                except Exception as exc:
                    logger.warning(
                        "Progress load failed for %s, starting fresh: %s",
                        self._player_id,
                        exc,
                    )
                self._progress = stored or MasteryProgress.new(self._player_id)
        return self.progress

    def _current(self) -> MasteryProgress:
        if self._progress is None:
            return MasteryProgress.new(self._player_id)
        return self._progress

    # -- read side ----------------------------------------------------------

    @property
    def progress(self) -> MasteryProgress:
        """A deep copy of the current record."""
        return self._current().model_copy(deep=True)

    @property
    def current_stage(self) -> int:
        return self._current().current_stage

    @property
    def guru_score(self) -> int:
        return self._current().guru_score

    def is_stage_unlocked(self, stage: int) -> bool:
        """True if the stage is playable. Stages off the ladder are never unlocked."""
        try:
            resolve_stage(stage)
        except InvalidStageError:
            return False
        return self._current().completion(stage).is_unlocked

    # -- observers ----------------------------------------------------------

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Registers a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, progress: MasteryProgress) -> None:
        for listener in list(self._listeners):
            try:
                listener(progress.model_copy(deep=True))
            except Exception:
                logger.exception("Progress listener failed for %s", self._player_id)

    # -- sessions -----------------------------------------------------------

    async def start_session(self, pattern_id: int, stage: int) -> str:
        """Opens a practice session on an unlocked stage.

        Raises:
            InvalidStageError: If the stage is not 1..5.
            StageLockedError: If the stage is not unlocked yet.
        """
        resolve_stage(stage)
        await self.load()
        if not self.is_stage_unlocked(stage):
            raise StageLockedError(stage)
        return self._recorder.begin(
            pattern_id, stage, start_time=self._clock(), player_id=self._player_id
        )

    async def complete_session(
        self,
        session_id: str,
        stage: int,
        pattern_id: int,
        metrics: SkillMetrics,
        duration_ms: int,
    ) -> SessionResult:
        """Applies one finished session to the mastery record.

        Args:
            session_id: Id from start_session (unknown ids are still scored).
            stage: Stage the session was played on. Must match the stage
                an open session was started on.
            pattern_id: Pattern that was drawn. An open session keeps the
                pattern it was started with.
            metrics: Final session metrics.
            duration_ms: Practice time to add.

        Returns:
            SessionResult with pass decision, new guru score, feedback lines
            and newly unlocked achievements.

        Raises:
            InvalidStageError: If the stage is not 1..5.
            SessionAlreadyCompletedError: If the session was already completed.
            SessionNotFoundError: If the open session belongs to another player.
            SessionStageMismatchError: If the open session was started on
                another stage.
        """
        config = resolve_stage(stage)
        await self.load()

        async with self._lock:
            if await self._recorder.is_finalized(session_id):
                raise SessionAlreadyCompletedError(session_id)
            if self._recorder.is_open(session_id):
                opened = self._recorder.get_open(session_id, self._player_id)
                if opened.stage != stage:
                    raise SessionStageMismatchError(session_id, opened.stage, stage)
                pattern_id = opened.pattern_id

            current = self._current()
            composite, threshold, passed = passes(metrics, stage)

            if not current.completion(stage).is_unlocked:
                logger.info(
                    "Ignoring completion on locked stage %d for %s", stage, self._player_id
                )
                return SessionResult(
                    session_id=session_id,
                    stage=stage,
                    passed=False,
                    composite_score=composite,
                    threshold=threshold,
                    guru_score=current.guru_score,
                    feedback=[
                        f"{config.label} is locked. Complete stage {stage - 1} first."
                    ],
                )

            now = self._clock()
            progress = current.model_copy(deep=True)
            completion = progress.completion(stage)
            completion.attempt_count += 1

            if metrics.total() > completion.best_metrics.total():
                completion.best_metrics = metrics

            if passed and not completion.is_completed:
                completion.is_completed = True
                completion.completed_at = now
                if stage < FINAL_STAGE:
                    progress.completion(stage + 1).is_unlocked = True
                    progress.current_stage = stage + 1

            progress.total_practice_time += max(0, int(duration_ms))
            progress.last_session = now
            progress.guru_score = compute_guru_score(progress)

            new_achievements = evaluate_achievements(progress, metrics, now)
            progress.achievements.extend(new_achievements)

            await self._recorder.finalize(
                session_id, metrics, end_time=now, pattern_id=pattern_id, stage=stage
            )
            tier = await self._persist(progress)

            self._progress = progress
            logger.info(
                "Session complete: player=%s session=%s stage=%d composite=%.3f passed=%s guru=%d",
                self._player_id,
                session_id,
                stage,
                composite,
                passed,
                progress.guru_score,
                extra={
                    "player_id": self._player_id,
                    "session_id": session_id,
                    "stage": stage,
                    "composite": composite,
                    "passed": passed,
                    "guru_score": progress.guru_score,
                    "storage_tier": tier,
                },
            )
            self._notify(progress)

        return SessionResult(
            session_id=session_id,
            stage=stage,
            passed=passed,
            composite_score=composite,
            threshold=threshold,
            guru_score=progress.guru_score,
            feedback=generate_feedback(metrics, stage, passed),
            new_achievements=new_achievements,
        )

    async def _persist(self, progress: MasteryProgress) -> str | None:
        """Hands the whole record to storage. Failure keeps it in memory only."""
        try:
            return await self._backend.save_progress(progress)
        except Exception as exc:
            logger.warning(
                "Progress save failed for %s, keeping in memory: %s",
                self._player_id,
                exc,
            )
            return None


class ProgressRegistry:
    """Hands out exactly one MasteryProgressStore per player id.

    One store per player means one lock per player: completions for the
    same player queue up, different players never wait on each other.

    Args:
        backend: Shared progress storage.
        recorder: Shared session recorder.
    """

    def __init__(self, backend: ProgressBackend, recorder: SessionRecorder) -> None:
        self._backend = backend
        self._recorder = recorder
        self._stores: dict[str, MasteryProgressStore] = {}

    async def get(self, player_id: str) -> MasteryProgressStore:
        store = self._stores.get(player_id)
        if store is None:
            store = MasteryProgressStore(player_id, self._backend, self._recorder)
            self._stores[player_id] = store
        await store.load()
        return store
