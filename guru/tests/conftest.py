"""Shared test fixtures for the Guru Protocol core.

Factory-pattern fixtures that return callables accepting **overrides.

The environment is pinned before anything imports guru.main: in-memory
SQLite and no key-value file, so the app under test never writes to disk.

Fixtures:
    make_metrics: Factory for SkillMetrics (uniform value + per-field overrides)
    make_stroke: Factory for sealed StrokeData along a straight line
    make_session_data: Factory for finished SessionData records
    make_progress: Factory for MasteryProgress with stages pre-completed
    progress_store: A MasteryProgressStore on in-memory storage, fixed clock
"""

import os

os.environ["GURU_DATABASE_URL"] = "sqlite://"
os.environ["GURU_KV_PATH"] = ""

from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from guru.hooks.memory import InMemoryProgressBackend, InMemorySessionLog  # noqa: E402
from guru.progress import MasteryProgressStore  # noqa: E402
from guru.recorder import SessionRecorder  # noqa: E402
from guru.schemas import (  # noqa: E402
    MasteryProgress,
    SessionData,
    SkillMetrics,
    StrokeData,
    StrokePoint,
)
from guru.stages import METRIC_FIELDS  # noqa: E402

FIXED_NOW = 1_700_000_000_000


# ---------------------------------------------------------------------------
# SkillMetrics factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_metrics():
    """Returns a factory for SkillMetrics.

    make_metrics(0.9) sets every field to 0.9; keyword overrides win.
    """

    def _make(value: float = 0.0, **overrides) -> SkillMetrics:
        fields = {field: value for field in METRIC_FIELDS}
        fields.update(overrides)
        return SkillMetrics(**fields)

    return _make


# ---------------------------------------------------------------------------
# Stroke factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_stroke():
    """Returns a factory for a horizontal stroke sampled every 10 ms.

    Defaults: stroke 1, five points 10 px apart, constant 0.7 pressure.
    """

    def _make(
        stroke_id: int = 1,
        count: int = 5,
        step: float = 10.0,
        pressure: float = 0.7,
        start: int = 0,
        **overrides,
    ) -> StrokeData:
        points = [
            StrokePoint(
                timestamp=start + i * 10,
                x=i * step,
                y=0.0,
                pressure=pressure,
                velocity=step / 10 if i else 0.0,
                angle=0.0,
            )
            for i in range(count)
        ]
        defaults = {
            "stroke_id": stroke_id,
            "points": points,
            "start_time": points[0].timestamp,
            "end_time": points[-1].timestamp,
        }
        defaults.update(overrides)
        return StrokeData(**defaults)

    return _make


# ---------------------------------------------------------------------------
# SessionData factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_session_data(make_metrics):
    """Returns a factory for finished SessionData with a unique id."""

    def _make(**overrides) -> SessionData:
        defaults = {
            "session_id": f"session-{uuid4().hex[:8]}",
            "pattern_id": 1,
            "stage": 1,
            "start_time": FIXED_NOW,
            "end_time": FIXED_NOW + 60_000,
            "metrics": make_metrics(0.8),
        }
        defaults.update(overrides)
        return SessionData(**defaults)

    return _make


# ---------------------------------------------------------------------------
# MasteryProgress factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_progress(make_metrics):
    """Returns a factory for MasteryProgress.

    completed=N marks stages 1..N completed with best metrics `best`
    (uniform value) and unlocks stage N+1, keeping the ladder invariant.
    """

    def _make(
        player_id: str = "player-test",
        completed: int = 0,
        best: float = 0.9,
        **overrides,
    ) -> MasteryProgress:
        progress = MasteryProgress.new(player_id)
        for stage in range(1, completed + 1):
            sc = progress.completion(stage)
            sc.is_completed = True
            sc.attempt_count = 1
            sc.best_metrics = make_metrics(best)
            sc.completed_at = FIXED_NOW
            if stage < 5:
                progress.completion(stage + 1).is_unlocked = True
        progress.current_stage = min(completed + 1, 5)
        return progress.model_copy(update=overrides)

    return _make


# ---------------------------------------------------------------------------
# Progress store on in-memory storage
# ---------------------------------------------------------------------------


@pytest.fixture
def progress_backend() -> InMemoryProgressBackend:
    return InMemoryProgressBackend()


@pytest.fixture
def session_log() -> InMemorySessionLog:
    return InMemorySessionLog()


@pytest.fixture
def recorder(session_log) -> SessionRecorder:
    return SessionRecorder(session_log)


@pytest.fixture
def progress_store(progress_backend, recorder) -> MasteryProgressStore:
    """A store for "player-test" whose clock always reads FIXED_NOW."""
    return MasteryProgressStore(
        "player-test", progress_backend, recorder, clock=lambda: FIXED_NOW
    )
