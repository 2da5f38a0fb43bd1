"""Onboarding tutorial — three metric-gated steps before the mastery ladder.

Each step demonstrates one skill and judges the player's strokes on one
metric only:

  grip_introduction   pressure consistency   pass ≥ 0.65
  velocity_control    velocity consistency   pass ≥ 0.65
  angle_awareness     angular precision      pass ≥ 0.60

A step can be advanced once a passing stroke lands on or after its
minimum attempt count. Failed strokes get a hint, rotating through the
step's list. Advancing past the last step (or skipping) completes the
tutorial.

Strokes are scored inline with the pure scorers, not through the pool:
one stroke at a time doesn't need it.

State lives in the flat key-value tier under its own key, one JSON blob
per player, the same way PatternTracker stores gallery progress.

Tier 2 service: imports from scoring/metrics, capture (Tier 2),
hooks/interfaces, schemas, errors (Tier 1).

Usage:
    tutor = OnboardingTutor(JsonFileStore("data/guru-kv.json"), "player-1")
    await tutor.load()
    attempt = await tutor.evaluate_attempt(stroke)
    if attempt.can_advance:
        await tutor.advance()
"""

import asyncio
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from guru.capture import stroke_angles
from guru.errors import TutorialCompletedError, TutorialStepNotPassedError
from guru.hooks.interfaces import KeyValueStore
from guru.schemas import OnboardingAttempt, OnboardingProgress, StrokeData
from guru.scoring.metrics import score_angular, score_pressure, score_velocity

logger = logging.getLogger("guru.onboarding")

ONBOARDING_KEY = "shilparangoli-onboarding-complete"

TUTORIAL_SYMMETRY_AXES = 4


@dataclass(frozen=True)
class TutorialStep:
    """One tutorial step and the rule that judges it."""

    id: str
    title: str
    description: str
    metric: str  # a SkillMetrics field name
    success_threshold: float
    min_attempts: int
    feedback_message: str
    hints: tuple[str, ...]


STEPS: tuple[TutorialStep, ...] = (
    TutorialStep(
        id="grip_introduction",
        title="Step 1 · The Sacred Grip",
        description=(
            "Watch the ghost hand hold the virtual brush. Notice the steady "
            "pressure, never tense, never limp."
        ),
        metric="pressure_consistency",
        success_threshold=0.65,
        min_attempts=2,
        feedback_message="Try to match the ghost hand's steady pressure",
        hints=(
            "Rest your ring and pinky fingers on the desk",
            "Wrist stays relaxed, never tense",
            "Think of holding a delicate grain of rice",
        ),
    ),
    TutorialStep(
        id="velocity_control",
        title="Step 2 · Steady as a Stream",
        description=(
            "The ghost hand moves at a constant speed. Your line should flow "
            "like honey: smooth and unbroken."
        ),
        metric="velocity_consistency",
        success_threshold=0.65,
        min_attempts=2,
        feedback_message="Your speed is too jerky. Breathe out slowly as you draw.",
        hints=(
            "Exhale slowly as you draw the line",
            "Don't focus on the cursor tip, see the whole line",
            "Pretend you're drawing through honey",
        ),
    ),
    TutorialStep(
        id="angle_awareness",
        title="Step 3 · The Compass Within",
        description=(
            "Draw strokes at perfect 90° angles from the center. "
            "Imagine a clock: 12, 3, 6, 9."
        ),
        metric="angular_precision",
        success_threshold=0.60,
        min_attempts=2,
        feedback_message="Use the clock face: pivot your wrist at the center",
        hints=(
            "Your wrist is the pivot. Rotate, don't translate",
            "Visualize a clock overlay on the canvas",
            'Count out loud: "Twelve… three… six… nine…"',
        ),
    ),
)


def score_step_metric(metric: str, stroke: StrokeData) -> float:
    """Scores one stroke on a single tutorial metric."""
    if metric == "pressure_consistency":
        return score_pressure([p.pressure for p in stroke.points]).score
    if metric == "velocity_consistency":
        points = [{"x": p.x, "y": p.y, "t": p.timestamp} for p in stroke.points]
        return score_velocity(points).score
    if metric == "angular_precision":
        return score_angular(stroke_angles([stroke]), TUTORIAL_SYMMETRY_AXES).score
    raise ValueError(f"Unknown tutorial metric: {metric!r}")


class OnboardingTutor:
    """Tutorial state for one player.

    Args:
        kv: Key-value store holding the serialized OnboardingProgress.
        player_id: Player to track. None means the single local player.
    """

    def __init__(self, kv: KeyValueStore, player_id: str | None = None) -> None:
        self._kv = kv
        self._key = ONBOARDING_KEY if player_id is None else f"{ONBOARDING_KEY}:{player_id}"
        self._progress: OnboardingProgress | None = None
        self._lock = asyncio.Lock()

    async def load(self) -> OnboardingProgress:
        """Reads the stored state once. Unreadable data restarts the tutorial."""
        if self._progress is not None:
            return self._progress

        raw = None
        try:
            raw = await self._kv.get(self._key)
        except Exception as exc:
            logger.warning("Onboarding read failed (%s): %s", self._key, exc)

        progress = None
        if raw is not None:
            try:
                progress = OnboardingProgress.model_validate_json(raw)
            except ValidationError as exc:
                logger.warning("Discarding unreadable onboarding state (%s): %s", self._key, exc)
        if progress is not None and progress.step_index >= len(STEPS):
            progress = progress.model_copy(update={"step_index": len(STEPS) - 1})
        self._progress = progress or OnboardingProgress()
        return self._progress

    @property
    def progress(self) -> OnboardingProgress:
        if self._progress is None:
            self._progress = OnboardingProgress()
        return self._progress

    @property
    def is_complete(self) -> bool:
        return self.progress.completed

    @property
    def current_step(self) -> TutorialStep:
        return STEPS[self.progress.step_index]

    async def evaluate_attempt(self, stroke: StrokeData) -> OnboardingAttempt:
        """Judges one stroke against the current step.

        Raises:
            TutorialCompletedError: If the tutorial is already finished.
        """
        await self.load()
        async with self._lock:
            if self.progress.completed:
                raise TutorialCompletedError()

            step = self.current_step
            attempts = self.progress.attempts_on_step + 1
            score = score_step_metric(step.metric, stroke)
            passed = score >= step.success_threshold
            can_advance = self.progress.can_advance or (passed and attempts >= step.min_attempts)

            self._progress = self.progress.model_copy(
                update={"attempts_on_step": attempts, "can_advance": can_advance}
            )
            await self._save()

        return OnboardingAttempt(
            step_id=step.id,
            metric=step.metric,
            score=score,
            passed=passed,
            can_advance=can_advance,
            attempts=attempts,
            hint=None if passed else step.hints[attempts % len(step.hints)],
        )

    async def advance(self) -> OnboardingProgress:
        """Moves to the next step; past the last one the tutorial is complete.

        Raises:
            TutorialCompletedError: If the tutorial is already finished.
            TutorialStepNotPassedError: If the current step can't be advanced yet.
        """
        await self.load()
        async with self._lock:
            if self.progress.completed:
                raise TutorialCompletedError()
            if not self.progress.can_advance:
                raise TutorialStepNotPassedError(self.current_step.id)

            next_index = self.progress.step_index + 1
            if next_index >= len(STEPS):
                self._progress = self.progress.model_copy(update={"completed": True})
                logger.info("Onboarding complete: %s", self._key)
            else:
                self._progress = OnboardingProgress(step_index=next_index)
            await self._save()
        return self.progress

    async def skip(self) -> OnboardingProgress:
        """Marks the tutorial complete without playing it."""
        await self.load()
        async with self._lock:
            self._progress = self.progress.model_copy(update={"completed": True})
            await self._save()
        return self.progress

    async def reset(self) -> OnboardingProgress:
        """Starts the tutorial over and drops the stored state."""
        async with self._lock:
            self._progress = OnboardingProgress()
            try:
                await self._kv.delete(self._key)
            except Exception as exc:
                logger.warning("Onboarding reset failed to delete %s: %s", self._key, exc)
        return self.progress

    async def _save(self) -> None:
        try:
            await self._kv.set(self._key, self.progress.model_dump_json())
        except Exception as exc:
            logger.warning("Onboarding write failed (%s): %s", self._key, exc)
