"""Core data models — shared Pydantic types for the Guru Protocol.

Every stroke, metric snapshot, session record and mastery state flows through
these types. They are the shared vocabulary between the scorers, the
progress store, the storage hooks and the HTTP layer.

This is a Tier 1 leaf module: it imports only from pydantic and the stdlib.
No project imports allowed — everything else imports from here.

Usage:
    from guru.schemas import SkillMetrics, MasteryProgress, SessionData
"""

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

STAGE_COUNT = 5


def now_ms() -> int:
    """Wall-clock time in integer milliseconds (the timestamp unit everywhere)."""
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Stroke input
# ---------------------------------------------------------------------------


class StrokePoint(BaseModel):
    """One pointer sample. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    x: float
    y: float
    pressure: float = Field(ge=0.0, le=1.0)
    velocity: float = 0.0  # px/ms
    angle: float = 0.0  # degrees from pattern centre


class StrokeData(BaseModel):
    """A sealed stroke: pointer-down to pointer-up.

    Consumed once by scoring, then retained only for session logging.
    """

    model_config = ConfigDict(frozen=True)

    stroke_id: int
    points: list[StrokePoint] = Field(default_factory=list)
    start_time: int
    end_time: int
    center_origin: bool = False


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class SkillMetrics(BaseModel):
    """Normalised skill scores, each in [0, 1] with 1 = best.

    Frozen — a new snapshot replaces the old one wholesale.
    """

    model_config = ConfigDict(frozen=True)

    pressure_consistency: float = Field(default=0.0, ge=0.0, le=1.0)
    velocity_consistency: float = Field(default=0.0, ge=0.0, le=1.0)
    angular_precision: float = Field(default=0.0, ge=0.0, le=1.0)
    stroke_order_compliance: float = Field(default=0.0, ge=0.0, le=1.0)
    flow_state_index: float = Field(default=0.0, ge=0.0, le=1.0)

    def total(self) -> float:
        """Sum of the five dimensions — the total order for best-ever tracking."""
        return (
            self.pressure_consistency
            + self.velocity_consistency
            + self.angular_precision
            + self.stroke_order_compliance
            + self.flow_state_index
        )


class ScorerResult(BaseModel):
    """Response payload of one scorer request.

    details carries the diagnostic numbers of the scorer (or an "error"
    string for rejected messages). score is never NaN.
    """

    model_config = ConfigDict(frozen=True)

    score: float
    details: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class SessionData(BaseModel):
    """A finished practice session. Frozen once completed."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    pattern_id: int
    stage: int
    start_time: int
    end_time: int
    metrics: SkillMetrics
    strokes: list[StrokeData] = Field(default_factory=list)


class Achievement(BaseModel):
    """A badge. Keyed by id; once earned it is permanent."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    unlocked_at: int
    icon: str


# ---------------------------------------------------------------------------
# Mastery state
# ---------------------------------------------------------------------------


class StageCompletion(BaseModel):
    """Per-stage ladder state.

    Mutable on copies only — the progress store deep-copies the whole
    MasteryProgress before mutating it.
    """

    stage: int
    is_unlocked: bool = False
    is_completed: bool = False
    attempt_count: int = 0
    best_metrics: SkillMetrics = Field(default_factory=SkillMetrics)
    completed_at: int | None = None


class MasteryProgress(BaseModel):
    """Per-player mastery record — the single source of truth.

    guru_score is derived from stage_completions and recomputed on every
    session completion; it is never the authority.
    """

    player_id: str
    current_stage: int = 1
    stage_completions: list[StageCompletion] = Field(default_factory=list)
    guru_score: int = Field(default=0, ge=0, le=100)
    total_practice_time: int = 0  # ms
    achievements: list[Achievement] = Field(default_factory=list)
    last_session: int = 0

    @classmethod
    def new(cls, player_id: str) -> "MasteryProgress":
        """Initial state for a new player: stage 1 unlocked, 2-5 locked."""
        return cls(
            player_id=player_id,
            stage_completions=[
                StageCompletion(stage=stage, is_unlocked=(stage == 1))
                for stage in range(1, STAGE_COUNT + 1)
            ],
        )

    def completion(self, stage: int) -> StageCompletion:
        """Returns the StageCompletion for a 1-based stage number."""
        return self.stage_completions[stage - 1]

    def has_achievement(self, achievement_id: str) -> bool:
        return any(a.id == achievement_id for a in self.achievements)


class SessionResult(BaseModel):
    """Outcome of complete_session, handed back to the UI."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    stage: int
    passed: bool
    composite_score: float
    threshold: float
    guru_score: int
    feedback: list[str] = Field(default_factory=list)
    new_achievements: list[Achievement] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Legacy pattern-completion record (flat key-value tier)
# ---------------------------------------------------------------------------


class PatternRecord(BaseModel):
    """Completion stats for one gallery pattern."""

    completed: bool = False
    best_accuracy: float = 0.0
    stars: int = 0
    attempts: int = 0
    total_time_seconds: float = 0.0
    completed_at: str = ""


class PlayerSettings(BaseModel):
    audio_enabled: bool = True
    show_guide_grid: bool = True
    target_opacity: int = 50


class PlayerProgress(BaseModel):
    """Gallery progress: per-pattern records, XP and badges."""

    player_id: str
    patterns_completed: dict[int, PatternRecord] = Field(default_factory=dict)
    total_xp: int = 0
    badges: list[str] = Field(default_factory=list)
    settings: PlayerSettings = Field(default_factory=PlayerSettings)


# ---------------------------------------------------------------------------
# Onboarding tutorial (flat key-value tier)
# ---------------------------------------------------------------------------


class OnboardingProgress(BaseModel):
    """Where a player is in the three-step tutorial."""

    completed: bool = False
    step_index: int = Field(default=0, ge=0)
    attempts_on_step: int = Field(default=0, ge=0)
    can_advance: bool = False


class OnboardingAttempt(BaseModel):
    """Outcome of one tutorial stroke."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    metric: str
    score: float
    passed: bool
    can_advance: bool
    attempts: int
    hint: str | None = None


# ---------------------------------------------------------------------------
# API envelope
# ---------------------------------------------------------------------------


class ApiError(BaseModel):
    """Error detail inside ApiResponse.error.

    code is an uppercase string like "STAGE_LOCKED" or "SESSION_NOT_FOUND".
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ApiResponse(BaseModel):
    """Universal response envelope — every API endpoint returns this shape."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    data: Any | None = None
    error: ApiError | None = None
