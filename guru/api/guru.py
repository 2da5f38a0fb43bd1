"""Player-facing API routes — scoring, mastery sessions, gallery patterns.

Endpoints that form the drawing UI's entry point to the core:
- Raw scorer messages through the off-thread bridge
- Mastery ladder: progress, stage unlock checks, session lifecycle
- Session log: audit listing by stage, single-session lookup
- Pattern gallery: per-pattern record, completion
- Onboarding tutorial: state, judged strokes, advance, skip, reset

All responses use the ApiResponse envelope. Domain errors (invalid stage,
locked stage, unknown session) propagate to the handlers in main.py,
which map them to error codes.

Tier 3 orchestration module: imports from deps (Tier 2), progress,
recorder, patterns, onboarding, capture, scoring/* (Tier 2-3), schemas (Tier 1).
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from guru.api.deps import (
    get_onboarding_tutor,
    get_pattern_tracker,
    get_pipeline,
    get_progress_registry,
    get_scorer_bridge,
    get_session_recorder,
)
from guru.capture import stroke_from_samples
from guru.errors import SessionNotFoundError
from guru.onboarding import OnboardingTutor
from guru.patterns import PatternTracker
from guru.progress import ProgressRegistry
from guru.recorder import SessionRecorder
from guru.schemas import ApiError, ApiResponse, ScorerResult, SkillMetrics
from guru.scoring.bridge import ScorerBridge
from guru.scoring.pipeline import StrokePipeline
from guru.stages import resolve_stage

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request bodies (API-boundary types, local to this module)
# ---------------------------------------------------------------------------


class StartSessionRequest(BaseModel):
    """Request body for POST /players/{player_id}/sessions."""

    pattern_id: int
    stage: int


class StrokeSample(BaseModel):
    """One raw pointer sample. Pressure 0 or missing is simulated."""

    x: float
    y: float
    t: int
    pressure: float | None = Field(default=None, ge=0.0, le=1.0)


class PatternGeometry(BaseModel):
    """What the scorers need to know about the pattern being drawn."""

    symmetry_axes: int = Field(default=4, ge=1)
    required_order: list[int] | None = None


class RecordStrokeRequest(PatternGeometry):
    """Request body for POST .../sessions/{session_id}/strokes."""

    samples: list[StrokeSample] = Field(min_length=1)
    center_x: float
    center_y: float


class CompleteSessionRequest(PatternGeometry):
    """Request body for POST .../sessions/{session_id}/complete.

    Without metrics, the session's recorded strokes are scored.
    """

    stage: int
    pattern_id: int
    duration_ms: int = Field(default=0, ge=0)
    metrics: SkillMetrics | None = None


class TutorialStrokeRequest(BaseModel):
    """Request body for POST /players/{player_id}/onboarding/attempts."""

    samples: list[StrokeSample] = Field(min_length=1)
    center_x: float
    center_y: float


class CompletePatternRequest(BaseModel):
    """Request body for POST .../patterns/{pattern_id}/complete."""

    accuracy: float = Field(ge=0.0, le=100.0)
    time_seconds: float = Field(default=0.0, ge=0.0)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


@router.post("/score")
async def score_message(
    message: dict[str, Any],
    bridge: ScorerBridge = Depends(get_scorer_bridge),
) -> dict:
    """Runs one raw scorer message ({type, ...payload}) off the event loop.

    Rejected messages come back as score 0 with an "error" detail. A timed
    out scorer answers with the fallback score.
    """
    try:
        result = await bridge.request(message)
    except TimeoutError:
        logger.warning("Scorer %s timed out on /score", message.get("type"))
        result = ScorerResult(score=bridge.fallback_score, details={"fallback": True})
    return ApiResponse(ok=True, data=result.model_dump()).model_dump()


# ---------------------------------------------------------------------------
# Mastery progress
# ---------------------------------------------------------------------------


@router.get("/players/{player_id}/progress")
async def get_progress(
    player_id: str,
    registry: ProgressRegistry = Depends(get_progress_registry),
) -> dict:
    """Returns the player's mastery record (new players get the initial state)."""
    store = await registry.get(player_id)
    return ApiResponse(ok=True, data=store.progress.model_dump()).model_dump()


@router.get("/players/{player_id}/stages/{stage}/unlocked")
async def stage_unlocked(
    player_id: str,
    stage: int,
    registry: ProgressRegistry = Depends(get_progress_registry),
) -> dict:
    """Reports whether the stage is playable for the player."""
    resolve_stage(stage)
    store = await registry.get(player_id)
    return ApiResponse(
        ok=True,
        data={"stage": stage, "unlocked": store.is_stage_unlocked(stage)},
    ).model_dump()


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


@router.post("/players/{player_id}/sessions")
async def start_session(
    player_id: str,
    body: StartSessionRequest,
    registry: ProgressRegistry = Depends(get_progress_registry),
) -> dict:
    """Opens a practice session. Locked stages answer 403 STAGE_LOCKED."""
    store = await registry.get(player_id)
    session_id = await store.start_session(body.pattern_id, body.stage)
    return ApiResponse(
        ok=True,
        data={"session_id": session_id, "pattern_id": body.pattern_id, "stage": body.stage},
    ).model_dump()


@router.post("/players/{player_id}/sessions/{session_id}/strokes")
async def record_stroke(
    player_id: str,
    session_id: str,
    body: RecordStrokeRequest,
    recorder: SessionRecorder = Depends(get_session_recorder),
    pipeline: StrokePipeline = Depends(get_pipeline),
) -> dict:
    """Seals one stroke from raw samples and returns live session metrics."""
    stroke_id = len(recorder.strokes(session_id, player_id)) + 1
    stroke = stroke_from_samples(
        [s.model_dump() for s in body.samples],
        body.center_x,
        body.center_y,
        stroke_id=stroke_id,
    )
    strokes = recorder.add_stroke(session_id, stroke, player_id)
    metrics = await pipeline.score_strokes(strokes, body.symmetry_axes, body.required_order)
    return ApiResponse(
        ok=True,
        data={"stroke": stroke.model_dump(), "metrics": metrics.model_dump()},
    ).model_dump()


@router.post("/players/{player_id}/sessions/{session_id}/complete")
async def complete_session(
    player_id: str,
    session_id: str,
    body: CompleteSessionRequest,
    registry: ProgressRegistry = Depends(get_progress_registry),
    pipeline: StrokePipeline = Depends(get_pipeline),
) -> dict:
    """Applies a finished session to the mastery ladder.

    Completing a session twice answers 409 SESSION_ALREADY_COMPLETED; a
    stage other than the one the session was started on answers 409
    STAGE_MISMATCH.
    """
    store = await registry.get(player_id)

    metrics = body.metrics
    if metrics is None:
        strokes = []
        if store.recorder.is_open(session_id):
            strokes = store.recorder.strokes(session_id, player_id)
        metrics = await pipeline.score_strokes(strokes, body.symmetry_axes, body.required_order)

    result = await store.complete_session(
        session_id, body.stage, body.pattern_id, metrics, body.duration_ms
    )
    return ApiResponse(
        ok=True,
        data={**result.model_dump(), "metrics": metrics.model_dump()},
    ).model_dump()


# ---------------------------------------------------------------------------
# Session log
# ---------------------------------------------------------------------------


@router.get("/sessions")
async def list_sessions(
    stage: int | None = Query(default=None),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> dict:
    """Lists logged sessions, oldest first, optionally for one stage."""
    if stage is not None:
        resolve_stage(stage)
    sessions = await recorder.list_sessions(stage)
    return ApiResponse(
        ok=True,
        data={"sessions": [s.model_dump() for s in sessions]},
    ).model_dump()


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> dict:
    session = await recorder.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return ApiResponse(ok=True, data=session.model_dump()).model_dump()


# ---------------------------------------------------------------------------
# Pattern gallery
# ---------------------------------------------------------------------------


@router.get("/players/{player_id}/patterns/{pattern_id}")
async def pattern_status(
    pattern_id: int,
    tracker: PatternTracker = Depends(get_pattern_tracker),
) -> dict:
    """Returns the pattern's record (null if never completed) and unlock state."""
    record = tracker.get_pattern_status(pattern_id)
    return ApiResponse(
        ok=True,
        data={
            "pattern_id": pattern_id,
            "unlocked": tracker.is_pattern_unlocked(pattern_id),
            "record": record.model_dump() if record is not None else None,
        },
    ).model_dump()


@router.post("/players/{player_id}/patterns/{pattern_id}/complete")
async def complete_pattern(
    pattern_id: int,
    body: CompletePatternRequest,
    tracker: PatternTracker = Depends(get_pattern_tracker),
) -> dict:
    """Records a finished gallery pattern; answers 403 if it is still locked."""
    if not tracker.is_pattern_unlocked(pattern_id):
        raise HTTPException(
            status_code=403,
            detail=ApiResponse(
                ok=False,
                error=ApiError(
                    code="PATTERN_LOCKED",
                    message=f"Pattern {pattern_id} is locked. "
                    f"Complete pattern {pattern_id - 1} first.",
                ),
            ).model_dump(),
        )

    record = await tracker.complete_pattern(pattern_id, body.accuracy, body.time_seconds)
    return ApiResponse(
        ok=True,
        data={
            "pattern_id": pattern_id,
            "record": record.model_dump(),
            "total_xp": tracker.progress.total_xp,
            "next_unlocked": tracker.is_pattern_unlocked(pattern_id + 1),
        },
    ).model_dump()


# ---------------------------------------------------------------------------
# Onboarding tutorial
# ---------------------------------------------------------------------------


def _onboarding_state(tutor: OnboardingTutor) -> dict[str, Any]:
    step = tutor.current_step
    return {
        **tutor.progress.model_dump(),
        "step": {
            "id": step.id,
            "title": step.title,
            "description": step.description,
            "metric": step.metric,
            "success_threshold": step.success_threshold,
            "min_attempts": step.min_attempts,
            "feedback_message": step.feedback_message,
        },
    }


@router.get("/players/{player_id}/onboarding")
async def onboarding_state(
    tutor: OnboardingTutor = Depends(get_onboarding_tutor),
) -> dict:
    """Returns the tutorial progress and the step being played."""
    return ApiResponse(ok=True, data=_onboarding_state(tutor)).model_dump()


@router.post("/players/{player_id}/onboarding/attempts")
async def onboarding_attempt(
    body: TutorialStrokeRequest,
    tutor: OnboardingTutor = Depends(get_onboarding_tutor),
) -> dict:
    """Judges one tutorial stroke on the current step's metric."""
    stroke = stroke_from_samples(
        [s.model_dump() for s in body.samples], body.center_x, body.center_y
    )
    attempt = await tutor.evaluate_attempt(stroke)
    return ApiResponse(ok=True, data=attempt.model_dump()).model_dump()


@router.post("/players/{player_id}/onboarding/advance")
async def onboarding_advance(
    tutor: OnboardingTutor = Depends(get_onboarding_tutor),
) -> dict:
    """Moves past a passed step; 409 STEP_NOT_PASSED otherwise."""
    await tutor.advance()
    return ApiResponse(ok=True, data=_onboarding_state(tutor)).model_dump()


@router.post("/players/{player_id}/onboarding/skip")
async def onboarding_skip(
    tutor: OnboardingTutor = Depends(get_onboarding_tutor),
) -> dict:
    await tutor.skip()
    return ApiResponse(ok=True, data=_onboarding_state(tutor)).model_dump()


@router.delete("/players/{player_id}/onboarding")
async def onboarding_reset(
    tutor: OnboardingTutor = Depends(get_onboarding_tutor),
) -> dict:
    """Starts the tutorial over."""
    await tutor.reset()
    return ApiResponse(ok=True, data=_onboarding_state(tutor)).model_dump()
