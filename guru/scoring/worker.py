"""Scorer worker — the message protocol between the core and its executors.

One request dict in, one response dict out, no connection state. This is
the function the bridge ships to a thread or process pool, so it lives at
module level and only touches picklable values.

Request types:
    COMPUTE_PRESSURE        {pressureSamples: float[]}
    COMPUTE_VELOCITY_CV     {points: {x, y, t}[]}
    COMPUTE_ANGULAR_ERROR   {strokeAngles: float[], symmetryAxes: int}
    COMPUTE_LCS_COMPLIANCE  {requiredOrder: int[], userOrder: int[]}

Missing or unknown types and malformed payloads come back as
{score: 0, details: {error: message}}. The top-level score is never NaN.

Tier 2 service: imports from scoring/metrics (Tier 1), schemas (Tier 1).
"""

import math
from collections.abc import Callable, Mapping
from typing import Any

from guru.schemas import ScorerResult
from guru.scoring.metrics import (
    score_angular,
    score_order,
    score_pressure,
    score_velocity,
)

COMPUTE_PRESSURE = "COMPUTE_PRESSURE"
COMPUTE_VELOCITY_CV = "COMPUTE_VELOCITY_CV"
COMPUTE_ANGULAR_ERROR = "COMPUTE_ANGULAR_ERROR"
COMPUTE_LCS_COMPLIANCE = "COMPUTE_LCS_COMPLIANCE"


def _pressure(message: Mapping[str, Any]) -> ScorerResult:
    return score_pressure(message.get("pressureSamples") or [])


def _velocity(message: Mapping[str, Any]) -> ScorerResult:
    return score_velocity(message.get("points") or [])


def _angular(message: Mapping[str, Any]) -> ScorerResult:
    return score_angular(
        message.get("strokeAngles") or [],
        int(message.get("symmetryAxes", 4)),
    )


def _order(message: Mapping[str, Any]) -> ScorerResult:
    return score_order(
        message.get("requiredOrder") or [],
        message.get("userOrder") or [],
    )


HANDLERS: dict[str, Callable[[Mapping[str, Any]], ScorerResult]] = {
    COMPUTE_PRESSURE: _pressure,
    COMPUTE_VELOCITY_CV: _velocity,
    COMPUTE_ANGULAR_ERROR: _angular,
    COMPUTE_LCS_COMPLIANCE: _order,
}


def _error(message: str) -> dict[str, Any]:
    return {"score": 0.0, "details": {"error": message}}


def handle_message(message: Any) -> dict[str, Any]:
    """Runs one scorer request and returns its response payload.

    Args:
        message: Request dict with a "type" key and type-specific fields.

    Returns:
        {"score": float, "details": dict}. Rejected requests carry
        details["error"] and a zero score.
    """
    if not isinstance(message, Mapping):
        return _error("No data")

    message_type = message.get("type")
    if message_type is None:
        return _error("Missing message type")

    handler = HANDLERS.get(message_type)
    if handler is None:
        return _error(f"Unknown type: {message_type}")

    try:
        result = handler(message)
    except (TypeError, ValueError, KeyError) as exc:
        return _error(f"Malformed {message_type} payload: {exc}")

    score = result.score
    if not math.isfinite(score):
        score = 0.0
    return {"score": score, "details": dict(result.details)}
