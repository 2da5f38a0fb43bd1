"""Metric scorers — pure functions from raw stroke samples to [0, 1] scores.

Four independent scorers, no shared state, safe to run in any thread or
process:

- score_pressure:  grip pressure consistency (population σ vs 0.15)
- score_velocity:  velocity coefficient of variation plus spike penalty
- score_angular:   mean circular error against N-fold ideal angles
- score_order:     LCS stroke-order compliance plus backtrack count

Insufficient data is never an error: each scorer returns its documented
neutral/perfect default so short strokes never block progression.

Detail keys use the camelCase names of the scorer wire contract so a
ScorerResult can be handed to the UI unchanged.

Tier 1 leaf module: imports from schemas (Tier 1) and the stdlib.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from statistics import fmean, pstdev
from typing import Any

from guru.schemas import ScorerResult

PRESSURE_TARGET_SIGMA = 0.15

VELOCITY_MAX_CV = 0.30
VELOCITY_TARGET_CV = 0.20
VELOCITY_SPIKE_FACTOR = 3.0
VELOCITY_SPIKE_PENALTY = 0.05

ANGULAR_MAX_ERROR_DEG = 15.0
ANGULAR_TARGET_ERROR_DEG = 3.0


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamps into [low, high]. NaN clamps to low."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Pressure
# ---------------------------------------------------------------------------


def score_pressure(samples: Sequence[float]) -> ScorerResult:
    """Scores grip pressure consistency for one stroke (or session buffer).

    σ below 0.15 is professionally consistent grip; σ at or above 0.15
    maps to zero.

    Args:
        samples: Pressure values in [0, 1], one per recorded point.

    Returns:
        ScorerResult with details {n, mean, sigma, target}.
    """
    samples = [float(s) for s in samples]
    n = len(samples)
    if n < 2:
        return ScorerResult(score=1.0, details={"n": n})

    mean = fmean(samples)
    sigma = pstdev(samples, mu=mean)
    score = clamp(1 - sigma / PRESSURE_TARGET_SIGMA)

    return ScorerResult(
        score=score,
        details={
            "n": n,
            "mean": round(mean, 4),
            "sigma": round(sigma, 4),
            "target": PRESSURE_TARGET_SIGMA,
        },
    )


# ---------------------------------------------------------------------------
# Velocity
# ---------------------------------------------------------------------------


def _as_xyt(point: Mapping[str, Any] | Sequence[float]) -> tuple[float, float, float]:
    if isinstance(point, Mapping):
        return float(point["x"]), float(point["y"]), float(point["t"])
    x, y, t = point
    return float(x), float(y), float(t)


def instantaneous_velocities(
    points: Iterable[Mapping[str, Any] | Sequence[float]],
) -> list[float]:
    """Pairwise distance/Δt in px/ms, skipping pairs with Δt <= 0.

    Non-positive Δt comes from stuck-pointer frames, where a device reports
    the same (or an earlier) timestamp twice.
    """
    coords = [_as_xyt(p) for p in points]
    velocities = []
    for (x0, y0, t0), (x1, y1, t1) in zip(coords, coords[1:]):
        dt = t1 - t0
        if dt <= 0:
            continue
        velocities.append(math.hypot(x1 - x0, y1 - y0) / dt)
    return velocities


def score_velocity(
    points: Sequence[Mapping[str, Any] | Sequence[float]],
) -> ScorerResult:
    """Scores stroke velocity smoothness.

    Base score is 1 − cv/0.30 clamped to [0, 1]; each velocity above three
    times the mean then costs 0.05, floored at zero. The spike term catches
    short jerks that variance alone under-penalises.

    Args:
        points: Ordered (x, y, t) samples, as mappings or 3-tuples.

    Returns:
        ScorerResult with details {n, mean, stdDev, cv, spikeCount, targetCV}.
    """
    if len(points) < 3:
        return ScorerResult(score=1.0, details={"pointCount": len(points)})

    velocities = instantaneous_velocities(points)
    if len(velocities) < 2:
        return ScorerResult(score=1.0, details={"velocitySamples": len(velocities)})

    mean = fmean(velocities)
    if mean == 0:
        return ScorerResult(score=1.0, details={"mean": 0, "cv": 0})

    std_dev = pstdev(velocities, mu=mean)
    cv = std_dev / mean
    score = clamp(1 - cv / VELOCITY_MAX_CV)

    spike_count = sum(1 for v in velocities if v > mean * VELOCITY_SPIKE_FACTOR)
    score = max(0.0, score - spike_count * VELOCITY_SPIKE_PENALTY)

    return ScorerResult(
        score=round(score, 4),
        details={
            "n": len(velocities),
            "mean": round(mean, 4),
            "stdDev": round(std_dev, 4),
            "cv": round(cv, 4),
            "spikeCount": spike_count,
            "targetCV": VELOCITY_TARGET_CV,
        },
    )


# ---------------------------------------------------------------------------
# Angular precision
# ---------------------------------------------------------------------------


def normalize_angle(angle: float) -> float:
    """Maps any angle in degrees onto [0, 360)."""
    return float(angle) % 360.0


def circular_distance(a: float, b: float) -> float:
    """Shortest distance between two angles, wrapping at 360°.

    circular_distance(359, 0) == 1, not 359.
    """
    diff = abs(normalize_angle(a) - normalize_angle(b))
    return min(diff, 360.0 - diff)


def ideal_angles(symmetry_axes: int) -> list[float]:
    """N evenly spaced ideal angles starting at 0°."""
    axes = max(1, int(symmetry_axes))
    return [360.0 / axes * i for i in range(axes)]


def score_angular(angles: Sequence[float], symmetry_axes: int) -> ScorerResult:
    """Scores radial placement against N-fold symmetry.

    Each observed angle contributes its distance to the nearest ideal
    angle; 15° mean error maps to zero, 0° to a perfect score.

    Args:
        angles: Stroke angles in degrees, any range, measured from centre.
        symmetry_axes: Target symmetry count N. Values below 1 act as 1.

    Returns:
        ScorerResult with details {strokeCount, meanErrorDeg, maxErrorDeg,
        symmetryAxes, targetErrorDeg}.
    """
    if not angles:
        return ScorerResult(score=1.0, details={"strokeCount": 0})

    ideals = ideal_angles(symmetry_axes)
    errors = [min(circular_distance(a, ideal) for ideal in ideals) for a in angles]
    mean_error = fmean(errors)
    score = clamp(1 - mean_error / ANGULAR_MAX_ERROR_DEG)

    return ScorerResult(
        score=round(score, 4),
        details={
            "strokeCount": len(angles),
            "meanErrorDeg": round(mean_error, 2),
            "maxErrorDeg": round(max(errors), 2),
            "symmetryAxes": len(ideals),
            "targetErrorDeg": ANGULAR_TARGET_ERROR_DEG,
        },
    )


# ---------------------------------------------------------------------------
# Stroke order
# ---------------------------------------------------------------------------


def lcs_length(a: Sequence[Any], b: Sequence[Any]) -> int:
    """Longest common subsequence length, O(len(a) × len(b)) DP."""
    if not a or not b:
        return 0
    previous = [0] * (len(b) + 1)
    for item in a:
        current = [0]
        for j, other in enumerate(b, start=1):
            if item == other:
                current.append(previous[j - 1] + 1)
            else:
                current.append(max(previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def count_backtracks(required: Sequence[Any], user: Sequence[Any]) -> int:
    """Counts returns to an earlier part of the pattern.

    Tracks the furthest required index reached so far; a stroke whose
    required index is strictly below that maximum is a backtrack. Strokes
    not in the required order are ignored.
    """
    positions = {stroke_id: index for index, stroke_id in enumerate(required)}
    backtracks = 0
    furthest = -1
    for stroke_id in user:
        index = positions.get(stroke_id)
        if index is None:
            continue
        if index < furthest:
            backtracks += 1
        furthest = max(furthest, index)
    return backtracks


def score_order(required: Sequence[Any], user: Sequence[Any]) -> ScorerResult:
    """Scores stroke-order compliance as LCS(required, user) / len(required).

    The backtrack count is diagnostic only and does not change the score.

    Args:
        required: Canonical stroke-id order for the pattern.
        user: Stroke ids in the order the player drew them (repeats allowed).

    Returns:
        ScorerResult with details {lcsLength, requiredLength, userLength,
        backtracks, compliance}.
    """
    if not required:
        return ScorerResult(score=1.0, details={"lcsLength": 0, "requiredLength": 0})
    if not user:
        return ScorerResult(
            score=0.0, details={"lcsLength": 0, "requiredLength": len(required)}
        )

    lcs = lcs_length(required, user)
    score = lcs / len(required)

    return ScorerResult(
        score=max(0.0, round(score, 4)),
        details={
            "lcsLength": lcs,
            "requiredLength": len(required),
            "userLength": len(user),
            "backtracks": count_backtracks(required, user),
            "compliance": round(score * 100, 1),
        },
    )
