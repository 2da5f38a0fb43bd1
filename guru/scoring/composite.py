"""Composite scorer — stage-weighted combination of the five metrics.

Tier 2 service: imports from stages (Tier 1), schemas (Tier 1).
"""

from guru.schemas import SkillMetrics
from guru.scoring.metrics import clamp
from guru.stages import METRIC_FIELDS, resolve_stage


def weighted_components(metrics: SkillMetrics, stage: int) -> dict[str, float]:
    """Returns weight × score for each metric dimension of the stage."""
    weights = resolve_stage(stage).weights
    return {field: weights[field] * getattr(metrics, field) for field in METRIC_FIELDS}


def composite_score(metrics: SkillMetrics, stage: int) -> float:
    """Weighted sum of the five metrics with the stage's weight table, in [0, 1]."""
    return clamp(sum(weighted_components(metrics, stage).values()))


def passes(metrics: SkillMetrics, stage: int) -> tuple[float, float, bool]:
    """Scores metrics against a stage's pass threshold.

    Returns:
        (composite, threshold, passed) where passed = composite >= threshold.
    """
    threshold = resolve_stage(stage).pass_threshold
    composite = composite_score(metrics, stage)
    return composite, threshold, composite >= threshold
