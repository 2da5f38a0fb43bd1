"""Feedback generator — human-readable session results.

Pure function of (metrics, stage, passed). The first line is always the
pass/fail banner. A second line names the weakest stage-weighted metric
(lowest weight × score) with the stage's coaching tip; it is left out when
every metric already scores a perfect 1.0.

Tier 2 service: imports from scoring/composite (Tier 2), stages (Tier 1),
guides (Tier 1), schemas (Tier 1).
"""

from guru.guides import coaching_tip
from guru.schemas import SkillMetrics
from guru.scoring.composite import composite_score, weighted_components
from guru.stages import METRIC_FIELDS, METRIC_LABELS, resolve_stage


def weakest_metric(metrics: SkillMetrics, stage: int) -> str:
    """Metric field with the lowest weight × score for the stage.

    Ties resolve to the earlier field in METRIC_FIELDS order.
    """
    components = weighted_components(metrics, stage)
    return min(METRIC_FIELDS, key=lambda field: components[field])


def generate_feedback(metrics: SkillMetrics, stage: int, passed: bool) -> list[str]:
    """Builds the ordered feedback lines for a completed session.

    Args:
        metrics: Final session metrics.
        stage: The stage the session was played on.
        passed: Whether the composite met the stage threshold.

    Returns:
        [banner] or [banner, weakest-metric coaching line].
    """
    config = resolve_stage(stage)
    composite = composite_score(metrics, stage)

    if passed:
        banner = f"{config.label} passed! Composite {composite:.0%}"
    else:
        banner = (
            f"Keep practising {config.label} — composite {composite:.0%} "
            f"(needs {config.pass_threshold:.0%})"
        )
    lines = [banner]

    if any(getattr(metrics, field) < 1.0 for field in METRIC_FIELDS):
        field = weakest_metric(metrics, stage)
        score = getattr(metrics, field)
        line = f"Focus on {METRIC_LABELS[field].lower()} ({score:.0%})"
        tip = coaching_tip(stage, field)
        if tip:
            line = f"{line}: {tip}"
        lines.append(line)

    return lines
