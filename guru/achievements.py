"""Achievement evaluator — badge rules over progress and latest metrics.

Runs once per session completion, after the progress mutation and before
persistence. Each rule fires at most once per achievement id: ids already
present on the progress record are skipped, so evaluation is idempotent.

Tier 2 service: imports from schemas (Tier 1), stages (Tier 1).
"""

from collections.abc import Callable
from dataclasses import dataclass

from guru.schemas import Achievement, MasteryProgress, SkillMetrics
from guru.stages import METRIC_FIELDS

HOUR_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class AchievementRule:
    """One badge definition and the condition that unlocks it."""

    id: str
    name: str
    description: str
    icon: str
    condition: Callable[[MasteryProgress, SkillMetrics], bool]

    def unlock(self, unlocked_at: int) -> Achievement:
        return Achievement(
            id=self.id,
            name=self.name,
            description=self.description,
            unlocked_at=unlocked_at,
            icon=self.icon,
        )


RULES: tuple[AchievementRule, ...] = (
    AchievementRule(
        id="first_stage",
        name="First Steps",
        description="Completed your first stage of the Guru Protocol.",
        icon="🪷",
        condition=lambda progress, _: any(
            sc.is_completed for sc in progress.stage_completions
        ),
    ),
    AchievementRule(
        id="precision_artist",
        name="Precision Artist",
        description="Scored 95% or higher on a single skill metric.",
        icon="🎯",
        condition=lambda _, metrics: any(
            getattr(metrics, field) >= 0.95 for field in METRIC_FIELDS
        ),
    ),
    AchievementRule(
        id="flow_state",
        name="In the Flow",
        description="Reached a flow state index above 0.90.",
        icon="🌊",
        condition=lambda _, metrics: metrics.flow_state_index > 0.90,
    ),
    AchievementRule(
        id="dedicated_practitioner",
        name="Dedicated Practitioner",
        description="Practised for a total of one hour.",
        icon="⏳",
        condition=lambda progress, _: progress.total_practice_time >= HOUR_MS,
    ),
    AchievementRule(
        id="guru_master",
        name="Guru",
        description="Completed all five stages of the Guru Protocol.",
        icon="🏆",
        condition=lambda progress, _: all(
            sc.is_completed for sc in progress.stage_completions
        ),
    ),
)


def evaluate_achievements(
    progress: MasteryProgress,
    metrics: SkillMetrics,
    now: int,
    rules: tuple[AchievementRule, ...] = RULES,
) -> list[Achievement]:
    """Returns the achievements newly unlocked by this session.

    Does not mutate progress — the caller appends the result.

    Args:
        progress: The already-updated mastery record.
        metrics: The metrics of the session just completed.
        now: Unlock timestamp (ms).
        rules: Rule table, overridable for tests.

    Returns:
        Newly earned achievements in rule order.
    """
    return [
        rule.unlock(now)
        for rule in rules
        if not progress.has_achievement(rule.id) and rule.condition(progress, metrics)
    ]
