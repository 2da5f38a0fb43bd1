"""Tests for guru.achievements — badge rules and idempotent evaluation."""

from guru.achievements import HOUR_MS, RULES, evaluate_achievements

NOW = 1_700_000_000_000


def _ids(achievements) -> list[str]:
    return [a.id for a in achievements]


class TestRules:
    def test_rule_ids(self) -> None:
        assert [r.id for r in RULES] == [
            "first_stage",
            "precision_artist",
            "flow_state",
            "dedicated_practitioner",
            "guru_master",
        ]

    def test_nothing_for_a_fresh_player(self, make_progress, make_metrics) -> None:
        assert evaluate_achievements(make_progress(), make_metrics(0.5), NOW) == []

    def test_first_stage(self, make_progress, make_metrics) -> None:
        earned = evaluate_achievements(make_progress(completed=1), make_metrics(0.5), NOW)
        assert _ids(earned) == ["first_stage"]
        assert earned[0].unlocked_at == NOW

    def test_precision_artist_on_any_metric(self, make_progress, make_metrics) -> None:
        metrics = make_metrics(0.5, velocity_consistency=0.95)
        assert _ids(evaluate_achievements(make_progress(), metrics, NOW)) == ["precision_artist"]

    def test_flow_state_needs_strictly_above_ninety(self, make_progress, make_metrics) -> None:
        at_ninety = make_metrics(0.5, flow_state_index=0.90)
        above = make_metrics(0.5, flow_state_index=0.91)
        assert evaluate_achievements(make_progress(), at_ninety, NOW) == []
        assert _ids(evaluate_achievements(make_progress(), above, NOW)) == ["flow_state"]

    def test_dedicated_practitioner_after_an_hour(self, make_progress, make_metrics) -> None:
        almost = make_progress(total_practice_time=HOUR_MS - 1)
        hour = make_progress(total_practice_time=HOUR_MS)
        assert evaluate_achievements(almost, make_metrics(0.5), NOW) == []
        assert _ids(evaluate_achievements(hour, make_metrics(0.5), NOW)) == [
            "dedicated_practitioner"
        ]

    def test_guru_master_needs_all_five(self, make_progress, make_metrics) -> None:
        four = evaluate_achievements(make_progress(completed=4), make_metrics(0.5), NOW)
        five = evaluate_achievements(make_progress(completed=5), make_metrics(0.5), NOW)
        assert "guru_master" not in _ids(four)
        assert _ids(five) == ["first_stage", "guru_master"]


class TestIdempotence:
    def test_earned_achievements_are_not_repeated(self, make_progress, make_metrics) -> None:
        progress = make_progress(completed=1)
        progress.achievements.extend(evaluate_achievements(progress, make_metrics(0.5), NOW))
        assert evaluate_achievements(progress, make_metrics(0.5), NOW + 1) == []

    def test_does_not_mutate_progress(self, make_progress, make_metrics) -> None:
        progress = make_progress(completed=5)
        evaluate_achievements(progress, make_metrics(1.0), NOW)
        assert progress.achievements == []
