"""Tests for guru.feedback — banner and coaching lines."""

from guru.feedback import generate_feedback, weakest_metric
from guru.guides import COACHING_TIPS, coaching_tip


class TestWeakestMetric:
    def test_lowest_weighted_component(self, make_metrics) -> None:
        metrics = make_metrics(0.9, angular_precision=0.2)
        assert weakest_metric(metrics, 3) == "angular_precision"

    def test_weight_matters_not_just_score(self, make_metrics) -> None:
        # Stage 1: pressure 0.4 × 0.5 = 0.20 beats flow 0.1 × 0.9 = 0.09
        metrics = make_metrics(0.9, pressure_consistency=0.5)
        assert weakest_metric(metrics, 1) == "stroke_order_compliance"

    def test_ties_go_to_earlier_field(self, make_metrics) -> None:
        assert weakest_metric(make_metrics(0.5), 1) == "stroke_order_compliance"
        assert weakest_metric(make_metrics(0.0), 1) == "pressure_consistency"


class TestGenerateFeedback:
    def test_pass_banner(self, make_metrics) -> None:
        lines = generate_feedback(make_metrics(0.9), 1, passed=True)
        assert lines[0] == "Stage 1 · Foundation passed! Composite 90%"

    def test_fail_banner(self, make_metrics) -> None:
        lines = generate_feedback(make_metrics(0.5), 3, passed=False)
        assert lines[0] == "Keep practising Stage 3 · Symmetry — composite 50% (needs 80%)"

    def test_coaching_line_names_weakest_metric(self, make_metrics) -> None:
        lines = generate_feedback(make_metrics(0.9, angular_precision=0.2), 3, passed=False)
        assert len(lines) == 2
        assert lines[1] == (
            f"Focus on angular precision (20%): {COACHING_TIPS[3]['angular_precision']}"
        )

    def test_perfect_metrics_have_banner_only(self, make_metrics) -> None:
        lines = generate_feedback(make_metrics(1.0), 5, passed=True)
        assert len(lines) == 1


class TestGuides:
    def test_every_stage_has_a_tip_per_metric(self) -> None:
        for stage in range(1, 6):
            assert len(COACHING_TIPS[stage]) == 5
            assert all(tip for tip in COACHING_TIPS[stage].values())

    def test_coaching_tip_lookup(self) -> None:
        assert coaching_tip(1, "stroke_order_compliance") == COACHING_TIPS[1]["stroke_order_compliance"]
