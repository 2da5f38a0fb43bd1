"""Tests for guru.scoring.composite — stage-weighted scoring."""

import pytest

from guru.scoring.composite import composite_score, passes, weighted_components


class TestComposite:
    def test_uniform_metrics_give_uniform_composite(self, make_metrics) -> None:
        for stage in range(1, 6):
            assert composite_score(make_metrics(0.8), stage) == pytest.approx(0.8)

    def test_weights_follow_stage(self, make_metrics) -> None:
        pressure_only = make_metrics(0.0, pressure_consistency=1.0)
        assert composite_score(pressure_only, 1) == pytest.approx(0.40)
        assert composite_score(pressure_only, 5) == pytest.approx(0.10)

    def test_components(self, make_metrics) -> None:
        components = weighted_components(make_metrics(0.5), 4)
        assert components["stroke_order_compliance"] == pytest.approx(0.20)
        assert components["pressure_consistency"] == pytest.approx(0.05)

    def test_zero_and_perfect(self, make_metrics) -> None:
        assert composite_score(make_metrics(0.0), 3) == 0.0
        assert composite_score(make_metrics(1.0), 3) == pytest.approx(1.0)
        assert composite_score(make_metrics(1.0), 3) <= 1.0


class TestPasses:
    def test_pass_above_threshold(self, make_metrics) -> None:
        composite, threshold, passed = passes(make_metrics(0.75), 1)
        assert threshold == 0.70
        assert composite == pytest.approx(0.75)
        assert passed is True

    def test_fail_below_threshold(self, make_metrics) -> None:
        composite, threshold, passed = passes(make_metrics(0.85), 5)
        assert threshold == 0.90
        assert passed is False

    def test_same_metrics_pass_early_fail_late(self, make_metrics) -> None:
        metrics = make_metrics(0.6, pressure_consistency=1.0)
        assert passes(metrics, 1)[2] is True
        assert passes(metrics, 4)[2] is False
