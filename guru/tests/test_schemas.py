"""Tests for guru.schemas — shared models and their invariants."""

import pytest
from pydantic import ValidationError

from guru.schemas import (
    ApiError,
    ApiResponse,
    MasteryProgress,
    PlayerProgress,
    SkillMetrics,
    StrokePoint,
)


class TestSkillMetrics:
    def test_defaults_to_zero(self) -> None:
        assert SkillMetrics().total() == 0.0

    def test_total(self, make_metrics) -> None:
        assert make_metrics(0.5, flow_state_index=1.0).total() == pytest.approx(3.0)

    @pytest.mark.parametrize("value", [-0.01, 1.01])
    def test_out_of_range_rejected(self, value: float) -> None:
        with pytest.raises(ValidationError):
            SkillMetrics(pressure_consistency=value)

    def test_frozen(self, make_metrics) -> None:
        metrics = make_metrics(0.5)
        with pytest.raises(ValidationError):
            metrics.flow_state_index = 0.9


class TestStrokePoint:
    def test_pressure_bounds(self) -> None:
        with pytest.raises(ValidationError):
            StrokePoint(timestamp=0, x=0, y=0, pressure=1.5)


class TestMasteryProgress:
    def test_new_player(self) -> None:
        progress = MasteryProgress.new("p")
        assert [sc.stage for sc in progress.stage_completions] == [1, 2, 3, 4, 5]
        assert progress.completion(1).is_unlocked
        assert not any(sc.is_unlocked for sc in progress.stage_completions[1:])
        assert progress.achievements == []

    def test_guru_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            MasteryProgress(player_id="p", guru_score=101)

    def test_has_achievement(self) -> None:
        assert MasteryProgress.new("p").has_achievement("first_stage") is False

    def test_json_round_trip(self) -> None:
        progress = MasteryProgress.new("p")
        assert MasteryProgress.model_validate_json(progress.model_dump_json()) == progress


class TestPlayerProgress:
    def test_pattern_keys_survive_json(self) -> None:
        raw = '{"player_id": "p", "patterns_completed": {"3": {"completed": true, "stars": 4}}}'
        progress = PlayerProgress.model_validate_json(raw)
        assert progress.patterns_completed[3].stars == 4
        assert progress.settings.audio_enabled is True


class TestApiResponse:
    def test_error_envelope(self) -> None:
        body = ApiResponse(ok=False, error=ApiError(code="STAGE_LOCKED", message="locked")).model_dump()
        assert body == {"ok": False, "data": None, "error": {"code": "STAGE_LOCKED", "message": "locked"}}
