"""Tests for guru.scoring.bridge — off-thread dispatch and fallback.

Failure modes are injected through stand-in executors: one that never
finishes (timeout), one that raises (crashed pool).
"""

import asyncio
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor

import pytest

from guru.config import Settings
from guru.scoring.bridge import ScorerBridge


class _NeverFinishes(Executor):
    """Accepts work and never completes it."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        return Future()


class _Broken(Executor):
    def submit(self, fn, /, *args, **kwargs) -> Future:
        raise RuntimeError("pool is broken")


def _settings(**overrides) -> Settings:
    defaults = {
        "app_env": "test",
        "app_port": 8000,
        "log_level": "info",
        "cors_origins": [],
        "database_url": "",
        "kv_store_path": "",
        "scorer_executor": "thread",
        "scorer_max_workers": 2,
        "scorer_timeout_seconds": 1.5,
        "scorer_fallback_score": 0.6,
    }
    defaults.update(overrides)
    return Settings(**defaults)


@pytest.fixture
def bridge():
    bridge = ScorerBridge(ThreadPoolExecutor(max_workers=2))
    yield bridge
    bridge.close()


class TestScoring:
    @pytest.mark.asyncio
    async def test_pressure_round_trip(self, bridge: ScorerBridge) -> None:
        assert await bridge.score_pressure([0.7, 0.7, 0.7, 0.7]) == 1.0

    @pytest.mark.asyncio
    async def test_velocity_round_trip(self, bridge: ScorerBridge) -> None:
        points = [{"x": 0, "y": 0, "t": 0}, {"x": 10, "y": 0, "t": 10}, {"x": 20, "y": 0, "t": 20}]
        assert await bridge.score_velocity(points) == 1.0

    @pytest.mark.asyncio
    async def test_angular_round_trip(self, bridge: ScorerBridge) -> None:
        score = await bridge.score_angular([2, 91, 179, 271], 4)
        assert score == pytest.approx(0.9167, abs=1e-4)

    @pytest.mark.asyncio
    async def test_order_round_trip(self, bridge: ScorerBridge) -> None:
        assert await bridge.score_order([1, 2, 3, 4], [1, 3, 2, 4]) == 0.75

    @pytest.mark.asyncio
    async def test_request_returns_details(self, bridge: ScorerBridge) -> None:
        result = await bridge.request({"type": "COMPUTE_PRESSURE", "pressureSamples": [0.5, 0.9]})
        assert result.score == 0.0
        assert result.details["sigma"] == pytest.approx(0.2)

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_independent(self, bridge: ScorerBridge) -> None:
        scores = await asyncio.gather(
            bridge.score_pressure([0.7, 0.7]),
            bridge.score_pressure([0.5, 0.9, 0.5, 0.9]),
            bridge.score_order([1, 2], [2]),
        )
        assert scores == [1.0, 0.0, 0.5]


class TestFallback:
    @pytest.mark.asyncio
    async def test_timeout_returns_fallback(self, caplog: pytest.LogCaptureFixture) -> None:
        bridge = ScorerBridge(_NeverFinishes(), timeout_seconds=0.05, fallback_score=0.85)
        with caplog.at_level(logging.WARNING, logger="guru.scoring.bridge"):
            score = await bridge.score_pressure([0.1, 0.9])
        assert score == 0.85
        assert "timed out" in caplog.text

    @pytest.mark.asyncio
    async def test_request_raises_on_timeout(self) -> None:
        bridge = ScorerBridge(_NeverFinishes(), timeout_seconds=0.05)
        with pytest.raises(TimeoutError):
            await bridge.request({"type": "COMPUTE_PRESSURE", "pressureSamples": [0.5]})

    @pytest.mark.asyncio
    async def test_broken_pool_returns_fallback(self, caplog: pytest.LogCaptureFixture) -> None:
        bridge = ScorerBridge(_Broken(), fallback_score=0.85)
        with caplog.at_level(logging.WARNING, logger="guru.scoring.bridge"):
            score = await bridge.score_velocity([])
        assert score == 0.85
        assert "pool is broken" in caplog.text

    @pytest.mark.asyncio
    async def test_rejected_message_returns_fallback(self, bridge: ScorerBridge) -> None:
        assert await bridge.score({"type": "COMPUTE_NOTHING"}) == 0.85

    @pytest.mark.asyncio
    async def test_custom_fallback_score(self) -> None:
        bridge = ScorerBridge(_Broken(), fallback_score=0.5)
        assert await bridge.score_order([1], [1]) == 0.5


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_thread_executor(self) -> None:
        bridge = ScorerBridge.from_settings(_settings())
        try:
            assert bridge.fallback_score == 0.6
            assert await bridge.score_pressure([0.7, 0.7]) == 1.0
        finally:
            bridge.close()

    @pytest.mark.asyncio
    async def test_process_executor(self) -> None:
        bridge = ScorerBridge.from_settings(_settings(scorer_executor="process"))
        try:
            assert await bridge.score_order([1, 2, 3], [1, 2, 3]) == 1.0
        finally:
            bridge.close()
