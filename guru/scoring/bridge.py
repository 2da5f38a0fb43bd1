"""Scorer bridge — off-thread scorer dispatch with graceful degradation.

Wraps a concurrent.futures executor (threads by default, processes when
configured) in an awaitable request/response API. Each request ships one
message to worker.handle_message and awaits exactly one result; in-flight
requests are plain futures, nothing else is shared between calls.

A scorer that times out, crashes, or rejects its message never blocks or
breaks the pipeline: score() logs a warning and returns the neutral
fallback score (0.85 by default) so the player keeps drawing.

Tier 2 service: imports from scoring/worker (Tier 2), schemas (Tier 1),
config (Tier 2).

Usage:
    bridge = ScorerBridge.from_settings(get_settings())
    pressure = await bridge.score_pressure([0.7, 0.71, 0.69])
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping, Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any

from guru.config import Settings
from guru.schemas import ScorerResult
from guru.scoring.metrics import clamp
from guru.scoring.worker import (
    COMPUTE_ANGULAR_ERROR,
    COMPUTE_LCS_COMPLIANCE,
    COMPUTE_PRESSURE,
    COMPUTE_VELOCITY_CV,
    handle_message,
)

logger = logging.getLogger("guru.scoring.bridge")

DEFAULT_FALLBACK_SCORE = 0.85
DEFAULT_TIMEOUT_SECONDS = 2.0


class ScorerBridge:
    """Dispatches scorer messages to an executor and awaits the replies.

    Args:
        executor: Pool that runs handle_message. Defaults to a small
            thread pool owned by the bridge.
        timeout_seconds: Per-request wall-clock limit.
        fallback_score: Neutral score returned when a scorer fails.
    """

    def __init__(
        self,
        executor: Executor | None = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        fallback_score: float = DEFAULT_FALLBACK_SCORE,
    ) -> None:
        self._executor = executor or ThreadPoolExecutor(
            max_workers=3, thread_name_prefix="guru-scorer"
        )
        self._timeout_seconds = timeout_seconds
        self._fallback_score = fallback_score

    @classmethod
    def from_settings(cls, settings: Settings) -> ScorerBridge:
        """Builds a bridge with the executor kind and limits from settings."""
        if settings.scorer_executor == "process":
            executor: Executor = ProcessPoolExecutor(
                max_workers=settings.scorer_max_workers
            )
        else:
            executor = ThreadPoolExecutor(
                max_workers=settings.scorer_max_workers,
                thread_name_prefix="guru-scorer",
            )
        return cls(
            executor,
            timeout_seconds=settings.scorer_timeout_seconds,
            fallback_score=settings.scorer_fallback_score,
        )

    @property
    def fallback_score(self) -> float:
        return self._fallback_score

    async def request(self, message: Mapping[str, Any]) -> ScorerResult:
        """Sends one message to the executor and awaits its result.

        Raises:
            TimeoutError: If the scorer doesn't answer within the timeout.
            Exception: Whatever the executor raises (e.g. a broken pool).
        """
        loop = asyncio.get_running_loop()
        async with asyncio.timeout(self._timeout_seconds):
            payload = await loop.run_in_executor(
                self._executor, handle_message, dict(message)
            )
        return ScorerResult(**payload)

    async def score(self, message: Mapping[str, Any]) -> float:
        """Returns the scorer's score, or the fallback score on any failure.

        Never raises — the player is mid-interaction.
        """
        message_type = message.get("type")
        try:
            result = await self.request(message)
        except TimeoutError:
            logger.warning(
                "Scorer %s timed out after %.1fs, using fallback %.2f",
                message_type,
                self._timeout_seconds,
                self._fallback_score,
            )
            return self._fallback_score
        except Exception as exc:
            logger.warning(
                "Scorer %s failed: %s, using fallback %.2f",
                message_type,
                exc,
                self._fallback_score,
            )
            return self._fallback_score

        if "error" in result.details:
            logger.warning(
                "Scorer %s rejected message: %s, using fallback %.2f",
                message_type,
                result.details["error"],
                self._fallback_score,
            )
            return self._fallback_score

        if not math.isfinite(result.score):
            return self._fallback_score
        return clamp(result.score)

    # -- convenience wrappers ----------------------------------------------

    async def score_pressure(self, samples: Sequence[float]) -> float:
        return await self.score(
            {"type": COMPUTE_PRESSURE, "pressureSamples": list(samples)}
        )

    async def score_velocity(self, points: Sequence[Mapping[str, float]]) -> float:
        return await self.score({"type": COMPUTE_VELOCITY_CV, "points": list(points)})

    async def score_angular(self, angles: Sequence[float], symmetry_axes: int) -> float:
        return await self.score(
            {
                "type": COMPUTE_ANGULAR_ERROR,
                "strokeAngles": list(angles),
                "symmetryAxes": symmetry_axes,
            }
        )

    async def score_order(self, required: Sequence[int], user: Sequence[int]) -> float:
        return await self.score(
            {
                "type": COMPUTE_LCS_COMPLIANCE,
                "requiredOrder": list(required),
                "userOrder": list(user),
            }
        )

    def close(self) -> None:
        """Shuts the executor down without waiting for in-flight scorers."""
        self._executor.shutdown(wait=False, cancel_futures=True)
