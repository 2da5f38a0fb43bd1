"""Stroke pipeline — raw strokes in, live SkillMetrics out.

Accumulates every stroke of a session into the three scorer inputs
(pressure samples, (x, y, t) points, qualifying angles), fires the three
scorer requests in parallel and joins on all of them. A slow or failing
scorer degrades to the bridge's fallback score; it never drops a metric.

Tier 3 orchestration: imports from scoring/bridge (Tier 2), capture
(Tier 2), schemas (Tier 1).
"""

import asyncio
from collections.abc import Sequence

from guru.capture import stroke_angles
from guru.schemas import SkillMetrics, StrokeData
from guru.scoring.bridge import ScorerBridge


class StrokePipeline:
    """Scores a session's strokes through the scorer bridge.

    Args:
        bridge: The scorer bridge used for every metric request.
    """

    def __init__(self, bridge: ScorerBridge) -> None:
        self._bridge = bridge

    async def score_strokes(
        self,
        strokes: Sequence[StrokeData],
        symmetry_axes: int,
        required_order: Sequence[int] | None = None,
    ) -> SkillMetrics:
        """Computes live metrics over every stroke drawn so far.

        Args:
            strokes: Sealed strokes in drawing order.
            symmetry_axes: N-fold symmetry of the current pattern.
            required_order: Canonical stroke-id order, when the pattern
                has one. Without it stroke order scores 1.0.

        Returns:
            A fresh SkillMetrics snapshot. flow_state_index is the mean
            of the pressure, velocity and angular scores.
        """
        pressure_samples = [p.pressure for s in strokes for p in s.points]
        points = [{"x": p.x, "y": p.y, "t": p.timestamp} for s in strokes for p in s.points]
        angles = stroke_angles(strokes)

        pressure, velocity, angular = await asyncio.gather(
            self._bridge.score_pressure(pressure_samples),
            self._bridge.score_velocity(points),
            self._bridge.score_angular(angles, symmetry_axes),
        )

        order = 1.0
        if required_order:
            order = await self._bridge.score_order(
                required_order, [s.stroke_id for s in strokes]
            )

        return SkillMetrics(
            pressure_consistency=pressure,
            velocity_consistency=velocity,
            angular_precision=angular,
            stroke_order_compliance=order,
            flow_state_index=(pressure + velocity + angular) / 3,
        )
