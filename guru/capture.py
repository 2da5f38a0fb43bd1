"""Stroke capture — turns pointer events into sealed StrokeData.

The drawing surface calls pointer_down / pointer_move / pointer_up with
canvas coordinates and millisecond timestamps. Each sample is enriched with
instantaneous velocity, pressure and its angle from the pattern centre.

Devices that don't report pressure (mouse, most touch screens) get a
velocity-derived stand-in: slow, controlled movement reads as ~75%
pressure, fast movement as ~55%.

Tier 2 service: imports from schemas (Tier 1), scoring/metrics (Tier 1).

Usage:
    recorder = StrokeRecorder(center_x=240, center_y=200)
    recorder.pointer_down(240, 200, timestamp=0)
    recorder.pointer_move(250, 200, timestamp=10)
    stroke = recorder.pointer_up()
"""

import math
from collections.abc import Iterable, Mapping
from typing import Any

from guru.schemas import StrokeData, StrokePoint
from guru.scoring.metrics import normalize_angle

SIMULATED_PRESSURE_BASE = 0.55
SIMULATED_PRESSURE_RANGE = 0.20
SIMULATED_SPEED_CAP = 5.0  # px/ms

# Moves shorter than this (px) don't count toward angular scoring.
ANGLE_MIN_MOVE = 4.0


def simulated_pressure(speed: float) -> float:
    """Velocity-inverse pressure stand-in, in [0.55, 0.75]."""
    capped = min(max(speed, 0.0), SIMULATED_SPEED_CAP)
    return SIMULATED_PRESSURE_BASE + (1 - capped / SIMULATED_SPEED_CAP) * SIMULATED_PRESSURE_RANGE


class StrokeRecorder:
    """Builds strokes from pointer events on one canvas.

    Stroke ids increment per recorder. Moves and releases
    without a preceding pointer_down are ignored.

    Args:
        center_x: Pattern centre x in canvas coordinates.
        center_y: Pattern centre y in canvas coordinates.
        center_tolerance: Radius (px) around the centre within which a
            stroke counts as starting from the centre.
        first_stroke_id: Id given to the first sealed stroke.
    """

    def __init__(
        self,
        center_x: float,
        center_y: float,
        center_tolerance: float = 30.0,
        first_stroke_id: int = 1,
    ) -> None:
        self._cx = center_x
        self._cy = center_y
        self._tolerance = center_tolerance
        self._points: list[StrokePoint] = []
        self._active = False
        self._next_id = first_stroke_id

    @property
    def is_drawing(self) -> bool:
        return self._active

    def pointer_down(
        self, x: float, y: float, timestamp: int, pressure: float | None = None
    ) -> None:
        self._points = []
        self._active = True
        self._append(x, y, timestamp, pressure)

    def pointer_move(
        self, x: float, y: float, timestamp: int, pressure: float | None = None
    ) -> None:
        if self._active:
            self._append(x, y, timestamp, pressure)

    def pointer_up(self) -> StrokeData | None:
        """Seals the current stroke. Returns None if no stroke was active."""
        if not self._active:
            return None
        self._active = False
        points, self._points = self._points, []

        first = points[0]
        stroke = StrokeData(
            stroke_id=self._next_id,
            points=points,
            start_time=first.timestamp,
            end_time=points[-1].timestamp,
            center_origin=math.hypot(first.x - self._cx, first.y - self._cy)
            <= self._tolerance,
        )
        self._next_id += 1
        return stroke

    def _append(
        self, x: float, y: float, timestamp: int, pressure: float | None
    ) -> None:
        speed = 0.0
        if self._points:
            prev = self._points[-1]
            dt = timestamp - prev.timestamp
            if dt > 0:
                speed = math.hypot(x - prev.x, y - prev.y) / dt

        if pressure is None or pressure <= 0:
            pressure = simulated_pressure(speed)

        angle = math.degrees(math.atan2(y - self._cy, x - self._cx))
        self._points.append(
            StrokePoint(
                timestamp=int(timestamp),
                x=float(x),
                y=float(y),
                pressure=min(float(pressure), 1.0),
                velocity=speed,
                angle=normalize_angle(angle),
            )
        )


def stroke_angles(strokes: Iterable[StrokeData]) -> list[float]:
    """Angles that count toward angular scoring.

    A point's angle is kept only when the pointer moved more than 4 px
    since the previous point of the same stroke.
    """
    angles = []
    for stroke in strokes:
        for prev, point in zip(stroke.points, stroke.points[1:]):
            if math.hypot(point.x - prev.x, point.y - prev.y) > ANGLE_MIN_MOVE:
                angles.append(point.angle)
    return angles


def stroke_from_samples(
    samples: Iterable[Mapping[str, Any]],
    center_x: float,
    center_y: float,
    stroke_id: int = 1,
    center_tolerance: float = 30.0,
) -> StrokeData | None:
    """Replays recorded pointer samples ({x, y, t, pressure?}) into one stroke.

    The first sample is the pointer-down. Returns None for no samples.
    """
    recorder = StrokeRecorder(center_x, center_y, center_tolerance, first_stroke_id=stroke_id)
    for sample in samples:
        x, y, t = sample["x"], sample["y"], sample["t"]
        pressure = sample.get("pressure")
        if recorder.is_drawing:
            recorder.pointer_move(x, y, t, pressure)
        else:
            recorder.pointer_down(x, y, t, pressure)
    return recorder.pointer_up()
