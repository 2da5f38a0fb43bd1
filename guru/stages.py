"""Stage registry — single source of truth for the 5-stage mastery ladder.

Every composite score, pass decision and coaching tip resolves its stage
configuration through this module. Weights and thresholds are configuration
data: they are tuned here, never re-derived elsewhere.

Two layers:
  Layer 1: METRIC_FIELDS — the five SkillMetrics dimensions, in table order
  Layer 2: STAGES — stage number → StageConfig (name, weights, threshold)

Weights sum to 1.0 per stage. Early stages lean on pressure and velocity,
later stages on stroke order and flow.
"""

from dataclasses import dataclass

from guru.errors import InvalidStageError

# ---------------------------------------------------------------------------
# Layer 1: metric dimensions
# ---------------------------------------------------------------------------

METRIC_FIELDS: tuple[str, ...] = (
    "pressure_consistency",
    "velocity_consistency",
    "angular_precision",
    "stroke_order_compliance",
    "flow_state_index",
)

METRIC_LABELS: dict[str, str] = {
    "pressure_consistency": "Pressure consistency",
    "velocity_consistency": "Velocity consistency",
    "angular_precision": "Angular precision",
    "stroke_order_compliance": "Stroke order",
    "flow_state_index": "Flow state",
}


# ---------------------------------------------------------------------------
# StageConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StageConfig:
    """Bundles everything the scorers need to know about one stage.

    Tier 1 leaf — constructed in STAGES below, consumed by the composite
    scorer, the feedback generator and the progress store.
    """

    stage: int
    name: str          # "Foundation"
    technique: str     # "Pinch Grip Mastery"
    weights: dict[str, float]
    pass_threshold: float

    @property
    def label(self) -> str:
        return f"Stage {self.stage} · {self.name}"


# ---------------------------------------------------------------------------
# Layer 2: stage table
# ---------------------------------------------------------------------------

STAGES: dict[int, StageConfig] = {
    1: StageConfig(
        stage=1,
        name="Foundation",
        technique="Pinch Grip Mastery",
        weights={
            "pressure_consistency": 0.40,
            "velocity_consistency": 0.25,
            "angular_precision": 0.15,
            "stroke_order_compliance": 0.10,
            "flow_state_index": 0.10,
        },
        pass_threshold=0.70,
    ),
    2: StageConfig(
        stage=2,
        name="Control",
        technique="Controlled Release Dynamics",
        weights={
            "pressure_consistency": 0.25,
            "velocity_consistency": 0.40,
            "angular_precision": 0.15,
            "stroke_order_compliance": 0.10,
            "flow_state_index": 0.10,
        },
        pass_threshold=0.75,
    ),
    3: StageConfig(
        stage=3,
        name="Symmetry",
        technique="Radial Precision",
        weights={
            "pressure_consistency": 0.15,
            "velocity_consistency": 0.15,
            "angular_precision": 0.40,
            "stroke_order_compliance": 0.15,
            "flow_state_index": 0.15,
        },
        pass_threshold=0.80,
    ),
    4: StageConfig(
        stage=4,
        name="Composition",
        technique="Stroke Order Mastery",
        weights={
            "pressure_consistency": 0.10,
            "velocity_consistency": 0.10,
            "angular_precision": 0.20,
            "stroke_order_compliance": 0.40,
            "flow_state_index": 0.20,
        },
        pass_threshold=0.85,
    ),
    5: StageConfig(
        stage=5,
        name="Mastery",
        technique="Flow State Achievement",
        weights={
            "pressure_consistency": 0.10,
            "velocity_consistency": 0.10,
            "angular_precision": 0.15,
            "stroke_order_compliance": 0.25,
            "flow_state_index": 0.40,
        },
        pass_threshold=0.90,
    ),
}

FINAL_STAGE: int = max(STAGES)


def resolve_stage(stage: int) -> StageConfig:
    """Resolves a stage number to its StageConfig.

    Args:
        stage: 1-based stage number.

    Returns:
        The StageConfig for the stage.

    Raises:
        InvalidStageError: If the stage is not on the ladder.
    """
    try:
        return STAGES[stage]
    except (KeyError, TypeError):
        raise InvalidStageError(stage) from None
