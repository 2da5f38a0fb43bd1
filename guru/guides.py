"""Stage guides — coaching copy for each stage of the ladder.

Static content, no logic. COACHING_TIPS is the lookup table the feedback
generator draws from: one tip per (stage, metric) pair, written from the
technique guidance of each stage (grip, release, radial placement, stroke
sequence, flow).

Tier 1 leaf module: no project imports.
"""

COACHING_TIPS: dict[int, dict[str, str]] = {
    1: {
        "pressure_consistency": (
            "Three-finger hold: thumb, index and middle, like holding a grain of "
            "rice. Aim for a steady 60-80% pressure."
        ),
        "velocity_consistency": (
            "Slow down. At this stage speed doesn't matter, a calm hand does."
        ),
        "angular_precision": (
            "Your wrist is the compass centre. Fingers control detail, wrist "
            "controls curves."
        ),
        "stroke_order_compliance": (
            "Start every pattern from the centre dot and work outward."
        ),
        "flow_state_index": (
            "Practise in sets of five strokes and rest 30 seconds between sets. "
            "Quality over quantity."
        ),
    },
    2: {
        "pressure_consistency": (
            "Rest your ring and pinky fingers on the surface so speed changes "
            "don't leak into your grip."
        ),
        "velocity_consistency": (
            "Flow like water: imagine pouring honey, steady and never jerky. "
            "Exhale slowly as you draw."
        ),
        "angular_precision": (
            "Soften your gaze and see the whole pattern instead of staring at "
            "the cursor."
        ),
        "stroke_order_compliance": (
            "Plan the next stroke during the pause, not while drawing."
        ),
        "flow_state_index": (
            "Breath sync: exhale during strokes, inhale during pauses."
        ),
    },
    3: {
        "pressure_consistency": (
            "Keep the same pressure on every spoke so the halves match when "
            "you mirror-check."
        ),
        "velocity_consistency": (
            "Draw each radial stroke at the same pace; rushing the last spokes "
            "bends them."
        ),
        "angular_precision": (
            "Mental compass: picture a clock face. 12, 3, 6, 9 is perfect "
            "4-fold symmetry. Count the divisions out loud."
        ),
        "stroke_order_compliance": (
            "Place opposite spokes in pairs (12 then 6, 3 then 9) to keep the "
            "pattern balanced."
        ),
        "flow_state_index": (
            "Pivot from the centre: a small wrist rotation makes a big arc on "
            "the edge."
        ),
    },
    4: {
        "pressure_consistency": (
            "Keep the grip light through long sequences; tension builds up "
            "stroke by stroke."
        ),
        "velocity_consistency": (
            "Give each stroke its own beat, like notes in a melody."
        ),
        "angular_precision": (
            "Check each new layer against the guide axes before moving outward."
        ),
        "stroke_order_compliance": (
            "Bloom from the centre: seed, then petals, then leaves. Never draw "
            "leaves before petals."
        ),
        "flow_state_index": (
            "Study the sequence for 30 seconds, then draw it without hints."
        ),
    },
    5: {
        "pressure_consistency": (
            "Effortless effort: let the hand hold the brush, don't squeeze it."
        ),
        "velocity_consistency": (
            "If you're checking the clock, you're not in flow. Let the rhythm "
            "set the pace."
        ),
        "angular_precision": (
            "Trust the muscle memory from the symmetry stage; the angles are "
            "already in your wrist."
        ),
        "stroke_order_compliance": (
            "Draw the whole sequence as one continuous movement in your mind "
            "before you start."
        ),
        "flow_state_index": (
            "Stop trying. Let your hand draw itself while you watch."
        ),
    },
}


def coaching_tip(stage: int, metric: str) -> str:
    """Returns the tip for a stage/metric pair, empty string if none."""
    return COACHING_TIPS.get(stage, {}).get(metric, "")
