"""
Muscle-score post-processing applied by the session after the energy leak
engine. All functions are pure: they take a ``{Muscle: score}`` map on the
0..1 scale and return a new map.

Order used by :class:`~src.biomechanics.session.AnalysisSession`:

    attribute_sides -> apply_tension_heuristics -> apply_reciprocal_inhibition
    -> mirror_symmetric_pairs (side view only) -> apply_region_gain
    -> apply_score_floor -> to_percent_map
"""

import math
from typing import Mapping

from .config import (
    ADDUCTION_HEIGHT_BAND,
    ADDUCTION_WIDTH_RATIO,
    ELBOW_POSTERIOR_DEPTH,
    EPSILON,
    GOVERNING_JOINT,
    INHIBITION_STRENGTH,
    INTENT_THRESHOLD,
    ISOMETRIC_PEC_TENSION,
    LAT_BOOST,
    LAT_PARALLEL_COSINE,
    LAT_TENSION_FLOOR,
    LAT_TRAP_DISCOUNT,
    PEC_ADDUCTION_BOOST,
    PEC_TENSION_FLOOR,
    PULL_ANTAGONISTS,
    PUSH_ANTAGONISTS,
    REGION_ATTENUATION,
    REGION_MUSCLES,
    RETRACTION_BOOST,
    RETRACTION_TENSION_FLOOR,
    SCORE_FLOOR,
    TRICEPS_ADDUCTION_DISCOUNT,
    UNLOCKED_ELBOW_DEG,
    WRIST_ANTERIOR_DEPTH,
)
from .frame import LandmarkFrame
from .geometry import cosine_similarity
from .keys import SYMMETRIC_MUSCLE_PAIRS, BodyRegion, Joint, JointType, Muscle, MuscleGroup, Side
from .utils import clamp, sanitize, to_percent


def empty_usage() -> dict[Muscle, float]:
    return {m: 0.0 for m in Muscle}


# ============================================================================
# Side attribution
# ============================================================================

def attribute_sides(
    group_scores: Mapping[MuscleGroup, float],
    joint_stress: Mapping[Joint, float],
) -> dict[Muscle, float]:
    """Expand unsided group scores into ``left_``/``right_`` muscle keys.

    The more stressed side of the governing joint receives the full group
    score and the other side a proportional share. With no stress on either
    side (or no governing joint) both sides receive the full score; a side
    whose joint was not evaluated receives nothing.
    """
    usage = empty_usage()
    for group, score in group_scores.items():
        if not group.is_bilateral:
            usage[Muscle.of(group)] = score
            continue
        joint_type = GOVERNING_JOINT.get(group)
        left = right = None
        if joint_type is not None:
            left = joint_stress.get(Joint.of(joint_type, Side.LEFT))
            right = joint_stress.get(Joint.of(joint_type, Side.RIGHT))
        if left is None and right is None:
            shares = (1.0, 1.0)
        else:
            ls = left or 0.0
            rs = right or 0.0
            top = max(ls, rs)
            if top < EPSILON:
                shares = (1.0 if left is not None else 0.0, 1.0 if right is not None else 0.0)
            else:
                shares = (ls / top, rs / top)
        usage[Muscle.of(group, Side.LEFT)] = score * shares[0]
        usage[Muscle.of(group, Side.RIGHT)] = score * shares[1]
    return usage


# ============================================================================
# Pose-geometry tension heuristics
# ============================================================================

def apply_tension_heuristics(
    usage: Mapping[Muscle, float],
    frame: LandmarkFrame,
    angles: Mapping[Joint, float],
    total_force: float,
    side_view: bool = False,
) -> dict[Muscle, float]:
    """Boost or suppress scores from static arm/trunk alignment.

    Per side:
      - arm parallel to the trunk: lats boosted, trapezius halved
      - elbow behind the shoulder: trapezius and rhomboids boosted
      - elbow drawn toward the midline at shoulder height (frontal only):
        pectorals boosted, triceps discounted
      - wrist ahead of the shoulder with an unlocked elbow: isometric
        pectoral tension, even without movement
    """
    out = dict(usage)
    force = clamp(total_force, 0.0, 1.0)
    chest = frame.center("shoulder")

    for side in Side:
        shoulder = frame.side(side, "shoulder")
        elbow = frame.side(side, "elbow")
        wrist = frame.side(side, "wrist")
        hip = frame.side(side, "hip")
        if shoulder is None or elbow is None:
            continue

        lats = Muscle.of(MuscleGroup.LATS, side)
        trap = Muscle.of(MuscleGroup.TRAPEZIUS, side)
        rhomboids = Muscle.of(MuscleGroup.RHOMBOIDS, side)
        pecs = Muscle.of(MuscleGroup.PECTORALS, side)
        triceps = Muscle.of(MuscleGroup.TRICEPS, side)

        if hip is not None:
            alignment = cosine_similarity(elbow.sub(shoulder), hip.sub(shoulder))
            if alignment >= LAT_PARALLEL_COSINE:
                out[lats] = max(out[lats] * LAT_BOOST, force * LAT_TENSION_FLOOR)
                out[trap] *= LAT_TRAP_DISCOUNT

        if elbow.z - shoulder.z > ELBOW_POSTERIOR_DEPTH:
            out[trap] = max(out[trap] * RETRACTION_BOOST, force * RETRACTION_TENSION_FLOOR)
            out[rhomboids] = max(out[rhomboids] * RETRACTION_BOOST, force * RETRACTION_TENSION_FLOOR)

        if not side_view and chest is not None:
            shoulder_offset = abs(shoulder.x - chest.x)
            elbow_offset = abs(elbow.x - chest.x)
            if (elbow_offset < shoulder_offset * ADDUCTION_WIDTH_RATIO
                    and abs(elbow.y - shoulder.y) < ADDUCTION_HEIGHT_BAND):
                out[pecs] = max(out[pecs] * PEC_ADDUCTION_BOOST, force * PEC_TENSION_FLOOR)
                out[triceps] *= TRICEPS_ADDUCTION_DISCOUNT

        elbow_angle = angles.get(Joint.of(JointType.ELBOW, side))
        if (wrist is not None and elbow_angle is not None
                and wrist.z < shoulder.z - WRIST_ANTERIOR_DEPTH
                and math.degrees(elbow_angle) < UNLOCKED_ELBOW_DEG):
            out[pecs] = max(out[pecs], ISOMETRIC_PEC_TENSION)

    return {m: clamp(v, 0.0, 1.0) for m, v in out.items()}


# ============================================================================
# Reciprocal inhibition
# ============================================================================

def apply_reciprocal_inhibition(usage: Mapping[Muscle, float], intent: float) -> dict[Muscle, float]:
    """Suppress antagonists of a clear push (intent > 0) or pull (intent < 0)."""
    intent = clamp(intent, -1.0, 1.0)
    if abs(intent) <= INTENT_THRESHOLD:
        return dict(usage)
    antagonists = PULL_ANTAGONISTS if intent > 0 else PUSH_ANTAGONISTS
    factor = 1.0 - INHIBITION_STRENGTH * abs(intent)
    return {
        m: (v * factor if m.group in antagonists else v)
        for m, v in usage.items()
    }


# ============================================================================
# Mirroring, region gain, floor, output
# ============================================================================

def mirror_symmetric_pairs(usage: Mapping[Muscle, float]) -> dict[Muscle, float]:
    """Assign the larger of each left/right pair to both sides."""
    out = dict(usage)
    for left, right in SYMMETRIC_MUSCLE_PAIRS:
        value = max(out.get(left, 0.0), out.get(right, 0.0))
        out[left] = value
        out[right] = value
    return out


def apply_region_gain(usage: Mapping[Muscle, float], region: BodyRegion) -> dict[Muscle, float]:
    """Attenuate (never zero) muscles outside the target body region."""
    in_region = REGION_MUSCLES[region]
    return {
        m: (v if m.group in in_region else v * REGION_ATTENUATION)
        for m, v in usage.items()
    }


def apply_score_floor(usage: Mapping[Muscle, float], floor: float = SCORE_FLOOR) -> dict[Muscle, float]:
    """Zero out scores below ``floor`` (0..1 scale)."""
    return {m: (0.0 if sanitize(v) < floor else sanitize(v)) for m, v in usage.items()}


def to_percent_map(scores: Mapping) -> dict[str, float]:
    """Convert enum-keyed 0..1 scores to the string-keyed 0..100 output map."""
    return {getattr(k, "value", str(k)): to_percent(v) for k, v in scores.items()}
