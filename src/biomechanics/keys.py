"""
Closed key sets for landmarks, joints, muscles and session context.

Landmark indices follow the MediaPipe BlazePose 33-point topology used by the
mobile capture layer (``pose_sequence`` frames of shape ``(33, 4)``).
"""

from enum import Enum
from typing import Optional


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "Side":
        return Side.RIGHT if self is Side.LEFT else Side.LEFT


# ============================================================================
# Landmarks
# ============================================================================

class Landmark(str, Enum):
    """Body points consumed by the engine (subset of the 33 BlazePose points)."""

    NOSE = "nose"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"
    LEFT_HEEL = "left_heel"
    RIGHT_HEEL = "right_heel"
    LEFT_FOOT_INDEX = "left_foot_index"
    RIGHT_FOOT_INDEX = "right_foot_index"

    @classmethod
    def lookup(cls, name: str) -> Optional["Landmark"]:
        """Return the landmark for ``name`` or None when it is not tracked."""
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return None

    @classmethod
    def sided(cls, side: Side, part: str) -> "Landmark":
        return cls(f"{side.value}_{part}")


MEDIAPIPE_INDEX: dict[Landmark, int] = {
    Landmark.NOSE: 0,
    Landmark.LEFT_EAR: 7,
    Landmark.RIGHT_EAR: 8,
    Landmark.LEFT_SHOULDER: 11,
    Landmark.RIGHT_SHOULDER: 12,
    Landmark.LEFT_ELBOW: 13,
    Landmark.RIGHT_ELBOW: 14,
    Landmark.LEFT_WRIST: 15,
    Landmark.RIGHT_WRIST: 16,
    Landmark.LEFT_HIP: 23,
    Landmark.RIGHT_HIP: 24,
    Landmark.LEFT_KNEE: 25,
    Landmark.RIGHT_KNEE: 26,
    Landmark.LEFT_ANKLE: 27,
    Landmark.RIGHT_ANKLE: 28,
    Landmark.LEFT_HEEL: 29,
    Landmark.RIGHT_HEEL: 30,
    Landmark.LEFT_FOOT_INDEX: 31,
    Landmark.RIGHT_FOOT_INDEX: 32,
}

NUM_MEDIAPIPE_LANDMARKS: int = 33


# ============================================================================
# Joints
# ============================================================================

class JointType(str, Enum):
    SHOULDER = "shoulder"
    ELBOW = "elbow"
    HIP = "hip"
    KNEE = "knee"
    ANKLE = "ankle"

    @property
    def is_lower_body(self) -> bool:
        return self in (JointType.HIP, JointType.KNEE, JointType.ANKLE)


class Joint(str, Enum):
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"

    @property
    def side(self) -> Side:
        return Side(self.value.split("_", 1)[0])

    @property
    def joint_type(self) -> JointType:
        return JointType(self.value.split("_", 1)[1])

    @classmethod
    def of(cls, joint_type: JointType, side: Side) -> "Joint":
        return cls(f"{side.value}_{joint_type.value}")


# Upstream joints are evaluated before the joints they feed (kinetic chain).
JOINT_ORDER: tuple[JointType, ...] = (
    JointType.SHOULDER,
    JointType.ELBOW,
    JointType.HIP,
    JointType.KNEE,
    JointType.ANKLE,
)


# ============================================================================
# Muscles
# ============================================================================

class MuscleGroup(str, Enum):
    QUADRICEPS = "quadriceps"
    HAMSTRINGS = "hamstrings"
    GLUTES = "glutes"
    ADDUCTORS = "adductors"
    CALVES = "calves"
    PECTORALS = "pectorals"
    DELTOIDS = "deltoids"
    LATS = "lats"
    TRAPEZIUS = "trapezius"
    RHOMBOIDS = "rhomboids"
    SERRATUS = "serratus"
    BICEPS = "biceps"
    TRICEPS = "triceps"
    ERECTOR_SPINAE = "erector_spinae"
    CORE = "core"

    @property
    def is_bilateral(self) -> bool:
        return self not in (MuscleGroup.ERECTOR_SPINAE, MuscleGroup.CORE)


class Muscle(str, Enum):
    """Output muscle keys; bilateral groups are side-qualified."""

    LEFT_QUADRICEPS = "left_quadriceps"
    RIGHT_QUADRICEPS = "right_quadriceps"
    LEFT_HAMSTRINGS = "left_hamstrings"
    RIGHT_HAMSTRINGS = "right_hamstrings"
    LEFT_GLUTES = "left_glutes"
    RIGHT_GLUTES = "right_glutes"
    LEFT_ADDUCTORS = "left_adductors"
    RIGHT_ADDUCTORS = "right_adductors"
    LEFT_CALVES = "left_calves"
    RIGHT_CALVES = "right_calves"
    LEFT_PECTORALS = "left_pectorals"
    RIGHT_PECTORALS = "right_pectorals"
    LEFT_DELTOIDS = "left_deltoids"
    RIGHT_DELTOIDS = "right_deltoids"
    LEFT_LATS = "left_lats"
    RIGHT_LATS = "right_lats"
    LEFT_TRAPEZIUS = "left_trapezius"
    RIGHT_TRAPEZIUS = "right_trapezius"
    LEFT_RHOMBOIDS = "left_rhomboids"
    RIGHT_RHOMBOIDS = "right_rhomboids"
    LEFT_SERRATUS = "left_serratus"
    RIGHT_SERRATUS = "right_serratus"
    LEFT_BICEPS = "left_biceps"
    RIGHT_BICEPS = "right_biceps"
    LEFT_TRICEPS = "left_triceps"
    RIGHT_TRICEPS = "right_triceps"
    ERECTOR_SPINAE = "erector_spinae"
    CORE = "core"

    @property
    def group(self) -> MuscleGroup:
        return _MUSCLE_GROUP[self]

    @property
    def side(self) -> Optional[Side]:
        return _MUSCLE_SIDE[self]

    @classmethod
    def of(cls, group: MuscleGroup, side: Optional[Side] = None) -> "Muscle":
        if not group.is_bilateral:
            return cls(group.value)
        if side is None:
            raise ValueError(f"Muscle group '{group.value}' requires a side")
        return cls(f"{side.value}_{group.value}")


_MUSCLE_GROUP: dict[Muscle, MuscleGroup] = {}
_MUSCLE_SIDE: dict[Muscle, Optional[Side]] = {}
for _m in Muscle:
    _prefix, _, _rest = _m.value.partition("_")
    if _prefix in (Side.LEFT.value, Side.RIGHT.value):
        _MUSCLE_GROUP[_m] = MuscleGroup(_rest)
        _MUSCLE_SIDE[_m] = Side(_prefix)
    else:
        _MUSCLE_GROUP[_m] = MuscleGroup(_m.value)
        _MUSCLE_SIDE[_m] = None

# (left, right) pairs, one per bilateral group.
SYMMETRIC_MUSCLE_PAIRS: tuple[tuple[Muscle, Muscle], ...] = tuple(
    (Muscle.of(g, Side.LEFT), Muscle.of(g, Side.RIGHT))
    for g in MuscleGroup
    if g.is_bilateral
)


# ============================================================================
# Session context and classifier vocabularies
# ============================================================================

class BodyRegion(str, Enum):
    UPPER = "UPPER"
    LOWER = "LOWER"
    FULL = "FULL"

    @classmethod
    def parse(cls, value) -> "BodyRegion":
        """Accept enum members and loose strings such as ``"upper_body"``."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper().replace("-", "_").replace(" ", "_")
        aliases = {
            "UPPER": cls.UPPER, "UPPER_BODY": cls.UPPER, "UPPERBODY": cls.UPPER,
            "LOWER": cls.LOWER, "LOWER_BODY": cls.LOWER, "LOWERBODY": cls.LOWER,
            "FULL": cls.FULL, "FULL_BODY": cls.FULL, "FULLBODY": cls.FULL,
        }
        if text not in aliases:
            raise ValueError(f"Unknown body region: {value!r}")
        return aliases[text]


class ContractionMode(str, Enum):
    ISOTONIC = "ISOTONIC"
    ISOMETRIC = "ISOMETRIC"
    ISOKINETIC = "ISOKINETIC"

    @classmethod
    def parse(cls, value) -> "ContractionMode":
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        if text not in cls.__members__:
            raise ValueError(f"Unknown contraction mode: {value!r}")
        return cls[text]


class MotionPattern(str, Enum):
    STABILIZING = "STABILIZING"
    STATIC_HOLD = "STATIC_HOLD"
    VERTICAL = "VERTICAL"
    HORIZONTAL = "HORIZONTAL"
    KNEE_DOMINANT = "KNEE_DOMINANT"
    HIP_DOMINANT = "HIP_DOMINANT"
    VERTICAL_PUSH = "VERTICAL_PUSH"
    VERTICAL_PULL = "VERTICAL_PULL"
    HORIZONTAL_PUSH = "HORIZONTAL_PUSH"
    HORIZONTAL_PULL = "HORIZONTAL_PULL"


class MovementState(str, Enum):
    CONCENTRIC = "CONCENTRIC"
    ECCENTRIC = "ECCENTRIC"
    ISOMETRIC = "ISOMETRIC"
