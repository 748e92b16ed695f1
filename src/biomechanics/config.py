"""
Configuration constants for the biomechanics engine.

Centralizes every tunable threshold of the per-frame pipeline, the
pattern/region muscle weight tables, environment variable loading, and the
joint spring-damper parameter file (``config/joint_controllers.yaml``).
"""

import logging
import math
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .keys import BodyRegion, JointType, MotionPattern, MuscleGroup

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(_ENV_PATH)

CONFIG_DIR = PROJECT_ROOT / "config"
JOINT_CONFIG_PATH = Path(
    os.environ.get("BIOMECH_JOINT_CONFIG", str(CONFIG_DIR / "joint_controllers.yaml"))
)

# ---------------------------------------------------------------------------
# Landmark reliability & normalization
# ---------------------------------------------------------------------------
CONFIDENCE_THRESHOLD: float = float(os.environ.get("BIOMECH_CONFIDENCE_THRESHOLD", "0.5"))
MIN_BODY_SCALE: float = 1e-6       # Below this torso/shoulder span the frame is left raw
EPSILON: float = 1e-6

# ---------------------------------------------------------------------------
# View classification
# ---------------------------------------------------------------------------
SIDE_VIEW_SEPARATION: float = 0.15  # Normalized |dx| of a left/right pair

# ---------------------------------------------------------------------------
# Stability / compensation estimator
# ---------------------------------------------------------------------------
ELEVATION_NECK_RATIO: float = 0.5          # Neck length relative to clavicle length
ELEVATION_WARNING: float = 0.5
VALGUS_KNEE_ANKLE_RATIO: float = 0.8       # Knee width below this fraction of ankle width
VALGUS_KNEE_HIP_RATIO: float = 0.7         # ...or below this fraction of hip width
VALGUS_WARNING: float = 0.3
RETRACTION_ROUNDED: float = -0.1           # Elbow depth minus shoulder depth
PELVIC_TILT_WARNING: float = 0.15
TRUNK_NEUTRAL_BAND_DEG: float = 20.0       # Lean from vertical tolerated without leak
TRUNK_FLEXION_WARNING: float = 0.6

# ---------------------------------------------------------------------------
# Motion pattern analyzer
# ---------------------------------------------------------------------------
MOTION_WINDOW: int = 5
WARMUP_FRAMES: int = 3
NOISE_DISPLACEMENT: float = 0.005          # Mean per-frame landmark travel (body units)
ISOMETRIC_DISPLACEMENT: float = 0.005      # Trunk-centre dy for ISOMETRIC movement state
MIN_PATTERN_SPAN_DEG: float = 1.0          # Lower-body span needed before it can dominate
HIP_TRAVEL_THRESHOLD: float = 0.1          # Pelvis vertical travel over the window
REACH_CHANGE_THRESHOLD: float = 0.02       # Shoulder-wrist reach change for push/pull
REACH_INTENT_GAIN: float = 1.0 / 3.0       # Per body unit/s of reach velocity
DEPTH_INTENT_GAIN: float = 1.0 / 6.0       # Per body unit/s of wrist depth velocity
ISOMETRIC_SWAY_DEG: float = 5.0
ISOKINETIC_TEMPO_CV: float = 0.5

# ---------------------------------------------------------------------------
# Joint controllers
# ---------------------------------------------------------------------------
DEFAULT_DT: float = 1.0 / 30.0
MAX_DT: float = 0.1
REFERENCE_ANGULAR_SPEED: float = math.pi   # rad/s mapped to full muscle force weight
HOLD_FORCE_WEIGHT: float = 0.5             # Constant force weight in ISOMETRIC mode
CHAIN_SAFETY_THRESHOLD: float = 0.3
ROM_WINDOW: int = 30
ACTIVE_JOINT_NORMALIZER: float = 4.0       # Summed stress mapped to total force 1.0

DEFAULT_JOINT_PARAMETERS: dict[str, dict] = {
    "reference_torque": 1.0,
    "max_torque": 20.0,
    "joints": {
        "shoulder": dict(angle_min=0.0, angle_max=160.0, stiffness=2.0, damping=0.3,
                         static_friction=0.05, kinetic_friction=0.02),
        "elbow": dict(angle_min=30.0, angle_max=180.0, stiffness=2.0, damping=0.25,
                      static_friction=0.05, kinetic_friction=0.02,
                      upstream="shoulder", chain_weight=0.35, safety_damping=1.0),
        "hip": dict(angle_min=40.0, angle_max=180.0, stiffness=3.0, damping=0.3,
                    static_friction=0.05, kinetic_friction=0.02),
        "knee": dict(angle_min=50.0, angle_max=180.0, stiffness=3.0, damping=0.3,
                     static_friction=0.05, kinetic_friction=0.02,
                     upstream="hip", chain_weight=0.3, safety_damping=1.0),
        "ankle": dict(angle_min=60.0, angle_max=130.0, stiffness=2.5, damping=0.2,
                      static_friction=0.05, kinetic_friction=0.02,
                      upstream="knee", chain_weight=0.2, safety_damping=0.8),
    },
}

# ---------------------------------------------------------------------------
# Energy leak engine
# ---------------------------------------------------------------------------
ELEVATION_PENALTY: float = 0.2
VALGUS_PENALTY: float = 0.3
PELVIC_TILT_PENALTY: float = 0.2
TRAP_LEAK_GAIN: float = 1.5
ARM_LEAK_FRACTION: float = 0.4
ARM_LEAK_BICEPS: float = 0.75
ARM_LEAK_TRICEPS: float = 0.5
ROUNDED_PRIME_MOVER_DAMPING: float = 0.6
VALGUS_LEAK_GAIN: float = 2.0
WEAK_GLUTE_THRESHOLD: float = 0.3
HINGE_QUAD_LEAK: float = 0.3
ERECTOR_LEAK_GAIN: float = 1.0

PATTERN_WEIGHTS: dict[MotionPattern, dict[MuscleGroup, float]] = {
    MotionPattern.KNEE_DOMINANT: {
        MuscleGroup.QUADRICEPS: 1.2, MuscleGroup.GLUTES: 0.8,
        MuscleGroup.HAMSTRINGS: 0.3, MuscleGroup.CALVES: 0.2,
    },
    MotionPattern.HIP_DOMINANT: {
        MuscleGroup.HAMSTRINGS: 1.2, MuscleGroup.GLUTES: 1.2,
        MuscleGroup.ERECTOR_SPINAE: 0.6, MuscleGroup.QUADRICEPS: 0.2,
    },
    MotionPattern.VERTICAL_PUSH: {
        MuscleGroup.DELTOIDS: 2.5, MuscleGroup.TRICEPS: 1.5,
        MuscleGroup.TRAPEZIUS: 0.6, MuscleGroup.PECTORALS: 0.4,
    },
    MotionPattern.HORIZONTAL_PUSH: {
        MuscleGroup.PECTORALS: 2.5, MuscleGroup.TRICEPS: 1.2,
        MuscleGroup.DELTOIDS: 0.8, MuscleGroup.SERRATUS: 0.6,
    },
    MotionPattern.VERTICAL_PULL: {
        MuscleGroup.LATS: 2.5, MuscleGroup.BICEPS: 1.0,
        MuscleGroup.TRAPEZIUS: 0.8, MuscleGroup.RHOMBOIDS: 0.7,
    },
    MotionPattern.HORIZONTAL_PULL: {
        MuscleGroup.TRAPEZIUS: 2.0, MuscleGroup.RHOMBOIDS: 2.0,
        MuscleGroup.LATS: 1.5, MuscleGroup.BICEPS: 1.2, MuscleGroup.DELTOIDS: 0.5,
    },
    MotionPattern.STATIC_HOLD: {
        MuscleGroup.CORE: 1.0, MuscleGroup.ERECTOR_SPINAE: 0.6,
        MuscleGroup.GLUTES: 0.4, MuscleGroup.DELTOIDS: 0.4,
    },
}

REGION_DEFAULT_WEIGHTS: dict[BodyRegion, dict[MuscleGroup, float]] = {
    BodyRegion.UPPER: {
        MuscleGroup.PECTORALS: 1.0, MuscleGroup.DELTOIDS: 1.0, MuscleGroup.LATS: 1.0,
        MuscleGroup.TRAPEZIUS: 0.6, MuscleGroup.BICEPS: 0.6, MuscleGroup.TRICEPS: 0.6,
    },
    BodyRegion.LOWER: {
        MuscleGroup.QUADRICEPS: 1.0, MuscleGroup.GLUTES: 1.0,
        MuscleGroup.HAMSTRINGS: 0.8, MuscleGroup.CALVES: 0.4,
    },
    BodyRegion.FULL: {
        MuscleGroup.QUADRICEPS: 1.0, MuscleGroup.GLUTES: 1.0, MuscleGroup.HAMSTRINGS: 0.8,
        MuscleGroup.DELTOIDS: 0.8, MuscleGroup.LATS: 0.8, MuscleGroup.PECTORALS: 0.8,
        MuscleGroup.CORE: 0.6,
    },
}

# ---------------------------------------------------------------------------
# Facade post-processing
# ---------------------------------------------------------------------------
LAT_PARALLEL_COSINE: float = math.cos(math.radians(30.0))
LAT_BOOST: float = 1.5
LAT_TENSION_FLOOR: float = 0.5
LAT_TRAP_DISCOUNT: float = 0.5
ELBOW_POSTERIOR_DEPTH: float = 0.05
RETRACTION_BOOST: float = 1.4
RETRACTION_TENSION_FLOOR: float = 0.4
ADDUCTION_WIDTH_RATIO: float = 0.8
ADDUCTION_HEIGHT_BAND: float = 0.35
PEC_ADDUCTION_BOOST: float = 1.5
PEC_TENSION_FLOOR: float = 0.4
TRICEPS_ADDUCTION_DISCOUNT: float = 0.7
WRIST_ANTERIOR_DEPTH: float = 0.1
UNLOCKED_ELBOW_DEG: float = 160.0
ISOMETRIC_PEC_TENSION: float = 0.25
INTENT_THRESHOLD: float = 0.3
INHIBITION_STRENGTH: float = 0.6
REGION_ATTENUATION: float = 0.15
SCORE_FLOOR: float = 0.05                  # 0..1 scale; lower scores are reported as 0

PUSH_ANTAGONISTS: tuple[MuscleGroup, ...] = (
    MuscleGroup.PECTORALS, MuscleGroup.TRICEPS,
)
PULL_ANTAGONISTS: tuple[MuscleGroup, ...] = (
    MuscleGroup.LATS, MuscleGroup.TRAPEZIUS, MuscleGroup.BICEPS, MuscleGroup.RHOMBOIDS,
)

# Trunk muscles belong to every region and are never attenuated.
REGION_MUSCLES: dict[BodyRegion, frozenset[MuscleGroup]] = {
    BodyRegion.UPPER: frozenset({
        MuscleGroup.PECTORALS, MuscleGroup.DELTOIDS, MuscleGroup.LATS,
        MuscleGroup.TRAPEZIUS, MuscleGroup.RHOMBOIDS, MuscleGroup.SERRATUS,
        MuscleGroup.BICEPS, MuscleGroup.TRICEPS,
        MuscleGroup.ERECTOR_SPINAE, MuscleGroup.CORE,
    }),
    BodyRegion.LOWER: frozenset({
        MuscleGroup.QUADRICEPS, MuscleGroup.HAMSTRINGS, MuscleGroup.GLUTES,
        MuscleGroup.ADDUCTORS, MuscleGroup.CALVES,
        MuscleGroup.ERECTOR_SPINAE, MuscleGroup.CORE,
    }),
    BodyRegion.FULL: frozenset(MuscleGroup),
}

# Joint whose left/right stress ratio attributes a group's score to each side.
GOVERNING_JOINT: dict[MuscleGroup, JointType] = {
    MuscleGroup.QUADRICEPS: JointType.KNEE,
    MuscleGroup.HAMSTRINGS: JointType.HIP,
    MuscleGroup.GLUTES: JointType.HIP,
    MuscleGroup.ADDUCTORS: JointType.HIP,
    MuscleGroup.CALVES: JointType.ANKLE,
    MuscleGroup.PECTORALS: JointType.SHOULDER,
    MuscleGroup.DELTOIDS: JointType.SHOULDER,
    MuscleGroup.LATS: JointType.SHOULDER,
    MuscleGroup.TRAPEZIUS: JointType.SHOULDER,
    MuscleGroup.RHOMBOIDS: JointType.SHOULDER,
    MuscleGroup.SERRATUS: JointType.SHOULDER,
    MuscleGroup.BICEPS: JointType.ELBOW,
    MuscleGroup.TRICEPS: JointType.ELBOW,
}


# ============================================================================
# Joint parameter YAML
# ============================================================================

def load_joint_config(config_path: Optional[Path] = None) -> dict:
    """Load joint controller parameters from YAML, merged over the defaults.

    Args:
        config_path: Override path; defaults to ``JOINT_CONFIG_PATH``.

    Returns:
        Dict with ``reference_torque``, ``max_torque`` and a ``joints`` mapping
        of joint type name to parameter dict (angles in degrees).
    """
    path = Path(config_path) if config_path is not None else JOINT_CONFIG_PATH
    merged = {
        "reference_torque": DEFAULT_JOINT_PARAMETERS["reference_torque"],
        "max_torque": DEFAULT_JOINT_PARAMETERS["max_torque"],
        "joints": {k: dict(v) for k, v in DEFAULT_JOINT_PARAMETERS["joints"].items()},
    }
    if not path.exists():
        logger.warning("Joint config not found at %s, using built-in defaults", path)
        return merged

    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Joint config {path} must be a mapping, got {type(raw).__name__}")

    for key in ("reference_torque", "max_torque"):
        if key in raw:
            merged[key] = float(raw[key])
    for name, params in (raw.get("joints") or {}).items():
        if name not in merged["joints"]:
            raise ValueError(f"Unknown joint type '{name}' in {path}")
        merged["joints"][name].update(params or {})
    return merged


_JOINT_CONFIG: Optional[dict] = None


def get_joint_config() -> dict:
    """Lazy-load and cache the joint YAML config."""
    global _JOINT_CONFIG
    if _JOINT_CONFIG is None:
        _JOINT_CONFIG = load_joint_config()
    return _JOINT_CONFIG
