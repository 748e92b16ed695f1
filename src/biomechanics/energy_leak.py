"""
Energy leak / compensation engine.

Splits the frame's total joint force into force reaching the prime movers of
the detected pattern ("effective") and force absorbed by compensating muscles
("compensation"). Scores are per muscle group (unsided) on a 0..1 scale.

    efficiency      = 1 - (elevation * 0.2 + valgus * 0.3 + min(tilt * 0.2, 0.2))
    effective_force = total_force * efficiency
    effective[g]    = effective_force * weight[g] / max(weight)

Compensation rules:
    - shoulder elevation         -> trapezius
    - rounded shoulders          -> biceps / triceps, damped lats / pectorals
    - knee valgus (frontal only) -> adductors, reduced glutes
    - hip hinge                  -> quadriceps, reduced glutes
    - trunk flexion              -> erector spinae
"""

import logging

from pydantic import BaseModel, Field

from .config import (
    ARM_LEAK_BICEPS,
    ARM_LEAK_FRACTION,
    ARM_LEAK_TRICEPS,
    ELEVATION_PENALTY,
    ERECTOR_LEAK_GAIN,
    HINGE_QUAD_LEAK,
    PATTERN_WEIGHTS,
    PELVIC_TILT_PENALTY,
    REGION_DEFAULT_WEIGHTS,
    RETRACTION_ROUNDED,
    ROUNDED_PRIME_MOVER_DAMPING,
    TRAP_LEAK_GAIN,
    VALGUS_LEAK_GAIN,
    VALGUS_PENALTY,
    WEAK_GLUTE_THRESHOLD,
)
from .keys import BodyRegion, MotionPattern, MuscleGroup
from .motion import MotionResult
from .stability import StabilityMetrics
from .utils import clamp

logger = logging.getLogger(__name__)


class EnergyLeakResult(BaseModel):
    effective: dict[MuscleGroup, float] = Field(
        default_factory=dict, description="Force reaching prime movers (0..1)"
    )
    compensation: dict[MuscleGroup, float] = Field(
        default_factory=dict, description="Force leaking into compensators (0..1)"
    )
    efficiency: float = Field(default=1.0, ge=0.0, le=1.0)

    def combined(self) -> dict[MuscleGroup, float]:
        """Effective plus compensation per group, clamped to [0, 1]."""
        groups = set(self.effective) | set(self.compensation)
        return {
            g: clamp(self.effective.get(g, 0.0) + self.compensation.get(g, 0.0), 0.0, 1.0)
            for g in groups
        }


class EnergyLeakEngine:
    """Distribute total joint force into effective and compensation scores."""

    def weights_for(self, pattern: MotionPattern, region: BodyRegion) -> dict[MuscleGroup, float]:
        return PATTERN_WEIGHTS.get(pattern) or REGION_DEFAULT_WEIGHTS[region]

    def compute(
        self,
        total_force: float,
        stability: StabilityMetrics,
        motion: MotionResult,
        region: BodyRegion,
        side_view: bool = False,
    ) -> EnergyLeakResult:
        total = clamp(total_force, 0.0, 1.0)
        if total <= 0.0:
            return EnergyLeakResult()

        penalty = (
            stability.elevation_factor * ELEVATION_PENALTY
            + stability.valgus_factor * VALGUS_PENALTY
            + clamp(stability.pelvic_tilt_factor * PELVIC_TILT_PENALTY, 0.0, PELVIC_TILT_PENALTY)
        )
        efficiency = clamp(1.0 - penalty, 0.0, 1.0)
        effective_force = total * efficiency
        leaked = total - effective_force

        weights = self.weights_for(motion.pattern, region)
        top = max(weights.values())
        effective = {g: effective_force * w / top for g, w in weights.items()}
        compensation: dict[MuscleGroup, float] = {}

        def leak(group: MuscleGroup, amount: float) -> None:
            compensation[group] = compensation.get(group, 0.0) + amount

        # Upper body
        if stability.elevation_factor > 0.0:
            leak(MuscleGroup.TRAPEZIUS, total * stability.elevation_factor * TRAP_LEAK_GAIN)
        if stability.retraction_factor < RETRACTION_ROUNDED:
            arm_leak = total * ARM_LEAK_FRACTION
            leak(MuscleGroup.BICEPS, arm_leak * ARM_LEAK_BICEPS)
            leak(MuscleGroup.TRICEPS, arm_leak * ARM_LEAK_TRICEPS)
            for g in (MuscleGroup.LATS, MuscleGroup.PECTORALS):
                if g in effective:
                    effective[g] *= ROUNDED_PRIME_MOVER_DAMPING

        # Lower body
        if not side_view and stability.valgus_factor > 0.0:
            valgus_leak = min(total * stability.valgus_factor * VALGUS_LEAK_GAIN, total)
            glutes = max(effective.get(MuscleGroup.GLUTES, 0.0) - 0.5 * valgus_leak, 0.0)
            if MuscleGroup.GLUTES in effective:
                effective[MuscleGroup.GLUTES] = glutes
            leak(MuscleGroup.ADDUCTORS, valgus_leak * (1.5 if glutes < WEAK_GLUTE_THRESHOLD else 1.0))

        if motion.pattern is MotionPattern.HIP_DOMINANT and leaked > 0.0:
            quad_leak = leaked * HINGE_QUAD_LEAK
            leak(MuscleGroup.QUADRICEPS, quad_leak)
            if MuscleGroup.GLUTES in effective:
                effective[MuscleGroup.GLUTES] = max(effective[MuscleGroup.GLUTES] - quad_leak / 2.0, 0.0)

        # Trunk
        if stability.trunk_flexion_factor > 0.0:
            leak(MuscleGroup.ERECTOR_SPINAE, total * stability.trunk_flexion_factor * ERECTOR_LEAK_GAIN)

        result = EnergyLeakResult(
            effective={g: clamp(v, 0.0, 1.0) for g, v in effective.items()},
            compensation={g: clamp(v, 0.0, 1.0) for g, v in compensation.items()},
            efficiency=efficiency,
        )
        logger.debug(
            "Energy leak: pattern=%s total=%.3f efficiency=%.2f compensators=%s",
            motion.pattern.value, total, efficiency, sorted(g.value for g in compensation),
        )
        return result
