"""
Per-frame scoring facade.

An :class:`AnalysisSession` owns all cross-frame state of one analysis (the
motion analyzer history and one joint controller per joint). Frames must be
fed strictly in temporal order; independent analyses need independent
sessions.

Per frame:
    1. Reliability filter + normalization
    2. View classification, joint angles, stability metrics
    3. Motion analysis (early return of the empty result when STABILIZING)
    4. Joint controller loop, upstream joints first
    5. Energy leak engine
    6. Side attribution, tension heuristics, reciprocal inhibition
    7. Side-view mirroring, region gain, score floor, sanitization
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .angles import compute_joint_angles, is_side_view
from .config import (
    ACTIVE_JOINT_NORMALIZER,
    CONFIDENCE_THRESHOLD,
    HOLD_FORCE_WEIGHT,
    REFERENCE_ANGULAR_SPEED,
)
from .energy_leak import EnergyLeakEngine
from .frame import LandmarkFrame
from .heuristics import (
    apply_reciprocal_inhibition,
    apply_region_gain,
    apply_score_floor,
    apply_tension_heuristics,
    attribute_sides,
    mirror_symmetric_pairs,
    to_percent_map,
)
from .joint_controller import JointController, build_joint_controllers
from .keys import JOINT_ORDER, BodyRegion, ContractionMode, Joint, MotionPattern, Side
from .motion import MotionAnalyzer
from .normalizer import LandmarkNormalizer
from .stability import StabilityEstimator, stability_warnings
from .utils import clamp, sanitize

logger = logging.getLogger(__name__)

UNKNOWN_PATTERN = "UNKNOWN"


# ============================================================================
# Context & output models
# ============================================================================

class AnalysisContext(BaseModel):
    """Session-level settings supplied by the capture layer."""

    model_config = ConfigDict(frozen=True)

    target_body_region: BodyRegion = Field(
        default=BodyRegion.FULL, description="UPPER, LOWER or FULL"
    )
    contraction_mode: ContractionMode = Field(
        default=ContractionMode.ISOTONIC, description="ISOTONIC, ISOMETRIC or ISOKINETIC"
    )

    @field_validator("target_body_region", mode="before")
    @classmethod
    def _parse_region(cls, v):
        return BodyRegion.parse(v)

    @field_validator("contraction_mode", mode="before")
    @classmethod
    def _parse_mode(cls, v):
        return ContractionMode.parse(v)


class FrameResult(BaseModel):
    """Output record for one frame (scores on the 0..100 scale)."""

    detailed_muscle_usage: dict[str, float] = Field(default_factory=dict)
    rom_data: dict[str, float] = Field(default_factory=dict)
    biomech_pattern: str = Field(default=UNKNOWN_PATTERN)
    stability_warning: str = Field(default="")

    @classmethod
    def empty(cls) -> "FrameResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return (not self.detailed_muscle_usage and not self.rom_data
                and self.biomech_pattern == UNKNOWN_PATTERN and not self.stability_warning)

    def muscle(self, key) -> float:
        """Score for a muscle key; unknown keys return 0.0."""
        return self.detailed_muscle_usage.get(getattr(key, "value", str(key)), 0.0)

    def rom(self, key) -> float:
        """ROM percentage for a joint key; unknown keys return 0.0."""
        return self.rom_data.get(getattr(key, "value", str(key)), 0.0)

    def to_dict(self) -> dict:
        return self.model_dump()


FrameInput = Union[LandmarkFrame, np.ndarray, dict]


# ============================================================================
# Session
# ============================================================================

class AnalysisSession:
    """Stateful per-frame biomechanics scorer for one ordered frame stream."""

    def __init__(
        self,
        context: Optional[AnalysisContext] = None,
        joint_config_path: Optional[Path] = None,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
    ):
        self.context = context or AnalysisContext()
        self.confidence_threshold = confidence_threshold
        self.normalizer = LandmarkNormalizer()
        self.stability = StabilityEstimator()
        self.energy_leak = EnergyLeakEngine()
        self.motion = MotionAnalyzer(self.context.contraction_mode)
        self.controllers: dict[Joint, JointController] = build_joint_controllers(joint_config_path)
        self.frames_processed = 0
        logger.info(
            "Analysis session started (region=%s, mode=%s, confidence>=%.2f)",
            self.context.target_body_region.value,
            self.context.contraction_mode.value,
            self.confidence_threshold,
        )

    def reset(self) -> None:
        """Drop all cross-frame state before feeding an unrelated sequence."""
        self.motion.reset()
        for controller in self.controllers.values():
            controller.reset()
        self.frames_processed = 0
        logger.info("Analysis session reset")

    @staticmethod
    def _coerce_frame(frame: FrameInput) -> LandmarkFrame:
        if frame is None:
            raise ValueError("Landmark frame is None")
        if isinstance(frame, LandmarkFrame):
            return frame
        if isinstance(frame, np.ndarray):
            return LandmarkFrame.from_array(frame)
        if isinstance(frame, dict):
            return LandmarkFrame.from_mapping(frame)
        raise ValueError(f"Unsupported landmark frame type: {type(frame).__name__}")

    def _force_weight(self, controller: JointController, angle: float, dt: float) -> float:
        if self.context.contraction_mode is ContractionMode.ISOMETRIC:
            return HOLD_FORCE_WEIGHT
        speed = abs(controller.angular_velocity(angle, dt))
        return clamp(speed / REFERENCE_ANGULAR_SPEED, 0.0, 1.0)

    def process_frame(self, frame: FrameInput, dt: float) -> FrameResult:
        """Score one frame.

        Args:
            frame: ``LandmarkFrame``, BlazePose ``(33, 4)`` array, or
                ``name -> (x, y, z, confidence)`` mapping.
            dt: Seconds since the previous frame of this session.

        Returns:
            :class:`FrameResult`; the empty result while the motion analyzer
            reports ``STABILIZING``.

        Raises:
            ValueError: If ``frame`` is None or not a supported frame type.
        """
        raw = self._coerce_frame(frame)
        self.frames_processed += 1

        # 1. Reliability + normalization
        landmarks = self.normalizer.normalize(raw.reliable(self.confidence_threshold))

        # 2. Per-frame geometry
        side_view = is_side_view(landmarks)
        angles = compute_joint_angles(landmarks, side_view)
        metrics = self.stability.estimate(landmarks, side_view)
        for joint, controller in self.controllers.items():
            if joint not in angles:
                controller.forget()

        # 3. Motion
        motion = self.motion.update(landmarks, angles, dt)
        if motion.pattern is MotionPattern.STABILIZING:
            for joint, value in angles.items():
                self.controllers[joint].track(value)
            logger.debug("Frame %d: stabilizing", self.frames_processed)
            return FrameResult.empty()

        # 4. Joint controllers, upstream first
        stresses: dict[Joint, float] = {}
        for joint_type in JOINT_ORDER:
            for side in Side:
                joint = Joint.of(joint_type, side)
                if joint not in angles:
                    continue
                controller = self.controllers[joint]
                upstream_type = controller.params.upstream
                upstream = (
                    stresses.get(Joint.of(upstream_type, side)) if upstream_type is not None else None
                )
                weight = self._force_weight(controller, angles[joint], dt)
                stresses[joint] = controller.step(angles[joint], dt, weight, upstream)

        total_force = clamp(sum(stresses.values()) / ACTIVE_JOINT_NORMALIZER, 0.0, 1.0)

        # 5. Energy leak
        region = self.context.target_body_region
        leak = self.energy_leak.compute(total_force, metrics, motion, region, side_view)

        # 6-7. Muscle map post-processing
        usage = attribute_sides(leak.combined(), stresses)
        usage = apply_tension_heuristics(usage, landmarks, angles, total_force, side_view)
        usage = apply_reciprocal_inhibition(usage, motion.intent)
        if side_view:
            usage = mirror_symmetric_pairs(usage)
        usage = apply_region_gain(usage, region)
        usage = apply_score_floor(usage)

        rom = {joint.value: round(sanitize(self.controllers[joint].rom_percent), 1) for joint in angles}
        warnings = stability_warnings(metrics) + motion.warnings

        logger.debug(
            "Frame %d: side_view=%s pattern=%s state=%s force=%.3f",
            self.frames_processed, side_view, motion.pattern.value,
            motion.movement_state.value, total_force,
        )
        return FrameResult(
            detailed_muscle_usage=to_percent_map(usage),
            rom_data=rom,
            biomech_pattern=motion.pattern.value,
            stability_warning="; ".join(warnings),
        )


def analyze_sequence(
    frames: Iterable[FrameInput],
    dt: Union[float, Sequence[float]],
    context: Optional[AnalysisContext] = None,
    joint_config_path: Optional[Path] = None,
) -> list[FrameResult]:
    """Run a fresh session over an ordered frame sequence.

    Args:
        frames: Frames in temporal order.
        dt: Constant frame interval, or one interval per frame.
        context: Session context (defaults to FULL / ISOTONIC).
        joint_config_path: Optional joint parameter YAML override.

    Returns:
        One :class:`FrameResult` per input frame.
    """
    session = AnalysisSession(context, joint_config_path)
    frames = list(frames)
    if isinstance(dt, (int, float)):
        dts = [float(dt)] * len(frames)
    else:
        dts = [float(d) for d in dt]
        if len(dts) != len(frames):
            raise ValueError(f"Got {len(dts)} dt values for {len(frames)} frames")

    results = [session.process_frame(f, d) for f, d in zip(frames, dts)]
    stabilizing = sum(1 for r in results if r.is_empty)
    logger.info("Analyzed %d frames (%d stabilizing)", len(results), stabilizing)
    return results
