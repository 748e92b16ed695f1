"""
Stateful motion pattern analyzer.

Keeps a short rolling window of normalized frames and classifies the current
frame into a movement pattern. Classification steps:

    1. Core landmarks (a shoulder and a hip) missing -> history reset, STABILIZING
    2. Fewer than WARMUP_FRAMES buffered            -> STABILIZING
    3. Mean landmark travel below the noise floor   -> STABILIZING
       (STATIC_HOLD in ISOMETRIC mode)
    4. Lower- vs upper-body dominance by joint angle span:
         lower: hip vs knee span plus pelvis travel -> HIP/KNEE_DOMINANT, VERTICAL
         upper: wrist travel plane plus reach change -> {VERTICAL,HORIZONTAL}_{PUSH,PULL}

Each analysis owns its own analyzer; call :meth:`MotionAnalyzer.reset` before
feeding an unrelated sequence.
"""

import logging
import math
from collections import deque
from typing import NamedTuple, Optional

import numpy as np
from pydantic import BaseModel, Field

from .config import (
    DEFAULT_DT,
    DEPTH_INTENT_GAIN,
    HIP_TRAVEL_THRESHOLD,
    ISOKINETIC_TEMPO_CV,
    ISOMETRIC_DISPLACEMENT,
    ISOMETRIC_SWAY_DEG,
    MAX_DT,
    MIN_PATTERN_SPAN_DEG,
    MOTION_WINDOW,
    NOISE_DISPLACEMENT,
    REACH_CHANGE_THRESHOLD,
    REACH_INTENT_GAIN,
    WARMUP_FRAMES,
)
from .frame import LandmarkFrame
from .keys import ContractionMode, Joint, JointType, Landmark, MotionPattern, MovementState, Side
from .stability import trunk_lean_degrees
from .utils import clamp, effective_dt, sanitize

logger = logging.getLogger(__name__)

_TRACKED: tuple[Landmark, ...] = (
    Landmark.LEFT_SHOULDER, Landmark.RIGHT_SHOULDER,
    Landmark.LEFT_ELBOW, Landmark.RIGHT_ELBOW,
    Landmark.LEFT_WRIST, Landmark.RIGHT_WRIST,
    Landmark.LEFT_HIP, Landmark.RIGHT_HIP,
    Landmark.LEFT_KNEE, Landmark.RIGHT_KNEE,
    Landmark.LEFT_ANKLE, Landmark.RIGHT_ANKLE,
)


class MotionResult(BaseModel):
    """Per-frame motion classification."""

    pattern: MotionPattern = Field(description="Detected movement pattern")
    movement_state: MovementState = Field(
        default=MovementState.ISOMETRIC, description="Concentric / eccentric / isometric phase"
    )
    intent: float = Field(
        default=0.0, ge=-1.0, le=1.0, description="Push (+) / pull (-) intent"
    )
    warnings: list[str] = Field(default_factory=list, description="Contraction-mode warnings")

    @property
    def is_stabilizing(self) -> bool:
        return self.pattern is MotionPattern.STABILIZING


class _Sample(NamedTuple):
    frame: LandmarkFrame
    angles_deg: dict[Joint, float]
    lean_deg: float


def _reach(frame: LandmarkFrame) -> Optional[float]:
    """Mean shoulder-to-wrist distance over the visible sides."""
    dists = []
    for side in Side:
        shoulder = frame.side(side, "shoulder")
        wrist = frame.side(side, "wrist")
        if shoulder is not None and wrist is not None:
            dists.append(shoulder.distance_to(wrist))
    return sum(dists) / len(dists) if dists else None


def _wrist_depth(frame: LandmarkFrame) -> Optional[float]:
    """Mean wrist depth relative to its shoulder (negative = toward camera)."""
    depths = []
    for side in Side:
        shoulder = frame.side(side, "shoulder")
        wrist = frame.side(side, "wrist")
        if shoulder is not None and wrist is not None:
            depths.append(wrist.z - shoulder.z)
    return sum(depths) / len(depths) if depths else None


def _mean_displacement(prev: LandmarkFrame, cur: LandmarkFrame) -> float:
    steps = []
    for key in _TRACKED:
        a = prev.world(key)
        b = cur.world(key)
        if a is not None and b is not None:
            steps.append(a.distance_to(b))
    return sanitize(sum(steps) / len(steps)) if steps else 0.0


class MotionAnalyzer:
    """Classify frames into motion patterns using a rolling history."""

    def __init__(
        self,
        contraction_mode: ContractionMode = ContractionMode.ISOTONIC,
        window: int = MOTION_WINDOW,
        warmup: int = WARMUP_FRAMES,
    ):
        if warmup < 2 or window < warmup:
            raise ValueError(f"Need 2 <= warmup <= window, got warmup={warmup}, window={window}")
        self.contraction_mode = contraction_mode
        self.warmup = warmup
        self._history: deque[_Sample] = deque(maxlen=window)
        self._steps: deque[float] = deque(maxlen=window - 1)
        self._speeds: deque[float] = deque(maxlen=window - 1)

    def reset(self) -> None:
        self._history.clear()
        self._steps.clear()
        self._speeds.clear()

    @property
    def history_length(self) -> int:
        return len(self._history)

    def update(self, frame: LandmarkFrame, angles: dict[Joint, float], dt: float) -> MotionResult:
        """Add ``frame`` to the history and classify it.

        Args:
            frame: Normalized landmark frame.
            angles: Joint angles (radians) of the same frame.
            dt: Seconds since the previous frame.

        Returns:
            :class:`MotionResult` for this frame.
        """
        if frame.center("shoulder") is None or frame.center("hip") is None:
            if self._history:
                logger.debug("Core landmarks lost; motion history reset")
            self.reset()
            return MotionResult(pattern=MotionPattern.STABILIZING)

        prev = self._history[-1].frame if self._history else None
        self._history.append(
            _Sample(frame, {j: math.degrees(a) for j, a in angles.items()}, trunk_lean_degrees(frame))
        )
        if prev is not None:
            step = _mean_displacement(prev, frame)
            self._steps.append(step)
            self._speeds.append(step / effective_dt(dt, DEFAULT_DT, MAX_DT))

        if len(self._history) < self.warmup:
            return MotionResult(pattern=MotionPattern.STABILIZING)

        state = self._movement_state(prev, frame)
        intent = self._intent(prev, frame, dt)
        warnings = self._mode_warnings()

        activity = float(np.mean(self._steps)) if self._steps else 0.0
        if activity < NOISE_DISPLACEMENT:
            if self.contraction_mode is ContractionMode.ISOMETRIC:
                return MotionResult(pattern=MotionPattern.STATIC_HOLD,
                                    movement_state=MovementState.ISOMETRIC,
                                    warnings=warnings)
            return MotionResult(pattern=MotionPattern.STABILIZING)

        return MotionResult(pattern=self._classify(), movement_state=state,
                            intent=intent, warnings=warnings)

    # -- classification ------------------------------------------------------

    def _span(self, joint_type: JointType) -> float:
        """Mean (max - min) angle in degrees over the window, across sides."""
        spans = []
        for side in Side:
            joint = Joint.of(joint_type, side)
            values = [s.angles_deg[joint] for s in self._history if joint in s.angles_deg]
            if len(values) >= 2:
                spans.append(max(values) - min(values))
        return sum(spans) / len(spans) if spans else 0.0

    def _classify(self) -> MotionPattern:
        hip_span = self._span(JointType.HIP)
        knee_span = self._span(JointType.KNEE)
        lower = max(hip_span, knee_span)
        upper = max(self._span(JointType.SHOULDER), self._span(JointType.ELBOW))

        if lower >= upper and lower > MIN_PATTERN_SPAN_DEG:
            return self._lower_pattern(hip_span, knee_span)
        return self._upper_pattern()

    def _lower_pattern(self, hip_span: float, knee_span: float) -> MotionPattern:
        first = self._history[0].frame.world_center("hip")
        last = self._history[-1].frame.world_center("hip")
        travel = abs(last.y - first.y)

        if travel > HIP_TRAVEL_THRESHOLD and knee_span > hip_span:
            return MotionPattern.KNEE_DOMINANT
        if travel < HIP_TRAVEL_THRESHOLD and hip_span > knee_span:
            return MotionPattern.HIP_DOMINANT
        return MotionPattern.VERTICAL

    def _upper_pattern(self) -> MotionPattern:
        travel = np.zeros(3)
        samples = list(self._history)
        for a, b in zip(samples, samples[1:]):
            wa = a.frame.world_center("wrist")
            wb = b.frame.world_center("wrist")
            if wa is not None and wb is not None:
                travel += np.abs(wb.as_array() - wa.as_array())
        vertical = travel[1] > travel[0] + travel[2]

        first = _reach(samples[0].frame)
        last = _reach(samples[-1].frame)
        change = (last - first) if first is not None and last is not None else 0.0

        if change > REACH_CHANGE_THRESHOLD:
            return MotionPattern.VERTICAL_PUSH if vertical else MotionPattern.HORIZONTAL_PUSH
        if change < -REACH_CHANGE_THRESHOLD:
            return MotionPattern.VERTICAL_PULL if vertical else MotionPattern.HORIZONTAL_PULL
        return MotionPattern.VERTICAL if vertical else MotionPattern.HORIZONTAL

    @staticmethod
    def _movement_state(prev: Optional[LandmarkFrame], cur: LandmarkFrame) -> MovementState:
        if prev is None:
            return MovementState.ISOMETRIC
        a = prev.world_center("shoulder").midpoint(prev.world_center("hip"))
        b = cur.world_center("shoulder").midpoint(cur.world_center("hip"))
        dy = b.y - a.y
        if abs(dy) < ISOMETRIC_DISPLACEMENT:
            return MovementState.ISOMETRIC
        # Image y grows downward: rising trunk is the concentric phase.
        return MovementState.CONCENTRIC if dy < 0 else MovementState.ECCENTRIC

    @staticmethod
    def _intent(prev: Optional[LandmarkFrame], cur: LandmarkFrame, dt: float) -> float:
        """Signed push/pull intent from reach velocity and wrist depth velocity."""
        if prev is None:
            return 0.0
        step_dt = effective_dt(dt, DEFAULT_DT, MAX_DT)
        score = 0.0
        r0, r1 = _reach(prev), _reach(cur)
        if r0 is not None and r1 is not None:
            score += REACH_INTENT_GAIN * (r1 - r0) / step_dt
        d0, d1 = _wrist_depth(prev), _wrist_depth(cur)
        if d0 is not None and d1 is not None:
            score -= DEPTH_INTENT_GAIN * (d1 - d0) / step_dt
        return clamp(float(np.tanh(sanitize(score))), -1.0, 1.0)

    def _mode_warnings(self) -> list[str]:
        warnings: list[str] = []
        if self.contraction_mode is ContractionMode.ISOMETRIC:
            leans = [s.lean_deg for s in self._history]
            if len(leans) >= 2 and float(np.std(leans)) > ISOMETRIC_SWAY_DEG:
                warnings.append("Trunk sway during hold")
        elif self.contraction_mode is ContractionMode.ISOKINETIC and len(self._speeds) >= 2:
            speeds = np.asarray(self._speeds)
            mean = float(np.mean(speeds))
            if mean >= NOISE_DISPLACEMENT / DEFAULT_DT:
                cv = float(np.std(speeds)) / mean
                if cv > ISOKINETIC_TEMPO_CV:
                    warnings.append("Uneven tempo for isokinetic set")
        return warnings
