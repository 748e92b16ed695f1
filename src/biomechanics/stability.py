"""
Postural stability / compensation signals.

All metrics are dimensionless ratios computed on a normalized frame:

- elevation: 1 - neck / (clavicle * ELEVATION_NECK_RATIO), clamped to [0, 1].
  A short neck relative to shoulder width indicates a shrug.
- retraction: mean (elbow.z - shoulder.z). Positive means the elbows sit
  behind the shoulders (scapular retraction), negative means shoulders rounded
  forward.
- valgus: (ankle width - knee width) / ankle width, counted only when the knees
  are clearly narrower than the ankles or hips.
- pelvic tilt: |left_hip.y - right_hip.y| / hip width.
- trunk flexion: forward lean beyond a neutral band, scaled to [0, 1].

Valgus, pelvic tilt and elevation depend on the left/right spread, so they are
left at 0 in side view.
"""

import logging
import math

from pydantic import BaseModel, Field

from .config import (
    ELEVATION_NECK_RATIO,
    ELEVATION_WARNING,
    PELVIC_TILT_WARNING,
    RETRACTION_ROUNDED,
    TRUNK_FLEXION_WARNING,
    TRUNK_NEUTRAL_BAND_DEG,
    VALGUS_KNEE_ANKLE_RATIO,
    VALGUS_KNEE_HIP_RATIO,
    VALGUS_WARNING,
)
from .frame import LandmarkFrame
from .geometry import Point3D, vector_angle
from .keys import Landmark, Side
from .utils import clamp, safe_divide, sanitize

logger = logging.getLogger(__name__)

_UP = Point3D(0.0, -1.0, 0.0)  # Image y grows downward


class StabilityMetrics(BaseModel):
    """Per-frame compensation signals (bounded ratios, not degrees)."""

    elevation_factor: float = Field(default=0.0, ge=0.0, le=1.0,
                                    description="Shoulder shrug, 1.0 = neck fully collapsed")
    valgus_factor: float = Field(default=0.0, ge=0.0, le=1.0,
                                 description="Medial knee drift relative to the ankles")
    retraction_factor: float = Field(default=0.0, ge=-1.0, le=1.0,
                                     description="Elbow depth behind shoulder; negative = rounded")
    pelvic_tilt_factor: float = Field(default=0.0, ge=0.0, le=1.0,
                                      description="Hip line deviation from horizontal")
    trunk_flexion_factor: float = Field(default=0.0, ge=0.0, le=1.0,
                                        description="Forward trunk lean beyond the neutral band")


class StabilityEstimator:
    """Derive :class:`StabilityMetrics` from a normalized frame."""

    def estimate(self, frame: LandmarkFrame, side_view: bool = False) -> StabilityMetrics:
        return StabilityMetrics(
            elevation_factor=0.0 if side_view else self._elevation(frame),
            valgus_factor=0.0 if side_view else self._valgus(frame),
            retraction_factor=self._retraction(frame),
            pelvic_tilt_factor=0.0 if side_view else self._pelvic_tilt(frame),
            trunk_flexion_factor=self._trunk_flexion(frame),
        )

    @staticmethod
    def _elevation(frame: LandmarkFrame) -> float:
        ls, rs = frame.pair("shoulder")
        if ls is None or rs is None:
            return 0.0
        clavicle = ls.distance_to(rs)

        necks = []
        for side, shoulder in ((Side.LEFT, ls), (Side.RIGHT, rs)):
            ear = frame.side(side, "ear")
            if ear is not None:
                necks.append(ear.distance_to(shoulder))
        if not necks:
            nose = frame.get(Landmark.NOSE)
            if nose is None:
                return 0.0
            necks.append(nose.distance_to(ls.midpoint(rs)))
        neck = sum(necks) / len(necks)

        ratio = safe_divide(neck, clavicle * ELEVATION_NECK_RATIO, default=1.0)
        return clamp(1.0 - ratio, 0.0, 1.0)

    @staticmethod
    def _retraction(frame: LandmarkFrame) -> float:
        offsets = []
        for side in Side:
            shoulder = frame.side(side, "shoulder")
            elbow = frame.side(side, "elbow")
            if shoulder is not None and elbow is not None:
                offsets.append(elbow.z - shoulder.z)
        if not offsets:
            return 0.0
        return clamp(sanitize(sum(offsets) / len(offsets)), -1.0, 1.0)

    @staticmethod
    def _valgus(frame: LandmarkFrame) -> float:
        lh, rh = frame.pair("hip")
        lk, rk = frame.pair("knee")
        la, ra = frame.pair("ankle")
        if any(p is None for p in (lh, rh, lk, rk, la, ra)):
            return 0.0

        hip_width = lh.distance_to(rh)
        knee_width = lk.flatten().distance_to(rk.flatten())
        ankle_width = la.flatten().distance_to(ra.flatten())
        if ankle_width <= 0.0:
            return 0.0

        if knee_width < ankle_width * VALGUS_KNEE_ANKLE_RATIO or knee_width < hip_width * VALGUS_KNEE_HIP_RATIO:
            return clamp((ankle_width - knee_width) / ankle_width, 0.0, 1.0)
        return 0.0

    @staticmethod
    def _pelvic_tilt(frame: LandmarkFrame) -> float:
        lh, rh = frame.pair("hip")
        if lh is None or rh is None:
            return 0.0
        width = lh.flatten().distance_to(rh.flatten())
        return clamp(safe_divide(abs(lh.y - rh.y), width), 0.0, 1.0)

    @staticmethod
    def _trunk_flexion(frame: LandmarkFrame) -> float:
        lean = trunk_lean_degrees(frame)
        return clamp((lean - TRUNK_NEUTRAL_BAND_DEG) / (90.0 - TRUNK_NEUTRAL_BAND_DEG), 0.0, 1.0)


def trunk_lean_degrees(frame: LandmarkFrame) -> float:
    """Trunk angle from vertical in degrees (0.0 when undefined)."""
    chest = frame.center("shoulder")
    pelvis = frame.center("hip")
    if chest is None or pelvis is None:
        return 0.0
    return math.degrees(vector_angle(chest.sub(pelvis), _UP))


def stability_warnings(metrics: StabilityMetrics) -> list[str]:
    """Return human-readable warnings for metrics beyond their thresholds."""
    warnings: list[str] = []
    if metrics.elevation_factor > ELEVATION_WARNING:
        warnings.append("Shoulder shrug detected")
    if metrics.valgus_factor > VALGUS_WARNING:
        warnings.append("Knee valgus detected")
    if metrics.retraction_factor < RETRACTION_ROUNDED:
        warnings.append("Rounded shoulders detected")
    if metrics.pelvic_tilt_factor > PELVIC_TILT_WARNING:
        warnings.append("Pelvic tilt detected")
    if metrics.trunk_flexion_factor > TRUNK_FLEXION_WARNING:
        warnings.append("Excessive trunk flexion")
    return warnings
