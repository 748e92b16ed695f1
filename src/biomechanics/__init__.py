"""
Biomechanics engine for per-frame muscle and joint usage estimation.

Turns an ordered stream of pose landmark frames into per-frame records of
muscle usage, joint range of motion, movement pattern and stability warnings:

    Normalizer -> {Angles, Stability, MotionAnalyzer} -> JointControllers
    -> EnergyLeakEngine -> heuristics -> FrameResult
"""

from .frame import LandmarkFrame
from .geometry import Point3D, angle
from .keys import BodyRegion, ContractionMode, Joint, Landmark, MotionPattern, Muscle
from .session import AnalysisContext, AnalysisSession, FrameResult, analyze_sequence
from .utils import sanitize

__all__ = [
    "AnalysisContext",
    "AnalysisSession",
    "BodyRegion",
    "ContractionMode",
    "FrameResult",
    "Joint",
    "Landmark",
    "LandmarkFrame",
    "MotionPattern",
    "Muscle",
    "Point3D",
    "analyze_sequence",
    "angle",
    "sanitize",
]
