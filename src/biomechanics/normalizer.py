"""
Body-centric landmark normalization.

Pelvis-centred, torso-scaled coordinates make every downstream threshold
independent of the subject's distance from the camera.
"""

import logging

import numpy as np

from .config import MIN_BODY_SCALE
from .frame import LandmarkFrame

logger = logging.getLogger(__name__)


class LandmarkNormalizer:
    """Recentre a frame on the pelvis and rescale it by the body span."""

    def __init__(self, min_scale: float = MIN_BODY_SCALE):
        self.min_scale = min_scale

    def body_scale(self, frame: LandmarkFrame) -> float:
        """Return ``max(torso length, shoulder width)`` or 0.0 if undefined.

        The shoulder width term keeps the scale stable when the torso is
        foreshortened (subject leaning toward the camera).
        """
        chest = frame.center("shoulder")
        pelvis = frame.center("hip")
        if chest is None or pelvis is None:
            return 0.0
        torso = chest.distance_to(pelvis)
        left, right = frame.pair("shoulder")
        width = left.distance_to(right) if left is not None and right is not None else 0.0
        return max(torso, width)

    def normalize(self, frame: LandmarkFrame) -> LandmarkFrame:
        """Return a pelvis-centred copy scaled to unit body span.

        Frames without a usable shoulder/hip anchor are returned unmodified.
        """
        pelvis = frame.center("hip")
        scale = self.body_scale(frame)
        if pelvis is None or not np.isfinite(scale) or scale < self.min_scale:
            logger.debug("Skipping normalization (scale=%.3g)", scale)
            return frame

        inv = 1.0 / scale
        points = {key: p.sub(pelvis).scale(inv) for key, p in frame.items()}
        return LandmarkFrame(points, origin=pelvis, scale=scale)
