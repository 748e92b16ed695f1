"""
Landmark frame container.

A ``LandmarkFrame`` maps :class:`Landmark` keys to :class:`Point3D` values for a
single time instant. Frames produced by the normalizer also remember the
origin and scale of the body-centric transform so that global translation
(e.g. the pelvis dropping during a squat) can still be recovered.
"""

import logging
from typing import Iterator, Mapping, Optional

import numpy as np

from .geometry import Point3D
from .keys import MEDIAPIPE_INDEX, NUM_MEDIAPIPE_LANDMARKS, Landmark, Side

logger = logging.getLogger(__name__)


class LandmarkFrame:
    """Immutable mapping of tracked landmarks for one frame."""

    __slots__ = ("_points", "origin", "scale")

    def __init__(
        self,
        points: Mapping[Landmark, Point3D],
        origin: Optional[Point3D] = None,
        scale: float = 1.0,
    ):
        self._points: dict[Landmark, Point3D] = dict(points)
        self.origin = origin
        self.scale = float(scale)

    # -- construction -------------------------------------------------------

    @classmethod
    def from_array(cls, landmarks) -> "LandmarkFrame":
        """Build a frame from a BlazePose ``(33, 4)`` or ``(33, 3)`` array.

        Args:
            landmarks: Array-like of ``(x, y, z[, visibility])`` rows in the
                MediaPipe landmark order.

        Raises:
            ValueError: If the array does not have 33 rows of 3 or 4 values.
        """
        arr = np.asarray(landmarks, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] != NUM_MEDIAPIPE_LANDMARKS or arr.shape[1] not in (3, 4):
            raise ValueError(
                f"Expected landmark array of shape (33, 3) or (33, 4), got {arr.shape}"
            )
        points = {}
        for lm, idx in MEDIAPIPE_INDEX.items():
            conf = arr[idx, 3] if arr.shape[1] == 4 else 1.0
            points[lm] = Point3D.from_array(arr[idx, :3], conf)
        return cls(points)

    @classmethod
    def from_mapping(cls, landmarks: Mapping) -> "LandmarkFrame":
        """Build a frame from ``name -> (x, y, z[, confidence])`` entries.

        Names may be :class:`Landmark` members or their string values. Names
        outside the tracked set are ignored.
        """
        points = {}
        for name, value in landmarks.items():
            key = name if isinstance(name, Landmark) else Landmark.lookup(name)
            if key is None:
                logger.debug("Ignoring unknown landmark key %r", name)
                continue
            if isinstance(value, Point3D):
                points[key] = value
            else:
                vals = [float(v) for v in value]
                if len(vals) < 3:
                    raise ValueError(
                        f"Landmark {name!r} needs (x, y, z[, confidence]), got {len(vals)} values"
                    )
                conf = vals[3] if len(vals) > 3 else 1.0
                points[key] = Point3D(vals[0], vals[1], vals[2], conf)
        return cls(points)

    # -- access -------------------------------------------------------------

    def get(self, key: Landmark) -> Optional[Point3D]:
        return self._points.get(key)

    def side(self, side: Side, part: str) -> Optional[Point3D]:
        return self._points.get(Landmark.sided(side, part))

    def pair(self, part: str) -> tuple[Optional[Point3D], Optional[Point3D]]:
        """Return the ``(left, right)`` points for a body part name."""
        return self.side(Side.LEFT, part), self.side(Side.RIGHT, part)

    def center(self, part: str) -> Optional[Point3D]:
        """Midpoint of a left/right pair, or the one side that is present."""
        left, right = self.pair(part)
        if left is not None and right is not None:
            return left.midpoint(right)
        return left if left is not None else right

    def world(self, key: Landmark) -> Optional[Point3D]:
        """Landmark position with the normalizer's translation restored.

        Coordinates stay in body-scale units, so thresholds remain
        scale-invariant while global movement becomes visible.
        """
        p = self._points.get(key)
        if p is None or self.origin is None:
            return p
        return p.add(self.origin.scale(1.0 / self.scale))

    def world_center(self, part: str) -> Optional[Point3D]:
        """World-space counterpart of :meth:`center`."""
        left = self.world(Landmark.sided(Side.LEFT, part))
        right = self.world(Landmark.sided(Side.RIGHT, part))
        if left is not None and right is not None:
            return left.midpoint(right)
        return left if left is not None else right

    def reliable(self, threshold: float) -> "LandmarkFrame":
        """Copy of the frame without landmarks below ``threshold`` confidence."""
        kept = {
            k: p for k, p in self._points.items()
            if p.confidence >= threshold and np.isfinite(p.as_array()).all()
        }
        return LandmarkFrame(kept, self.origin, self.scale)

    def __contains__(self, key) -> bool:
        return key in self._points

    def __iter__(self) -> Iterator[Landmark]:
        return iter(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def items(self):
        return self._points.items()

    def __repr__(self) -> str:
        return f"LandmarkFrame({len(self._points)} landmarks, scale={self.scale:.3f})"
