"""
3D point type and angle helpers.

Angles follow the usual three-point convention: ``angle(a, b, c)`` is the angle
at vertex ``b`` between the rays ``b -> a`` and ``b -> c``, in radians.
"""

from typing import NamedTuple

import numpy as np


class Point3D(NamedTuple):
    """Immutable landmark coordinate with its detection confidence."""

    x: float
    y: float
    z: float
    confidence: float = 1.0

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, xyz, confidence: float = 1.0) -> "Point3D":
        return cls(float(xyz[0]), float(xyz[1]), float(xyz[2]), float(confidence))

    # Arithmetic keeps the confidence of the left operand.
    def sub(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x - other.x, self.y - other.y, self.z - other.z, self.confidence)

    def add(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x + other.x, self.y + other.y, self.z + other.z, self.confidence)

    def scale(self, factor: float) -> "Point3D":
        return Point3D(self.x * factor, self.y * factor, self.z * factor, self.confidence)

    def dot(self, other: "Point3D") -> float:
        return float(np.dot(self.as_array(), other.as_array()))

    def length(self) -> float:
        return float(np.linalg.norm(self.as_array()))

    def normalize(self) -> "Point3D":
        """Unit vector in the same direction; a zero vector is returned as-is."""
        n = self.length()
        if n < 1e-12:
            return self
        return self.scale(1.0 / n)

    def midpoint(self, other: "Point3D") -> "Point3D":
        return Point3D(
            (self.x + other.x) / 2.0,
            (self.y + other.y) / 2.0,
            (self.z + other.z) / 2.0,
            (self.confidence + other.confidence) / 2.0,
        )

    def distance_to(self, other: "Point3D") -> float:
        return self.sub(other).length()

    def flatten(self) -> "Point3D":
        """Drop the depth component (image-plane projection)."""
        return Point3D(self.x, self.y, 0.0, self.confidence)


def _angle_between(v1: np.ndarray, v2: np.ndarray) -> float:
    with np.errstate(over="ignore", invalid="ignore"):
        n1 = np.linalg.norm(v1)
        n2 = np.linalg.norm(v2)
        if n1 < 1e-6 or n2 < 1e-6:
            return 0.0
        ratio = np.dot(v1, v2) / (n1 * n2)
    # Overflowing magnitudes give inf or nan, which arccos cannot take
    if not np.isfinite(ratio):
        return 0.0
    cos_angle = np.clip(ratio, -1.0, 1.0)
    return float(np.arccos(cos_angle))


def angle(a: Point3D, b: Point3D, c: Point3D) -> float:
    """Angle at vertex ``b`` in radians, within [0, pi].

    Zero-length arms (coincident points) yield 0.0 instead of raising.
    """
    return _angle_between(a.as_array() - b.as_array(), c.as_array() - b.as_array())


def angle_2d(a: Point3D, b: Point3D, c: Point3D) -> float:
    """Same as :func:`angle` but ignoring depth."""
    return angle(a.flatten(), b.flatten(), c.flatten())


def vector_angle(v1: Point3D, v2: Point3D) -> float:
    """Angle between two direction vectors in radians."""
    return _angle_between(v1.as_array(), v2.as_array())


def cosine_similarity(v1: Point3D, v2: Point3D) -> float:
    """Cosine of the angle between two vectors; 0.0 when either is degenerate."""
    with np.errstate(over="ignore", invalid="ignore"):
        n1 = v1.length()
        n2 = v2.length()
        if n1 < 1e-6 or n2 < 1e-6:
            return 0.0
        ratio = v1.dot(v2) / (n1 * n2)
    if not np.isfinite(ratio):
        return 0.0
    return float(np.clip(ratio, -1.0, 1.0))
