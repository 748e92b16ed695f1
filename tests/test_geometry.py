"""Tests for geometry primitives and numeric safety helpers.

Covers:
  - Point3D arithmetic and immutability
  - Three-point angle edge cases (coincident, antiparallel, right angle)
  - Image-plane angles and cosine similarity
  - sanitize / clamp / safe_divide / to_percent / effective_dt
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.biomechanics.geometry import Point3D, angle, angle_2d, cosine_similarity, vector_angle
from src.biomechanics.utils import clamp, effective_dt, safe_divide, sanitize, to_percent


# ============================================================================
# Point3D
# ============================================================================

class TestPoint3D:
    def test_arithmetic_returns_new_instances(self):
        a = Point3D(1.0, 2.0, 3.0, 0.8)
        b = Point3D(0.5, 0.5, 0.5, 0.4)
        assert a.sub(b) == Point3D(0.5, 1.5, 2.5, 0.8)
        assert a.add(b) == Point3D(1.5, 2.5, 3.5, 0.8)
        assert a.scale(2.0) == Point3D(2.0, 4.0, 6.0, 0.8)
        assert a == Point3D(1.0, 2.0, 3.0, 0.8)

    def test_immutable(self):
        p = Point3D(0.0, 0.0, 0.0)
        with pytest.raises(AttributeError):
            p.x = 1.0

    def test_dot_and_distance(self):
        a = Point3D(1.0, 0.0, 0.0)
        b = Point3D(0.0, 3.0, 4.0)
        assert a.dot(b) == 0.0
        np.testing.assert_allclose(a.distance_to(b), math.sqrt(26.0))

    def test_midpoint_averages_confidence(self):
        m = Point3D(0.0, 0.0, 0.0, 1.0).midpoint(Point3D(2.0, 4.0, 6.0, 0.5))
        assert m == Point3D(1.0, 2.0, 3.0, 0.75)

    def test_normalize(self):
        n = Point3D(3.0, 0.0, 4.0).normalize()
        np.testing.assert_allclose(n.length(), 1.0)
        np.testing.assert_allclose([n.x, n.z], [0.6, 0.8])

    def test_normalize_zero_vector_is_identity(self):
        z = Point3D(0.0, 0.0, 0.0, 0.3)
        assert z.normalize() == z


# ============================================================================
# Angles
# ============================================================================

class TestAngle:
    def test_coincident_arms_return_zero(self):
        a = Point3D(1.0, 2.0, 3.0)
        b = Point3D(0.0, 0.0, 0.0)
        assert angle(a, b, a) == pytest.approx(0.0, abs=1e-6)

    def test_zero_length_arm_returns_zero(self):
        b = Point3D(0.5, 0.5, 0.5)
        assert angle(b, b, Point3D(1.0, 0.0, 0.0)) == 0.0

    def test_antiparallel_is_pi(self):
        a = Point3D(-1.0, 0.0, 0.0)
        b = Point3D(0.0, 0.0, 0.0)
        c = Point3D(1.0, 0.0, 0.0)
        np.testing.assert_allclose(angle(a, b, c), math.pi, atol=1e-9)

    def test_right_angle(self):
        np.testing.assert_allclose(
            angle(Point3D(1.0, 0.0, 0.0), Point3D(0.0, 0.0, 0.0), Point3D(0.0, 1.0, 0.0)),
            math.pi / 2,
        )

    def test_nearly_collinear_does_not_leave_domain(self):
        a = Point3D(1e8, 1.0, 0.0)
        c = Point3D(-1e8, -1.0, 0.0)
        value = angle(a, Point3D(0.0, 0.0, 0.0), c)
        assert 0.0 <= value <= math.pi

    def test_overflowing_coordinates_stay_finite(self):
        a = Point3D(1e300, 1e300, 0.0)
        c = Point3D(-1e300, 1e300, 0.0)
        value = angle(a, Point3D(0.0, 0.0, 0.0), c)
        assert math.isfinite(value)
        assert 0.0 <= value <= math.pi
        assert cosine_similarity(a, c) == 0.0

    def test_angle_2d_ignores_depth(self):
        a = Point3D(1.0, 0.0, 5.0)
        b = Point3D(0.0, 0.0, 0.0)
        c = Point3D(0.0, 1.0, -5.0)
        np.testing.assert_allclose(angle_2d(a, b, c), math.pi / 2)
        assert angle(a, b, c) != pytest.approx(math.pi / 2)

    def test_vector_helpers(self):
        up = Point3D(0.0, -1.0, 0.0)
        np.testing.assert_allclose(vector_angle(up, Point3D(0.0, 1.0, 0.0)), math.pi)
        assert cosine_similarity(up, Point3D(0.0, -2.0, 0.0)) == pytest.approx(1.0)
        assert cosine_similarity(up, Point3D(0.0, 0.0, 0.0)) == 0.0


# ============================================================================
# Numeric safety
# ============================================================================

class TestSanitize:
    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), None, "abc"])
    def test_non_finite_becomes_zero(self, bad):
        assert sanitize(bad) == 0.0

    def test_finite_passthrough(self):
        assert sanitize(np.float32(1.5)) == 1.5

    def test_clamp_handles_nan(self):
        assert clamp(float("nan"), 0.0, 1.0) == 0.0
        assert clamp(2.0, 0.0, 1.0) == 1.0
        assert clamp(-2.0, -1.0, 1.0) == -1.0

    def test_safe_divide(self):
        assert safe_divide(1.0, 0.0) == 0.0
        assert safe_divide(1.0, 1e-12, default=7.0) == 7.0
        assert safe_divide(1.0, 4.0) == 0.25

    def test_to_percent_rounds_and_bounds(self):
        assert to_percent(0.12345) == 12.3
        assert to_percent(1.7) == 100.0
        assert to_percent(float("nan")) == 0.0

    def test_effective_dt(self):
        assert effective_dt(0.02, 1 / 30, 0.1) == 0.02
        for bad in (0.0, -0.1, 5.0, float("nan")):
            assert effective_dt(bad, 1 / 30, 0.1) == pytest.approx(1 / 30)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
