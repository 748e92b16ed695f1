"""Tests for the muscle-map post-processing steps."""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.biomechanics.angles import compute_joint_angles
from src.biomechanics.frame import LandmarkFrame
from src.biomechanics.heuristics import (
    apply_reciprocal_inhibition,
    apply_region_gain,
    apply_score_floor,
    apply_tension_heuristics,
    attribute_sides,
    empty_usage,
    mirror_symmetric_pairs,
    to_percent_map,
)
from src.biomechanics.keys import BodyRegion, Joint, Muscle, MuscleGroup as G
from src.biomechanics.normalizer import LandmarkNormalizer

from pose_factory import standing_pose


def _tension(pose, force=0.4, side_view=False, usage=None):
    frame = LandmarkNormalizer().normalize(LandmarkFrame.from_mapping(pose))
    angles = compute_joint_angles(frame, side_view)
    return apply_tension_heuristics(usage or empty_usage(), frame, angles, force, side_view)


# ============================================================================
# Side attribution
# ============================================================================

class TestAttributeSides:
    def test_unsided_groups_map_directly(self):
        usage = attribute_sides({G.ERECTOR_SPINAE: 0.4, G.CORE: 0.2}, {})
        assert usage[Muscle.ERECTOR_SPINAE] == 0.4
        assert usage[Muscle.CORE] == 0.2
        assert set(usage) == set(Muscle)

    def test_ratio_of_governing_joint(self):
        usage = attribute_sides({G.GLUTES: 0.5}, {Joint.LEFT_HIP: 0.6, Joint.RIGHT_HIP: 0.3})
        assert usage[Muscle.LEFT_GLUTES] == pytest.approx(0.5)
        assert usage[Muscle.RIGHT_GLUTES] == pytest.approx(0.25)

    def test_no_joint_data_gives_both_sides(self):
        usage = attribute_sides({G.BICEPS: 0.3}, {})
        assert usage[Muscle.LEFT_BICEPS] == usage[Muscle.RIGHT_BICEPS] == 0.3

    def test_unstressed_joints_share_evenly(self):
        usage = attribute_sides({G.CALVES: 0.3}, {Joint.LEFT_ANKLE: 0.0, Joint.RIGHT_ANKLE: 0.0})
        assert usage[Muscle.LEFT_CALVES] == usage[Muscle.RIGHT_CALVES] == 0.3

    def test_unevaluated_side_gets_nothing(self):
        usage = attribute_sides({G.QUADRICEPS: 0.4}, {Joint.LEFT_KNEE: 0.2})
        assert usage[Muscle.LEFT_QUADRICEPS] == 0.4
        assert usage[Muscle.RIGHT_QUADRICEPS] == 0.0


# ============================================================================
# Tension heuristics
# ============================================================================

class TestTensionHeuristics:
    def test_hanging_arms_engage_lats(self):
        usage = empty_usage()
        usage[Muscle.LEFT_TRAPEZIUS] = 0.4
        out = _tension(standing_pose(), force=0.4, usage=usage)
        assert out[Muscle.LEFT_LATS] == pytest.approx(0.2)
        assert out[Muscle.RIGHT_LATS] == pytest.approx(0.2)
        assert out[Muscle.LEFT_TRAPEZIUS] == pytest.approx(0.2)

    def test_elbows_behind_shoulders_engage_retractors(self):
        pose = standing_pose()
        for side in ("left", "right"):
            x, y, z, c = pose[f"{side}_elbow"]
            pose[f"{side}_elbow"] = (x, y, z + 0.0625, c)
        out = _tension(pose, force=0.5)
        assert out[Muscle.LEFT_RHOMBOIDS] == pytest.approx(0.2)
        assert out[Muscle.RIGHT_TRAPEZIUS] > 0.0

    def test_adducted_elbow_engages_pectorals(self):
        pose = standing_pose()
        pose["left_elbow"] = (0.53125, 0.25, 0.0, 0.9)
        usage = empty_usage()
        usage[Muscle.LEFT_TRICEPS] = 0.5
        out = _tension(pose, force=0.5, usage=usage)
        assert out[Muscle.LEFT_PECTORALS] == pytest.approx(0.2)
        assert out[Muscle.LEFT_TRICEPS] == pytest.approx(0.35)
        assert out[Muscle.RIGHT_PECTORALS] == 0.0

    def test_adduction_ignored_in_side_view(self):
        pose = standing_pose()
        pose["left_elbow"] = (0.53125, 0.25, 0.0, 0.9)
        out = _tension(pose, force=0.5, side_view=True)
        assert out[Muscle.LEFT_PECTORALS] == 0.0

    def test_forward_arm_holds_pectoral_tension(self):
        pose = standing_pose()
        pose["left_elbow"] = (0.625, 0.375, -0.0625, 0.9)
        pose["left_wrist"] = (0.625, 0.3125, -0.1875, 0.9)
        out = _tension(pose, force=0.0)
        assert out[Muscle.LEFT_PECTORALS] == pytest.approx(0.25)
        assert out[Muscle.RIGHT_PECTORALS] == 0.0

    def test_missing_arm_landmarks_skip_side(self):
        pose = standing_pose()
        del pose["left_elbow"]
        out = _tension(pose, force=0.4)
        assert out[Muscle.LEFT_LATS] == 0.0
        assert out[Muscle.RIGHT_LATS] == pytest.approx(0.2)


# ============================================================================
# Reciprocal inhibition
# ============================================================================

class TestReciprocalInhibition:
    def _usage(self):
        return {m: 0.5 for m in Muscle}

    def test_push_suppresses_pullers(self):
        out = apply_reciprocal_inhibition(self._usage(), 0.8)
        assert out[Muscle.LEFT_LATS] == pytest.approx(0.5 * (1.0 - 0.6 * 0.8))
        assert out[Muscle.LEFT_BICEPS] == pytest.approx(out[Muscle.LEFT_LATS])
        assert out[Muscle.LEFT_PECTORALS] == 0.5

    def test_pull_suppresses_pushers(self):
        out = apply_reciprocal_inhibition(self._usage(), -0.8)
        assert out[Muscle.RIGHT_TRICEPS] == pytest.approx(0.5 * (1.0 - 0.6 * 0.8))
        assert out[Muscle.RIGHT_TRAPEZIUS] == 0.5

    @pytest.mark.parametrize("intent", [0.0, 0.3, -0.3])
    def test_weak_intent_is_ignored(self, intent):
        assert apply_reciprocal_inhibition(self._usage(), intent) == self._usage()


# ============================================================================
# Mirroring, region gain, floor, output
# ============================================================================

class TestPostProcessing:
    def test_mirror_takes_larger_side(self):
        usage = empty_usage()
        usage[Muscle.LEFT_GLUTES] = 0.2
        usage[Muscle.RIGHT_GLUTES] = 0.5
        usage[Muscle.CORE] = 0.3
        out = mirror_symmetric_pairs(usage)
        assert out[Muscle.LEFT_GLUTES] == out[Muscle.RIGHT_GLUTES] == 0.5
        assert out[Muscle.CORE] == 0.3

    def test_region_gain_attenuates_without_zeroing(self):
        usage = {m: 0.6 for m in Muscle}
        out = apply_region_gain(usage, BodyRegion.UPPER)
        assert out[Muscle.LEFT_QUADRICEPS] == pytest.approx(0.09)
        assert out[Muscle.LEFT_LATS] == 0.6
        assert out[Muscle.ERECTOR_SPINAE] == 0.6
        assert apply_region_gain(usage, BodyRegion.FULL) == usage

    def test_score_floor(self):
        out = apply_score_floor({Muscle.CORE: 0.049, Muscle.LEFT_LATS: 0.05,
                                 Muscle.RIGHT_LATS: float("nan")})
        assert out == {Muscle.CORE: 0.0, Muscle.LEFT_LATS: 0.05, Muscle.RIGHT_LATS: 0.0}

    def test_to_percent_map(self):
        assert to_percent_map({Muscle.LEFT_LATS: 0.1234, Joint.LEFT_KNEE: 2.0}) == {
            "left_lats": 12.3, "left_knee": 100.0,
        }


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
