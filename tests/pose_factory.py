"""Synthetic pose builders shared by the biomechanics tests.

Coordinates mimic MediaPipe image space: x to the right, y downward, z toward
the viewer is negative. Offsets are dyadic fractions so that mirrored poses
stay bit-exact after normalization.
"""

import math

import numpy as np

PELVIS = (0.5, 0.5, 0.0)

# Upright offsets from the pelvis for the subject's left side (x >= 0).
_LEFT_UPRIGHT = {
    "shoulder": (0.125, -0.25, 0.0),
    "ear": (0.0625, -0.375, 0.0),
    "elbow": (0.140625, -0.125, 0.0),
    "wrist": (0.15625, 0.0, 0.0),
    "hip": (0.0625, 0.0, 0.0),
    "knee": (0.0625, 0.25, 0.0),
    "ankle": (0.0625, 0.5, 0.0),
    "heel": (0.0625, 0.53125, 0.03125),
    "foot_index": (0.0625, 0.53125, -0.0625),
}


def _mirror(points: dict) -> dict:
    """Add right-side landmarks by mirroring x about the pelvis (x -> 1 - x)."""
    out = dict(points)
    for name, value in points.items():
        if name.startswith("left_"):
            x, y, z, c = value
            out["right_" + name[len("left_"):]] = (1.0 - x, y, z, c)
    return out


def _place(offsets: dict, confidence: float = 0.9) -> dict:
    px, py, pz = PELVIS
    return {name: (px + ox, py + oy, pz + oz, confidence) for name, (ox, oy, oz) in offsets.items()}


def standing_pose(confidence: float = 0.9) -> dict:
    """Frontal, symmetric, upright pose with arms hanging at the sides."""
    left = {f"left_{k}": v for k, v in _place(_LEFT_UPRIGHT, confidence).items()}
    pose = _mirror(left)
    pose["nose"] = (0.5, 0.125, -0.03125, confidence)
    return pose


def lateral_raise_pose(phi_deg: float, confidence: float = 0.9) -> dict:
    """Frontal symmetric pose with both arms abducted by ``phi_deg``."""
    phi = math.radians(phi_deg)
    offsets = dict(_LEFT_UPRIGHT)
    sx, sy, _ = offsets["shoulder"]
    direction = (math.sin(phi), math.cos(phi))
    offsets["elbow"] = (sx + 0.125 * direction[0], sy + 0.125 * direction[1], 0.0)
    offsets["wrist"] = (sx + 0.25 * direction[0], sy + 0.25 * direction[1], 0.0)
    left = {f"left_{k}": v for k, v in _place(offsets, confidence).items()}
    pose = _mirror(left)
    pose["nose"] = (0.5, 0.125, -0.03125, confidence)
    return pose


def _lean(offset, theta: float):
    """Rotate an upright offset forward (toward the camera) by ``theta``."""
    ox, oy, oz = offset
    return (ox, oy * math.cos(theta) - oz * math.sin(theta), oy * math.sin(theta) + oz * math.cos(theta))


def hinge_pose(lean_deg: float, confidence: float = 0.9) -> dict:
    """Frontal hip hinge: trunk leans forward, arms stay pinned along the trunk.

    The pelvis, knees and ankles stay fixed while everything above the hips
    rotates about the pelvis, so the hip angle changes by ``lean_deg`` and
    the elbow stays straight.
    """
    theta = math.radians(lean_deg)
    sx, sy, _ = _LEFT_UPRIGHT["shoulder"]
    hx, hy, _ = _LEFT_UPRIGHT["hip"]
    upper = {
        "shoulder": (sx, sy, 0.0),
        "ear": _LEFT_UPRIGHT["ear"],
        "elbow": (sx + 0.5 * (hx - sx), sy + 0.5 * (hy - sy), 0.0),
        "wrist": (sx + 0.875 * (hx - sx), sy + 0.875 * (hy - sy), 0.0),
    }
    offsets = {k: _lean(v, theta) for k, v in upper.items()}
    for k in ("hip", "knee", "ankle", "heel", "foot_index"):
        offsets[k] = _LEFT_UPRIGHT[k]
    left = {f"left_{k}": v for k, v in _place(offsets, confidence).items()}
    pose = _mirror(left)
    nx, ny, nz = _lean((0.0, -0.375, -0.03125), theta)
    pose["nose"] = (0.5 + nx, 0.5 + ny, nz, confidence)
    return pose


def side_hinge_pose(lean_deg: float, far_side_confidence: float = 0.1) -> dict:
    """Side-view hip hinge: the camera sees the subject's left side.

    Left/right pairs are separated only in depth, and the far (right) side
    is reported with low confidence.
    """
    theta = math.radians(lean_deg)
    upright = {
        "shoulder": (0.0, -0.25),
        "ear": (0.0, -0.375),
        "elbow": (0.0, -0.125),
        "wrist": (0.0, -0.03125),
        "hip": (0.0, 0.0),
        "knee": (0.0, 0.25),
        "ankle": (0.0, 0.5),
        "heel": (-0.03125, 0.53125),
        "foot_index": (0.0625, 0.53125),
    }
    pose = {}
    for name, (fx, uy) in upright.items():
        if name in ("shoulder", "ear", "elbow", "wrist"):
            fx, uy = fx * math.cos(theta) - uy * math.sin(theta), fx * math.sin(theta) + uy * math.cos(theta)
        x, y = PELVIS[0] + fx, PELVIS[1] + uy
        pose[f"left_{name}"] = (x, y, -0.0625, 0.9)
        pose[f"right_{name}"] = (x, y, 0.0625, far_side_confidence)
    pose["nose"] = (pose["left_ear"][0] + 0.03125, pose["left_ear"][1], 0.0, 0.9)
    return pose


def to_blazepose_array(pose: dict) -> np.ndarray:
    """Pack a pose dict into a ``(33, 4)`` MediaPipe-ordered array."""
    from src.biomechanics.keys import MEDIAPIPE_INDEX, Landmark

    arr = np.zeros((33, 4), dtype=np.float64)
    for name, value in pose.items():
        arr[MEDIAPIPE_INDEX[Landmark(name)]] = value
    return arr
