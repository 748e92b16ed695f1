"""
View classification and joint angle extraction.

Joint angle definitions (vertex in the middle):

    shoulder : elbow  - shoulder - pelvis centre
    elbow    : shoulder - elbow - wrist
    hip      : chest centre - hip - knee
    knee     : hip - knee - ankle
    ankle    : knee - ankle - foot index (heel as fallback)

The pelvis/chest centres are the synthetic spine end points. In side view the
lower-body angles are measured in the image plane, since depth is unreliable
when the far leg is occluded.
"""

from typing import Optional

from .config import SIDE_VIEW_SEPARATION
from .frame import LandmarkFrame
from .geometry import Point3D, angle, angle_2d
from .keys import Joint, JointType, Side


def is_side_view(frame: LandmarkFrame, threshold: float = SIDE_VIEW_SEPARATION) -> bool:
    """Flag a frame as side view from left/right horizontal separation.

    Every complete shoulder/hip pair must be narrower than ``threshold``. When
    no pair is complete but each of shoulder and hip has one visible side, the
    far side is taken as occluded and the frame counts as side view.
    """
    separations = []
    one_sided = True
    for part in ("shoulder", "hip"):
        left, right = frame.pair(part)
        if left is not None and right is not None:
            separations.append(abs(left.x - right.x))
        elif left is None and right is None:
            one_sided = False
    if separations:
        return all(s < threshold for s in separations)
    return one_sided


def _joint_points(frame: LandmarkFrame, joint_type: JointType,
                  side: Side) -> Optional[tuple[Point3D, Point3D, Point3D]]:
    if joint_type is JointType.SHOULDER:
        pts = (frame.side(side, "elbow"), frame.side(side, "shoulder"), frame.center("hip"))
    elif joint_type is JointType.ELBOW:
        pts = (frame.side(side, "shoulder"), frame.side(side, "elbow"), frame.side(side, "wrist"))
    elif joint_type is JointType.HIP:
        pts = (frame.center("shoulder"), frame.side(side, "hip"), frame.side(side, "knee"))
    elif joint_type is JointType.KNEE:
        pts = (frame.side(side, "hip"), frame.side(side, "knee"), frame.side(side, "ankle"))
    else:
        toe = frame.side(side, "foot_index")
        if toe is None:
            toe = frame.side(side, "heel")
        pts = (frame.side(side, "knee"), frame.side(side, "ankle"), toe)
    if any(p is None for p in pts):
        return None
    return pts


def compute_joint_angles(frame: LandmarkFrame, side_view: bool = False) -> dict[Joint, float]:
    """Compute joint angles (radians) for every joint with complete landmarks.

    Args:
        frame: Normalized landmark frame.
        side_view: Use image-plane angles for the hip, knee and ankle.

    Returns:
        Mapping of :class:`Joint` to angle; joints with missing landmarks are
        absent rather than zero.
    """
    angles: dict[Joint, float] = {}
    for joint in Joint:
        pts = _joint_points(frame, joint.joint_type, joint.side)
        if pts is None:
            continue
        if side_view and joint.joint_type.is_lower_body:
            angles[joint] = angle_2d(*pts)
        else:
            angles[joint] = angle(*pts)
    return angles
