import math
from typing import NamedTuple

import numpy as np

from .pose import JOINT_ORDER, JointSet, Point2D

FEATURE_LENGTH = 2 * len(JOINT_ORDER) + 4  # 16 normalized coords + 4 angles


class AngleSet(NamedTuple):
    """Flexion angles in degrees: ~0 = straight, ~180 = fully bent."""

    right_knee: float
    left_knee: float
    right_hip: float
    left_hip: float


def calculate_angle(a: Point2D, b: Point2D, c: Point2D) -> float:
    """
    Unsigned angle at vertex b between rays b->a and b->c, in [0, 180].
    """
    radians = math.atan2(c.y - b.y, c.x - b.x) - math.atan2(a.y - b.y, a.x - b.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def knee_angle(joints: JointSet, side: str) -> float:
    """side: "left" or "right"."""
    return 180.0 - calculate_angle(
        joints[f"{side}_hip"], joints[f"{side}_knee"], joints[f"{side}_ankle"]
    )


def hip_angle(joints: JointSet, side: str) -> float:
    return 180.0 - calculate_angle(
        joints[f"{side}_shoulder"], joints[f"{side}_hip"], joints[f"{side}_knee"]
    )


def compute_angles(joints: JointSet) -> AngleSet:
    return AngleSet(
        right_knee=knee_angle(joints, "right"),
        left_knee=knee_angle(joints, "left"),
        right_hip=hip_angle(joints, "right"),
        left_hip=hip_angle(joints, "left"),
    )


def build_feature_vector(joints: JointSet, angles: AngleSet, width, height) -> np.ndarray:
    """
    Classifier input: (x/width, y/height) for each joint in JOINT_ORDER,
    then the raw knee/hip angles (R knee, L knee, R hip, L hip).
    """
    coords = []
    for name in JOINT_ORDER:
        p = joints[name]
        coords.append(p.x / float(width))
        coords.append(p.y / float(height))

    return np.array(
        coords + [angles.right_knee, angles.left_knee, angles.right_hip, angles.left_hip],
        dtype=np.float32,
    )
