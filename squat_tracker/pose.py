import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence
from urllib.error import URLError
from urllib.request import urlretrieve

from .config import (
    DEFAULT_MODEL_NAME,
    DEFAULT_MODEL_PATH,
    DEFAULT_MODEL_URL,
    MIN_KEYPOINT_CONFIDENCE,
    NUM_BODY_LANDMARKS,
)

logger = logging.getLogger(__name__)

# ===============================
# LANDMARK INDEX MAP (33-point body model)
# ===============================

JOINT_LANDMARKS = {
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
}

# Canonical order used by the classifier feature vector.
JOINT_ORDER = (
    "right_shoulder",
    "left_shoulder",
    "right_hip",
    "left_hip",
    "right_knee",
    "left_knee",
    "right_ankle",
    "left_ankle",
)

MIN_LANDMARKS = max(JOINT_LANDMARKS.values()) + 1  # ankle (28) is the highest index we read

# COCO keypoint index (YOLO pose) -> 33-point body model index
COCO_TO_BODY = {
    5: 11,   # left_shoulder
    6: 12,   # right_shoulder
    11: 23,  # left_hip
    12: 24,  # right_hip
    13: 25,  # left_knee
    14: 26,  # right_knee
    15: 27,  # left_ankle
    16: 28,  # right_ankle
}


class Point2D(NamedTuple):
    """Pixel-space coordinate."""

    x: float
    y: float


JointSet = Dict[str, Point2D]


class PoseExtractionError(Exception):
    """Frame carries no usable pose; the frame is skipped."""


class NoPersonDetected(PoseExtractionError):
    pass


class InsufficientLandmarks(PoseExtractionError):
    pass


def _landmark_xy(landmark):
    # Accept (x, y[, ...]) sequences/arrays and objects exposing .x/.y
    if hasattr(landmark, "x") and hasattr(landmark, "y"):
        return float(landmark.x), float(landmark.y)
    return float(landmark[0]), float(landmark[1])


def extract_joints(persons: Sequence[Sequence], width: int, height: int) -> JointSet:
    """
    Pick the 8 leg/torso joints of the FIRST detected person and scale
    them from normalized [0,1] to pixel coordinates.

    Raises NoPersonDetected for an empty person list and
    InsufficientLandmarks for a short list or a missing required slot.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame size must be positive, got {width}x{height}")
    if persons is None or len(persons) == 0:
        raise NoPersonDetected("No person in frame")

    landmarks = persons[0]
    if landmarks is None or len(landmarks) < MIN_LANDMARKS:
        count = 0 if landmarks is None else len(landmarks)
        raise InsufficientLandmarks(
            f"Need at least {MIN_LANDMARKS} landmarks, got {count}"
        )

    joints = {}
    for name, idx in JOINT_LANDMARKS.items():
        lm = landmarks[idx]
        if lm is None:
            raise InsufficientLandmarks(f"Landmark {idx} ({name}) missing")
        x_norm, y_norm = _landmark_xy(lm)
        joints[name] = Point2D(x_norm * width, y_norm * height)

    return joints


def landmarks_from_result(result, frame_w, frame_h) -> List[List[Optional[tuple]]]:
    """
    Convert a YOLO pose result into per-person 33-slot landmark lists
    with normalized (x, y) pairs.

    Only the 8 joints we need are filled; every other slot, and any
    keypoint below MIN_KEYPOINT_CONFIDENCE, is None.
    Returns [] if no people detected.
    """
    if result.keypoints is None or len(result.keypoints) == 0:
        return []

    data = result.keypoints.data.cpu().numpy()  # shape: (N, 17, 3) -> x, y, conf

    persons = []
    for kpts in data:
        slots: List[Optional[tuple]] = [None] * NUM_BODY_LANDMARKS
        for coco_idx, body_idx in COCO_TO_BODY.items():
            kp = kpts[coco_idx]
            conf = float(kp[2]) if len(kp) > 2 else 1.0
            if conf < MIN_KEYPOINT_CONFIDENCE:
                continue
            slots[body_idx] = (float(kp[0]) / float(frame_w), float(kp[1]) / float(frame_h))
        persons.append(slots)

    return persons


def ensure_model_path(model_arg):
    model_path = DEFAULT_MODEL_PATH if model_arg is None else model_arg
    if not hasattr(model_path, "is_file"):
        model_path = Path(model_path)

    if model_path.is_file():
        return model_path

    if model_path.name == DEFAULT_MODEL_NAME:
        target = model_path
        if model_path.parent == Path("."):
            target = DEFAULT_MODEL_PATH

        target.parent.mkdir(parents=True, exist_ok=True)
        if not target.exists():
            logger.info("Downloading %s to %s...", DEFAULT_MODEL_NAME, target)
            try:
                urlretrieve(DEFAULT_MODEL_URL, target)
            except URLError as exc:
                raise RuntimeError(
                    f"Failed to download model from {DEFAULT_MODEL_URL}: {exc}"
                ) from exc
        return target

    return model_path
