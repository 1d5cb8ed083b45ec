"""Shared synthetic fixtures: landmark lists and fake classifiers."""

import pytest

from squat_tracker.config import NUM_BODY_LANDMARKS

FRAME_W = 640
FRAME_H = 480


def _landmarks(points):
    """33-slot normalized landmark list with the given {index: (x, y)} filled."""
    lm = [(0.0, 0.0)] * NUM_BODY_LANDMARKS
    for idx, xy in points.items():
        lm[idx] = xy
    return lm


# Upright: shoulder, hip, knee, ankle stacked vertically on each side.
STANDING = {
    11: (0.55, 0.20), 12: (0.45, 0.20),
    23: (0.55, 0.50), 24: (0.45, 0.50),
    25: (0.55, 0.70), 26: (0.45, 0.70),
    27: (0.55, 0.90), 28: (0.45, 0.90),
}

# Thighs horizontal, shins vertical: knees bent ~90 degrees.
SQUATTING = {
    11: (0.60, 0.35), 12: (0.40, 0.35),
    23: (0.60, 0.65), 24: (0.40, 0.65),
    25: (0.75, 0.65), 26: (0.25, 0.65),
    27: (0.75, 0.90), 28: (0.25, 0.90),
}


class FakeClassifier:
    """Returns scripted class indices; an Exception instance in the script is raised."""

    def __init__(self, script=()):
        self.script = list(script)
        self.calls = []
        self.close_calls = 0

    def predict(self, features):
        self.calls.append(features)
        value = self.script.pop(0) if self.script else 0
        if isinstance(value, Exception):
            raise value
        return value

    def close(self):
        self.close_calls += 1


@pytest.fixture
def frame_size():
    return FRAME_W, FRAME_H


@pytest.fixture
def standing_persons():
    return [_landmarks(STANDING)]


@pytest.fixture
def squat_persons():
    return [_landmarks(SQUATTING)]


@pytest.fixture
def make_landmarks():
    return _landmarks


@pytest.fixture
def fake_classifier():
    return FakeClassifier
