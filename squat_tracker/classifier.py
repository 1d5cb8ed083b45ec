"""
Posture classifier adapter.

Wraps an ONNX export of the three-class squat model (stand / good form /
bad form). Input is the 20-value feature vector from
``features.build_feature_vector``; output is one score per class.
"""

import logging
import os
from enum import IntEnum

import numpy as np
import onnxruntime

from .config import DEFAULT_CLASSIFIER_PATH
from .features import FEATURE_LENGTH

logger = logging.getLogger(__name__)

NUM_CLASSES = 3


class PostureLabel(IntEnum):
    UNKNOWN = -1
    STAND = 0
    GOOD_FORM = 1
    BAD_FORM = 2

    @classmethod
    def from_index(cls, value):
        """Map a raw class index to a label; anything outside 0..2 is UNKNOWN."""
        try:
            value = int(value)
        except (TypeError, ValueError):
            return cls.UNKNOWN
        if value in (cls.STAND, cls.GOOD_FORM, cls.BAD_FORM):
            return cls(value)
        return cls.UNKNOWN

    @property
    def is_squat(self):
        return self in (PostureLabel.GOOD_FORM, PostureLabel.BAD_FORM)


def _class_index(outputs):
    label = None
    for output in outputs:
        try:
            values = np.asarray(output, dtype=np.float32)
        except (TypeError, ValueError):
            continue  # ZipMap-style list of dicts
        if values.size == NUM_CLASSES and values.shape[-1] == NUM_CLASSES:
            return int(np.argmax(values.reshape(-1)))
        if values.size == 1 and label is None:
            label = int(values.reshape(-1)[0])
    return int(PostureLabel.UNKNOWN) if label is None else label


class ClassifierUnavailable(RuntimeError):
    """The posture model could not be loaded or failed to run."""


class SquatClassifier:
    """
    ONNX Runtime session around the posture model.

    Either ``model_file`` or a pre-built ``session`` must be given.
    The prediction is the argmax of the first output holding one score
    per class (shape ``(1, 3)``), wherever it sits among the outputs. Models
    exported from scikit-learn put a label output first; that label is only
    used when no score output is present.
    """

    def __init__(self, model_file=None, session=None):
        self.model_file = model_file
        self.session = session

        if self.session is None:
            if model_file is None or not os.path.exists(model_file):
                raise ClassifierUnavailable(f"Classifier model not found: {model_file}")
            try:
                self.session = onnxruntime.InferenceSession(
                    str(model_file), providers=["CPUExecutionProvider"]
                )
            except Exception as exc:
                raise ClassifierUnavailable(
                    f"Failed to load classifier from {model_file}: {exc}"
                ) from exc

        self.input_name = self.session.get_inputs()[0].name

    @property
    def closed(self):
        return self.session is None

    def predict(self, features) -> int:
        """Return the class index (0/1/2) for one feature vector."""
        features = np.asarray(features, dtype=np.float32).reshape(-1)
        if features.size != FEATURE_LENGTH:
            raise ValueError(
                f"Classifier input must have {FEATURE_LENGTH} values, got {features.size}"
            )
        if self.session is None:
            raise ClassifierUnavailable("Classifier is closed")

        try:
            outputs = self.session.run(None, {self.input_name: features.reshape(1, FEATURE_LENGTH)})
        except Exception as exc:
            raise ClassifierUnavailable(f"Classifier inference failed: {exc}") from exc

        return _class_index(outputs)

    def close(self):
        self.session = None


def load_classifier(model_file=None) -> SquatClassifier:
    path = DEFAULT_CLASSIFIER_PATH if model_file is None else model_file
    classifier = SquatClassifier(model_file=path)
    logger.info("SquatClassifier initialized from %s", path)
    return classifier
