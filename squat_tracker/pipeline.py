"""
Per-frame squat pipeline.

extract joints -> angles -> (throttled) classify -> count -> debounce -> rep FSM

One SquatPipeline per session. It is not thread-safe: feed it from a
single thread (see worker.PipelineWorker).
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .classifier import PostureLabel
from .config import PipelineConfig
from .features import AngleSet, build_feature_vector, compute_angles
from .pose import JointSet, PoseExtractionError, extract_joints
from .rep_counter import InferenceThrottle, RepCounterFSM, StabilityFilter
from .stats import SessionStats, Snapshot, compute_stats

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    joints: Optional[JointSet] = None
    angles: Optional[AngleSet] = None
    features: Optional[np.ndarray] = None
    label: Optional[PostureLabel] = None        # None when no classification ran
    confirmed: Optional[PostureLabel] = None
    rep_incremented: bool = False
    snapshot: Optional[Snapshot] = None
    skipped_reason: Optional[str] = None

    @property
    def skipped(self):
        return self.skipped_reason is not None

    @property
    def classified(self):
        return self.label is not None


class SquatPipeline:
    def __init__(self, config=None, classifier=None, classifier_loader=None, exporters=()):
        self.config = (config if config is not None else PipelineConfig()).validate()
        self.throttle = InferenceThrottle(self.config.min_inference_interval_ms)
        self.stability = StabilityFilter(self.config.required_stable_frames)
        self.fsm = RepCounterFSM()
        self.exporters = list(exporters)

        self.classifier = classifier
        self.classifier_error: Optional[Exception] = None
        self._closed = False

        if self.classifier is None and classifier_loader is not None:
            try:
                self.classifier = classifier_loader()
            except Exception as exc:
                self.classifier_error = exc
                logger.error("Classifier init failed, running without classification: %s", exc)

    # ---------------------------------------------------------------
    # Session state
    # ---------------------------------------------------------------

    @property
    def degraded(self):
        return self.classifier is None

    @property
    def state(self):
        return self.fsm.state

    def stats(self) -> SessionStats:
        return compute_stats(self.fsm.state, self.config.squat_goal)

    def snapshot(self, event="classified", label=PostureLabel.UNKNOWN, timestamp_ms=0.0) -> Snapshot:
        return Snapshot.from_state(event, self.fsm.state, self.config.squat_goal, label, timestamp_ms)

    def add_exporter(self, exporter):
        self.exporters.append(exporter)

    def reset(self):
        """Start a new session: counters, debounce and throttle all start over."""
        self.fsm.reset()
        self.stability.reset()
        self.throttle.reset()
        logger.info("Session reset")

    # ---------------------------------------------------------------
    # Frame processing
    # ---------------------------------------------------------------

    def process_frame(self, persons, width, height, timestamp_ms=None) -> FrameResult:
        if timestamp_ms is None:
            timestamp_ms = time.monotonic() * 1000.0

        try:
            joints = extract_joints(persons, width, height)
        except PoseExtractionError as exc:
            logger.debug("Skipping frame: %s", exc)
            return FrameResult(skipped_reason=type(exc).__name__)

        result = FrameResult(joints=joints, angles=compute_angles(joints))

        if self.classifier is None:
            return result
        if not self.throttle.should_infer(timestamp_ms):
            return result

        result.features = build_feature_vector(joints, result.angles, width, height)
        label = self._classify(result.features)
        result.label = label

        self.fsm.record_classification(label)
        result.snapshot = self._emit("classified", label, timestamp_ms)

        confirmed = self.stability.observe(label)
        if confirmed is None:
            return result

        squat_count, phase, rep_incremented = self.fsm.update(confirmed)
        if rep_incremented:
            logger.info("Squat %d counted", squat_count)
        result.confirmed = confirmed
        result.rep_incremented = rep_incremented
        result.snapshot = self._emit("confirmed", confirmed, timestamp_ms, rep_incremented)
        return result

    def _classify(self, features) -> PostureLabel:
        predict = getattr(self.classifier, "predict", self.classifier)
        try:
            raw = predict(features)
        except Exception as exc:
            logger.warning("Classification failed: %s", exc)
            return PostureLabel.UNKNOWN

        label = PostureLabel.from_index(raw)
        if label is PostureLabel.UNKNOWN:
            logger.warning("Classifier returned unexpected class %r", raw)
        else:
            logger.debug("Classifier result = %s", label.name)
        return label

    def _emit(self, event, label, timestamp_ms, rep_incremented=False) -> Snapshot:
        snapshot = Snapshot.from_state(
            event, self.fsm.state, self.config.squat_goal, label, timestamp_ms,
            rep_incremented=rep_incremented,
        )
        for exporter in self.exporters:
            try:
                exporter.on_snapshot(snapshot)
            except Exception:
                logger.warning("Exporter %r failed", exporter, exc_info=True)
        return snapshot

    # ---------------------------------------------------------------
    # Teardown
    # ---------------------------------------------------------------

    @property
    def closed(self):
        return self._closed

    def close(self):
        if self._closed:
            return
        self._closed = True
        classifier, self.classifier = self.classifier, None
        if classifier is not None:
            close = getattr(classifier, "close", None)
            if close is not None:
                close()
        logger.info("Pipeline closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
