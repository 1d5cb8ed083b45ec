from dataclasses import dataclass
from typing import Optional

from .classifier import PostureLabel
from .config import MIN_INFER_INTERVAL_MS, REQUIRED_STABLE_FRAMES

STANDING_OUTSIDE_REP = "STANDING_OUTSIDE_REP"
IN_REP = "IN_REP"


class InferenceThrottle:
    """
    Allows at most one classifier call per interval; skipped frames are dropped.
    """

    def __init__(self, min_interval_ms=MIN_INFER_INTERVAL_MS):
        self.min_interval_ms = min_interval_ms
        self.last_inference_ms: Optional[float] = None

    def should_infer(self, now_ms):
        if self.last_inference_ms is not None and (now_ms - self.last_inference_ms) < self.min_interval_ms:
            return False
        self.last_inference_ms = now_ms
        return True

    def reset(self):
        self.last_inference_ms = None


class StabilityFilter:
    """
    Debounces classifier labels: a label is confirmed once it has been seen
    `required` times in a row, and keeps being confirmed while it repeats.

    UNKNOWN never reaches the run counter.
    """

    def __init__(self, required=REQUIRED_STABLE_FRAMES):
        self.required = required
        self.last_label = PostureLabel.UNKNOWN
        self.run_length = 0

    def observe(self, label) -> Optional[PostureLabel]:
        label = PostureLabel.from_index(label)
        if label is PostureLabel.UNKNOWN:
            return None

        if label == self.last_label:
            self.run_length += 1
        else:
            self.last_label = label
            self.run_length = 1

        if self.run_length < self.required:
            return None
        return label

    def reset(self):
        self.last_label = PostureLabel.UNKNOWN
        self.run_length = 0


@dataclass
class RepFSMState:
    in_down_phase: bool = False
    squat_count: int = 0
    correct_count: int = 0
    wrong_count: int = 0


class RepCounterFSM:
    """
    Squat rep FSM driven by confirmed posture labels.

    STANDING_OUTSIDE_REP --(GOOD_FORM | BAD_FORM)--> IN_REP
    IN_REP --(STAND)--> STANDING_OUTSIDE_REP, squat_count += 1

    correct/wrong counters move once per classification (see record_classification),
    not once per rep.
    """

    def __init__(self, state: Optional[RepFSMState] = None):
        self.state = state if state is not None else RepFSMState()

    @property
    def phase(self):
        return IN_REP if self.state.in_down_phase else STANDING_OUTSIDE_REP

    def record_classification(self, label):
        label = PostureLabel.from_index(label)
        if label is PostureLabel.GOOD_FORM:
            self.state.correct_count += 1
        elif label is PostureLabel.BAD_FORM:
            self.state.wrong_count += 1

    def update(self, confirmed_label):
        """Returns (squat_count, phase, rep_incremented)."""
        label = PostureLabel.from_index(confirmed_label)
        rep_incremented = False

        if not self.state.in_down_phase:
            if label.is_squat:
                self.state.in_down_phase = True

        elif label is PostureLabel.STAND:
            self.state.squat_count += 1
            self.state.in_down_phase = False
            rep_incremented = True

        return self.state.squat_count, self.phase, rep_incremented

    def reset(self):
        self.state = RepFSMState()
