from dataclasses import asdict, dataclass

from .classifier import PostureLabel
from .rep_counter import RepFSMState


@dataclass(frozen=True)
class SessionStats:
    total_attempts: int
    correct_pct: float
    goal_pct: float


def compute_stats(state: RepFSMState, goal) -> SessionStats:
    total = state.correct_count + state.wrong_count
    correct_pct = (state.correct_count / total) * 100.0 if total > 0 else 0.0
    goal_pct = (state.squat_count / goal) * 100.0 if goal > 0 else 0.0
    return SessionStats(total_attempts=total, correct_pct=correct_pct, goal_pct=goal_pct)


@dataclass(frozen=True)
class Snapshot:
    """What the pipeline pushes to exporters / the display."""

    event: str                      # "classified" or "confirmed"
    squat_count: int
    correct_count: int
    wrong_count: int
    correct_pct: float
    goal_pct: float
    label: PostureLabel
    in_down_phase: bool
    timestamp_ms: float
    rep_incremented: bool = False

    @classmethod
    def from_state(cls, event, state: RepFSMState, goal, label, timestamp_ms,
                   rep_incremented=False):
        stats = compute_stats(state, goal)
        return cls(
            event=event,
            squat_count=state.squat_count,
            correct_count=state.correct_count,
            wrong_count=state.wrong_count,
            correct_pct=stats.correct_pct,
            goal_pct=stats.goal_pct,
            label=PostureLabel.from_index(label),
            in_down_phase=state.in_down_phase,
            timestamp_ms=timestamp_ms,
            rep_incremented=rep_incremented,
        )

    def to_dict(self, label_name=True):
        payload = asdict(self)
        payload["label"] = self.label.name if label_name else int(self.label)
        return payload
