from squat_tracker.classifier import PostureLabel
from squat_tracker.rep_counter import (
    IN_REP,
    STANDING_OUTSIDE_REP,
    InferenceThrottle,
    RepCounterFSM,
    StabilityFilter,
)

STAND = PostureLabel.STAND
GOOD = PostureLabel.GOOD_FORM
BAD = PostureLabel.BAD_FORM
UNKNOWN = PostureLabel.UNKNOWN


def _run(labels, required=3):
    """Feed raw labels through debounce + FSM the way the pipeline does."""
    stability = StabilityFilter(required)
    fsm = RepCounterFSM()
    for label in labels:
        confirmed = stability.observe(label)
        if confirmed is not None:
            fsm.update(confirmed)
    return fsm


# ============================================================================
# Test: Inference throttle
# ============================================================================

class TestInferenceThrottle:

    def test_interval_gating(self):
        throttle = InferenceThrottle(100)
        assert throttle.should_infer(0) is True
        assert throttle.should_infer(50) is False
        assert throttle.should_infer(110) is True

    def test_rejected_call_leaves_timestamp(self):
        throttle = InferenceThrottle(100)
        throttle.should_infer(1000)
        throttle.should_infer(1099)
        assert throttle.last_inference_ms == 1000
        assert throttle.should_infer(1100) is True

    def test_reset(self):
        throttle = InferenceThrottle(100)
        throttle.should_infer(1000)
        throttle.reset()
        assert throttle.should_infer(1001) is True


# ============================================================================
# Test: Stability filter
# ============================================================================

class TestStabilityFilter:

    def test_change_resets_run(self):
        f = StabilityFilter(3)
        assert [f.observe(x) for x in [1, 1, 2]] == [None, None, None]
        assert f.last_label == BAD
        assert f.run_length == 1

    def test_confirms_on_third_and_keeps_confirming(self):
        f = StabilityFilter(3)
        assert [f.observe(x) for x in [1, 1, 1, 1, 1]] == [None, None, GOOD, GOOD, GOOD]

    def test_unknown_is_ignored(self):
        f = StabilityFilter(3)
        assert f.observe(1) is None
        assert f.observe(1) is None
        assert f.observe(UNKNOWN) is None
        assert f.run_length == 2
        assert f.observe(1) == GOOD

    def test_out_of_range_treated_as_unknown(self):
        f = StabilityFilter(3)
        f.observe(0)
        assert f.observe(7) is None
        assert f.last_label == STAND
        assert f.run_length == 1

    def test_required_one_confirms_immediately(self):
        f = StabilityFilter(1)
        assert f.observe(0) == STAND

    def test_reset(self):
        f = StabilityFilter(3)
        for _ in range(3):
            f.observe(2)
        f.reset()
        assert f.run_length == 0
        assert f.observe(2) is None


# ============================================================================
# Test: Rep counter FSM
# ============================================================================

class TestRepCounterFSM:

    def test_initial_state(self):
        fsm = RepCounterFSM()
        assert fsm.phase == STANDING_OUTSIDE_REP
        assert fsm.state.squat_count == 0

    def test_full_rep(self):
        fsm = _run([STAND] + [GOOD] * 3 + [STAND] * 3)
        assert fsm.state.squat_count == 1
        assert fsm.state.in_down_phase is False

    def test_down_without_return(self):
        fsm = _run([GOOD] * 3)
        assert fsm.state.squat_count == 0
        assert fsm.state.in_down_phase is True
        assert fsm.phase == IN_REP

    def test_unconfirmed_stand_does_not_count(self):
        fsm = _run([BAD] * 3 + [STAND] * 2 + [BAD])
        assert fsm.state.squat_count == 0
        assert fsm.state.in_down_phase is True

    def test_repeated_confirmations_count_once(self):
        fsm = _run([GOOD] * 3 + [STAND] * 10)
        assert fsm.state.squat_count == 1

    def test_switching_form_inside_rep(self):
        fsm = RepCounterFSM()
        assert fsm.update(GOOD) == (0, IN_REP, False)
        assert fsm.update(BAD) == (0, IN_REP, False)
        assert fsm.update(STAND) == (1, STANDING_OUTSIDE_REP, True)
        assert fsm.update(STAND) == (1, STANDING_OUTSIDE_REP, False)

    def test_several_reps(self):
        cycle = [GOOD] * 3 + [STAND] * 3
        fsm = _run(cycle * 4)
        assert fsm.state.squat_count == 4

    def test_record_classification(self):
        fsm = RepCounterFSM()
        for label in [GOOD, GOOD, BAD, STAND, UNKNOWN, 1]:
            fsm.record_classification(label)
        assert fsm.state.correct_count == 3
        assert fsm.state.wrong_count == 1
        assert fsm.state.squat_count == 0

    def test_reset(self):
        fsm = _run([GOOD] * 3 + [STAND] * 3)
        fsm.record_classification(GOOD)
        fsm.reset()
        assert fsm.state.squat_count == 0
        assert fsm.state.correct_count == 0
        assert fsm.phase == STANDING_OUTSIDE_REP
