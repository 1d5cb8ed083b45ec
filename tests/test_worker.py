import threading

from squat_tracker.classifier import PostureLabel
from squat_tracker.pipeline import SquatPipeline
from squat_tracker.worker import PipelineWorker


class _BlockingClassifier:
    """Blocks inside predict until released, so frames pile up behind it."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def predict(self, features):
        self.calls += 1
        self.started.set()
        self.release.wait(timeout=5.0)
        return 1


class TestPipelineWorker:

    def test_processes_submitted_frame(self, standing_persons, frame_size, fake_classifier):
        pipeline = SquatPipeline(classifier=fake_classifier([1]))
        with PipelineWorker(pipeline) as worker:
            assert worker.submit(standing_persons, *frame_size, timestamp_ms=0)
            assert worker.wait_idle(timeout=5.0)
            assert worker.frames_processed == 1
            assert worker.latest_result.label is PostureLabel.GOOD_FORM
        assert pipeline.state.correct_count == 1

    def test_keeps_only_latest_frame(self, standing_persons, squat_persons, frame_size):
        clf = _BlockingClassifier()
        pipeline = SquatPipeline(classifier=clf)
        worker = PipelineWorker(pipeline)
        worker.start()
        try:
            worker.submit(standing_persons, *frame_size, timestamp_ms=0)
            assert clf.started.wait(timeout=5.0)

            # worker is busy: these two race for the single slot
            worker.submit(standing_persons, *frame_size, timestamp_ms=100)
            worker.submit(squat_persons, *frame_size, timestamp_ms=200)
            assert worker.dropped_frames == 1

            clf.release.set()
            assert worker.wait_idle(timeout=5.0)
            assert worker.frames_processed == 2
            assert clf.calls == 2
            assert worker.latest_result.angles.right_knee > 45.0
        finally:
            clf.release.set()
            worker.stop()

    def test_submit_after_stop(self, standing_persons, frame_size):
        worker = PipelineWorker(SquatPipeline())
        worker.start()
        worker.stop()
        worker.stop()
        assert worker.submit(standing_persons, *frame_size) is False
        assert worker.worker_thread is None

    def test_reset_waits_for_frame_in_progress(self, standing_persons, frame_size):
        clf = _BlockingClassifier()
        pipeline = SquatPipeline(classifier=clf)
        worker = PipelineWorker(pipeline)
        worker.start()
        resets = []
        try:
            worker.submit(standing_persons, *frame_size, timestamp_ms=0)
            assert clf.started.wait(timeout=5.0)
            assert worker.wait_idle(timeout=0.2) is False

            worker.request_reset(on_reset=lambda: resets.append(pipeline.state.correct_count))
            clf.release.set()
            assert worker.wait_idle(timeout=5.0)

            # the frame finished first, then the reset cleared its count
            assert resets == [0]
            assert pipeline.state.correct_count == 0
            assert worker.latest_result is None
            assert worker.frames_processed == 1
        finally:
            clf.release.set()
            worker.stop()

    def test_reset_drops_waiting_frame(self, standing_persons, frame_size):
        clf = _BlockingClassifier()
        pipeline = SquatPipeline(classifier=clf)
        worker = PipelineWorker(pipeline)
        worker.start()
        try:
            worker.submit(standing_persons, *frame_size, timestamp_ms=0)
            assert clf.started.wait(timeout=5.0)
            worker.submit(standing_persons, *frame_size, timestamp_ms=100)

            worker.request_reset()
            assert worker.dropped_frames == 1

            clf.release.set()
            assert worker.wait_idle(timeout=5.0)
            assert clf.calls == 1
            assert pipeline.state.correct_count == 0
        finally:
            clf.release.set()
            worker.stop()

    def test_reset_when_stopped_applies_immediately(self, standing_persons, frame_size, fake_classifier):
        pipeline = SquatPipeline(classifier=fake_classifier([1]))
        pipeline.process_frame(standing_persons, *frame_size, timestamp_ms=0)
        assert pipeline.state.correct_count == 1

        resets = []
        worker = PipelineWorker(pipeline)
        worker.request_reset(on_reset=lambda: resets.append(True))
        assert resets == [True]
        assert pipeline.state.correct_count == 0

    def test_skipped_frames_reported(self, frame_size):
        with PipelineWorker(SquatPipeline()) as worker:
            worker.submit([], *frame_size, timestamp_ms=0)
            assert worker.wait_idle(timeout=5.0)
            assert worker.latest_result.skipped_reason == "NoPersonDetected"
