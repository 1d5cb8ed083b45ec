"""
Single worker thread for the squat pipeline.

Frames are handed over through a one-slot buffer: a frame that has not
been picked up yet is replaced by the newer one, so the worker never
falls behind the camera.
"""

import logging
import threading
import time
from typing import Optional

from .pipeline import FrameResult, SquatPipeline

logger = logging.getLogger(__name__)


class PipelineWorker:
    def __init__(self, pipeline: SquatPipeline, name: str = "SquatPipelineWorker"):
        self.pipeline = pipeline
        self.name = name

        self._cond = threading.Condition()
        self._pending = None
        self._busy = False
        self._reset_requested = False
        self._reset_callback = None

        self.running = False
        self.worker_thread: Optional[threading.Thread] = None

        # Statistics
        self.latest_result: Optional[FrameResult] = None
        self.frames_processed = 0
        self.dropped_frames = 0

    def start(self):
        if self.running:
            return

        logger.info("Starting pipeline worker")
        self.running = True
        self.worker_thread = threading.Thread(target=self.worker_loop, name=self.name, daemon=True)
        self.worker_thread.start()

    def stop(self):
        with self._cond:
            if not self.running:
                return
            logger.info("Stopping pipeline worker")
            self.running = False
            self._pending = None
            self._cond.notify_all()

        if self.worker_thread is not None:
            self.worker_thread.join()
            self.worker_thread = None

        if self._reset_requested:
            self._reset_requested = False
            self._apply_reset()

    def submit(self, persons, width, height, timestamp_ms=None) -> bool:
        """Queue a frame, replacing any frame still waiting. False if stopped."""
        if timestamp_ms is None:
            timestamp_ms = time.monotonic() * 1000.0

        with self._cond:
            if not self.running:
                return False
            if self._pending is not None:
                self.dropped_frames += 1
            self._pending = (persons, width, height, timestamp_ms)
            self._cond.notify_all()
        return True

    def request_reset(self, on_reset=None):
        """
        Start a new session on the worker thread, after the frame in progress.
        A frame still waiting in the slot belongs to the old session and is dropped.
        on_reset runs on the worker thread right after the reset.
        """
        with self._cond:
            self._reset_callback = on_reset
            if not self.running:
                self._apply_reset()
                return
            if self._pending is not None:
                self._pending = None
                self.dropped_frames += 1
            self._reset_requested = True
            self._cond.notify_all()

    def wait_idle(self, timeout=None) -> bool:
        """Block until no frame or reset is pending or in progress."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._pending is None and not self._reset_requested and not self._busy,
                timeout,
            )

    def _apply_reset(self):
        self.pipeline.reset()
        callback, self._reset_callback = self._reset_callback, None
        if callback is not None:
            callback()

    def worker_loop(self):
        while True:
            with self._cond:
                while self.running and self._pending is None and not self._reset_requested:
                    self._cond.wait()
                if not self.running:
                    return
                reset, self._reset_requested = self._reset_requested, False
                frame = None
                if not reset:
                    frame, self._pending = self._pending, None
                self._busy = True

            result = None
            if reset:
                self._apply_reset()
            else:
                try:
                    result = self.pipeline.process_frame(*frame)
                except Exception:
                    logger.exception("Pipeline failed on frame")

            with self._cond:
                self._busy = False
                if reset:
                    self.latest_result = None
                else:
                    self.frames_processed += 1
                if result is not None:
                    self.latest_result = result
                self._cond.notify_all()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
