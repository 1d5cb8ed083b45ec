import argparse
import logging
import time
from pathlib import Path

import cv2
import numpy as np
from ultralytics import YOLO

from . import overlay
from .classifier import load_classifier
from .config import (
    DEFAULT_CLASSIFIER_PATH,
    DEFAULT_MODEL_PATH,
    MIN_INFER_INTERVAL_MS,
    REQUIRED_STABLE_FRAMES,
    SQUAT_GOAL,
    PipelineConfig,
)
from .export import CallbackExporter, Exporter, NoOpExporter, PrintExporter
from .pipeline import SquatPipeline
from .pose import ensure_model_path, landmarks_from_result
from .worker import PipelineWorker


def build_exporter(args) -> Exporter:
    if not args.export:
        return NoOpExporter()
    return PrintExporter(enabled=True, destination=args.export_destination)


def build_parser():
    parser = argparse.ArgumentParser(description="Squat rep counter (YOLO pose + posture classifier).")
    parser.add_argument("--model", type=str, default=str(DEFAULT_MODEL_PATH),
                        help="Path to YOLO pose model (e.g., yolov8n-pose.pt)")
    parser.add_argument("--classifier", type=str, default=str(DEFAULT_CLASSIFIER_PATH),
                        help="Path to the ONNX posture classifier.")
    parser.add_argument("--video", type=str, default=None,
                        help="Path to video file. If not set, use webcam.")
    parser.add_argument("--camera", type=int, default=0,
                        help="Camera index (webcam mode only).")
    parser.add_argument("--interval-ms", type=float, default=MIN_INFER_INTERVAL_MS,
                        help="Minimum milliseconds between classifier calls.")
    parser.add_argument("--stable-frames", type=int, default=REQUIRED_STABLE_FRAMES,
                        help="Consecutive identical labels needed to confirm a posture.")
    parser.add_argument("--goal", type=int, default=SQUAT_GOAL,
                        help="Squat goal for the progress percentage.")
    parser.add_argument("--export", action="store_true",
                        help="Print a line for every counted rep.")
    parser.add_argument("--export-destination", type=str, default=None,
                        help="Export destination label (informational).")
    parser.add_argument("--no-display", action="store_true",
                        help="Run without an OpenCV window.")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logs.")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = PipelineConfig(
        min_inference_interval_ms=args.interval_ms,
        required_stable_frames=args.stable_frames,
        squat_goal=args.goal,
    )
    try:
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    model_path = ensure_model_path(Path(args.model))
    print(f"Loading model: {model_path}")
    model = YOLO(str(model_path))

    display = {"snapshot": None}

    def on_snapshot(snapshot):
        display["snapshot"] = snapshot

    pipeline = SquatPipeline(
        config=config,
        classifier_loader=lambda: load_classifier(args.classifier),
        exporters=[build_exporter(args)],
    )
    if not args.no_display:
        pipeline.add_exporter(CallbackExporter(on_snapshot))
    if pipeline.degraded:
        print(f"Posture classifier unavailable ({pipeline.classifier_error}); counting disabled.")

    source = args.camera if args.video is None else args.video
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        print("Error: Could not open video source.")
        pipeline.close()
        return 1
    if args.video is None:
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

    window_name = "Squat Counter"
    if not args.no_display:
        cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
        print("Press 'q' to quit, 'r' to reset the session.")

    worker = PipelineWorker(pipeline)
    worker.start()

    try:
        while True:
            ret, frame = cap.read()
            if not ret or frame is None:
                if args.video is not None:
                    break
                frame = np.zeros((480, 640, 3), dtype=np.uint8)
                cv2.putText(frame, "NO FRAME", (10, 60),
                            cv2.FONT_HERSHEY_SIMPLEX, 1.4, (0, 0, 255), 3)
            else:
                frame_h, frame_w = frame.shape[:2]
                result = model(frame, verbose=False)[0]
                persons = landmarks_from_result(result, frame_w, frame_h)
                worker.submit(persons, frame_w, frame_h, time.monotonic() * 1000.0)

            if args.no_display:
                continue

            latest = worker.latest_result
            snapshot = display["snapshot"]
            if latest is not None and latest.joints is not None:
                overlay.draw_joints(frame, latest.joints)
            frame = overlay.draw_overlay(
                frame,
                snapshot,
                angles=None if latest is None else latest.angles,
            )

            cv2.imshow(window_name, frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                worker.request_reset(on_reset=lambda: display.update(snapshot=None))
    finally:
        worker.stop()
        cap.release()
        if not args.no_display:
            cv2.destroyAllWindows()
        stats = pipeline.stats()
        state = pipeline.state
        pipeline.close()
        print(
            f"Finished. squats={state.squat_count} correct={state.correct_count} "
            f"wrong={state.wrong_count} correct_pct={stats.correct_pct:.1f} goal_pct={stats.goal_pct:.1f}"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
