from dataclasses import dataclass
from pathlib import Path

# ===============================
# CONFIG / TUNING PARAMETERS
# ===============================

# --- Model download/cache ---
MODEL_DIR = Path("models")
DEFAULT_MODEL_NAME = "yolov8n-pose.pt"
DEFAULT_MODEL_URL = (
    "https://github.com/ultralytics/assets/releases/download/v0.0.0/yolov8n-pose.pt"
)
DEFAULT_MODEL_PATH = MODEL_DIR / DEFAULT_MODEL_NAME

# --- Posture classifier (3 classes: stand / good form / bad form) ---
DEFAULT_CLASSIFIER_NAME = "squat_model_with_scaler.onnx"
DEFAULT_CLASSIFIER_PATH = MODEL_DIR / DEFAULT_CLASSIFIER_NAME

# --- Pose & detection ---
MIN_KEYPOINT_CONFIDENCE = 0.4   # TUNE_ME: raise if jittery/missing keypoints
NUM_BODY_LANDMARKS = 33         # landmark slots in the full body model

# --- Classifier rate limit ---
MIN_INFER_INTERVAL_MS = 100     # TUNE_ME: at most one classification per interval

# --- Label debounce ---
REQUIRED_STABLE_FRAMES = 3      # TUNE_ME: consecutive identical labels before a label is confirmed

# --- Session goal ---
SQUAT_GOAL = 100                # reps for 100% goal progress


@dataclass
class PipelineConfig:
    """Per-session options; defaults come from the constants above."""

    min_inference_interval_ms: float = MIN_INFER_INTERVAL_MS
    required_stable_frames: int = REQUIRED_STABLE_FRAMES
    squat_goal: int = SQUAT_GOAL

    def validate(self):
        if self.min_inference_interval_ms < 0:
            raise ValueError(
                f"min_inference_interval_ms must be >= 0, got {self.min_inference_interval_ms}"
            )
        if self.required_stable_frames < 1:
            raise ValueError(
                f"required_stable_frames must be >= 1, got {self.required_stable_frames}"
            )
        if self.squat_goal < 0:
            raise ValueError(f"squat_goal must be >= 0, got {self.squat_goal}")
        return self
