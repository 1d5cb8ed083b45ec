import cv2

from .classifier import PostureLabel

LABEL_TEXT = {
    PostureLabel.STAND: "STAND",
    PostureLabel.GOOD_FORM: "GOOD FORM",
    PostureLabel.BAD_FORM: "BAD FORM",
    PostureLabel.UNKNOWN: "SQUAT!",
}

LABEL_COLOR = {
    PostureLabel.GOOD_FORM: (250, 150, 70),   # BGR
    PostureLabel.BAD_FORM: (65, 65, 250),
}

BONES = [
    ("left_shoulder", "right_shoulder"),
    ("left_shoulder", "left_hip"),
    ("right_shoulder", "right_hip"),
    ("left_hip", "right_hip"),
    ("left_hip", "left_knee"),
    ("right_hip", "right_knee"),
    ("left_knee", "left_ankle"),
    ("right_knee", "right_ankle"),
]


def draw_overlay(frame, snapshot=None, angles=None, label=None):
    """
    Draw rep count, goal progress, correct % and the current label on a
    translucent top bar; knee/hip angles along the bottom.
    """
    h, w = frame.shape[:2]

    # translucent top bar
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, 140), (0, 0, 0), -1)
    frame = cv2.addWeighted(overlay, 0.4, frame, 0.6, 0)

    squats = 0 if snapshot is None else snapshot.squat_count
    goal_pct = 0.0 if snapshot is None else snapshot.goal_pct
    correct_pct = 0.0 if snapshot is None else snapshot.correct_pct
    if label is None:
        label = PostureLabel.UNKNOWN if snapshot is None else snapshot.label
    label = PostureLabel.from_index(label)

    text_reps = f"Squats: {squats}  Goal: {goal_pct:.1f}%"
    text_score = f"Correct: {correct_pct:.1f}%"
    text_label = f"Posture: {LABEL_TEXT[label]}"
    color = LABEL_COLOR.get(label, (70, 70, 70))

    cv2.putText(frame, text_reps, (10, 45), cv2.FONT_HERSHEY_SIMPLEX, 1.4, (0, 255, 0), 4)
    cv2.putText(frame, text_score, (10, 90), cv2.FONT_HERSHEY_SIMPLEX, 1.2, color, 3)
    cv2.putText(frame, text_label, (10, 130), cv2.FONT_HERSHEY_SIMPLEX, 1.1, (255, 255, 255), 3)

    if angles is not None:
        t = (f"Knee R/L: {angles.right_knee:.1f}/{angles.left_knee:.1f}  "
             f"Hip R/L: {angles.right_hip:.1f}/{angles.left_hip:.1f} deg")
        cv2.putText(frame, t, (10, h - 30), cv2.FONT_HERSHEY_SIMPLEX, 0.9, (255, 200, 0), 2)

    return frame


def draw_joints(frame, joints):
    """Draw the 8 tracked joints and the leg/torso bones in place."""
    if not joints:
        return frame
    for a, b in BONES:
        pa, pb = joints.get(a), joints.get(b)
        if pa is None or pb is None:
            continue
        cv2.line(frame, (int(pa.x), int(pa.y)), (int(pb.x), int(pb.y)), (255, 255, 255), 2)
    for p in joints.values():
        cv2.circle(frame, (int(p.x), int(p.y)), 5, (0, 0, 255), -1)
    return frame
