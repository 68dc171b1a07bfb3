from typing import Sequence

import cv2
import numpy as np

from .types import FaceObservation, StatusResult


# BGR
GREEN = (129, 185, 16)
RED = (68, 68, 239)
BLUE = (246, 130, 59)
STATUS_COLORS = {
    "safe": GREEN,
    "warning": (11, 158, 245),
    "danger": RED,
}


def draw_detections(frame: np.ndarray, observations: Sequence[FaceObservation]) -> np.ndarray:
    """
    Draw face boxes and landmark dots in place. Boxes turn red as soon as
    more than one face is visible.
    """
    if frame is None or not observations:
        return frame
    color = RED if len(observations) > 1 else GREEN
    for face in observations:
        x1, y1 = (int(round(v)) for v in face.top_left)
        x2, y2 = (int(round(v)) for v in face.bottom_right)
        cv2.rectangle(frame, (x1, y1), (x2, y2), color, 2)
        for lx, ly in face.landmarks:
            cv2.circle(frame, (int(round(lx)), int(round(ly))), 2, BLUE, -1)
    return frame


def draw_status(frame: np.ndarray, status: StatusResult, attention: int) -> np.ndarray:
    """Status badge in the top-left corner plus a colored frame border."""
    if frame is None:
        return frame
    color = STATUS_COLORS.get(status.status, GREEN)
    h, w = frame.shape[:2]
    cv2.rectangle(frame, (0, 0), (w - 1, h - 1), color, 4)
    lines = [status.message, f"Attention: {attention}%"]
    for idx, text in enumerate(lines):
        org = (12, 28 + idx * 22)
        cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 0), 3, cv2.LINE_AA)
        cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 1, cv2.LINE_AA)
    return frame
