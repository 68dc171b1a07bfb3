"""
Preview drawing and camera wrapper behavior that needs no device.
"""

import numpy as np

from cheatguardian.core.capture import CameraSource
from cheatguardian.core.overlay import GREEN, RED, STATUS_COLORS, draw_detections, draw_status
from cheatguardian.core.types import FaceObservation, StatusResult


def _blank(width: int = 640, height: int = 480) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)


def test_single_face_box_is_green():
    frame = _blank()
    face = FaceObservation(top_left=(100, 100), bottom_right=(200, 220))
    draw_detections(frame, [face])
    assert tuple(frame[100, 150]) == GREEN


def test_multiple_face_boxes_are_red():
    frame = _blank()
    faces = [
        FaceObservation(top_left=(100, 100), bottom_right=(200, 220)),
        FaceObservation(top_left=(400, 100), bottom_right=(500, 220)),
    ]
    draw_detections(frame, faces)
    assert tuple(frame[100, 150]) == RED
    assert tuple(frame[100, 450]) == RED


def test_no_faces_leaves_frame_untouched():
    frame = _blank()
    draw_detections(frame, [])
    assert not frame.any()


def test_status_border_color():
    frame = _blank()
    draw_status(frame, StatusResult("danger", "No face detected in frame"), 0)
    assert tuple(frame[479, 320]) == STATUS_COLORS["danger"]


def test_camera_before_open():
    camera = CameraSource(index=0, size=(320, 240))
    assert camera.frame_size == (320, 240)
    assert camera.grab() is None
    assert list(camera) == []
    camera.release()
