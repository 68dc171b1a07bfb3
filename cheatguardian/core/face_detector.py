from typing import List

import cv2
import mediapipe as mp
import numpy as np

from .types import FaceObservation


class FaceDetector:
    """
    Wrapper around MediaPipe face detection that tries both close-range (model 0)
    and long-range (model 1) detectors, automatically falling back when the first
    one returns no faces.

    Callable: ``detector(frame_bgr) -> List[FaceObservation]`` in pixel coordinates,
    in MediaPipe's own ranking (the first face is treated as the candidate).
    """

    def __init__(self, min_confidence: float = 0.6, max_faces: int = 3):
        self.max_faces = max_faces
        self.mp_face_detection = mp.solutions.face_detection
        self.detectors = [
            self.mp_face_detection.FaceDetection(
                model_selection=0, min_detection_confidence=min_confidence
            ),
            self.mp_face_detection.FaceDetection(
                model_selection=1, min_detection_confidence=min_confidence * 0.9
            ),
        ]

    def __call__(self, frame_bgr: np.ndarray) -> List[FaceObservation]:
        return self.detect(frame_bgr)

    def detect(self, frame_bgr: np.ndarray) -> List[FaceObservation]:
        for detector in self.detectors:
            faces = self._run_detector(detector, frame_bgr)
            if faces:
                return faces[: self.max_faces]
        return []

    def close(self):
        for detector in self.detectors:
            detector.close()

    def _run_detector(self, detector, frame_bgr: np.ndarray) -> List[FaceObservation]:
        h, w = frame_bgr.shape[:2]
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = detector.process(frame_rgb)
        faces: List[FaceObservation] = []
        if not results.detections:
            return faces
        for det in results.detections:
            bbox = det.location_data.relative_bounding_box
            x1 = bbox.xmin * w
            y1 = bbox.ymin * h
            keypoints = tuple(
                (kp.x * w, kp.y * h) for kp in det.location_data.relative_keypoints
            )
            faces.append(
                FaceObservation(
                    top_left=(x1, y1),
                    bottom_right=(x1 + bbox.width * w, y1 + bbox.height * h),
                    landmarks=keypoints,
                    score=float(det.score[0]) if det.score else None,
                )
            )
        return faces
