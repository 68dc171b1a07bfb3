from typing import Iterator, Optional, Tuple

import cv2
import numpy as np

from .config import CAMERA_INDEX, REFERENCE_FRAME_SIZE


class CameraUnavailableError(RuntimeError):
    """The webcam could not be opened; monitoring cannot run without video."""


class CameraSource:
    """
    Wrapper around cv2.VideoCapture for the candidate's webcam.
    Iterating yields BGR frames until the camera stops delivering.
    """

    def __init__(self, index: int = CAMERA_INDEX, size: Tuple[int, int] = REFERENCE_FRAME_SIZE):
        self.index = index
        self.size = size
        self._cap: Optional[cv2.VideoCapture] = None
        self.last_frame: Optional[np.ndarray] = None

    def open(self):
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailableError(
                f"Could not access webcam {self.index}. Check that it is connected and permitted."
            )
        width, height = self.size
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self._cap = cap

    @property
    def frame_size(self) -> Tuple[int, int]:
        """Actual (width, height) delivered by the device."""
        if self._cap is None:
            return self.size
        return (
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.size[0],
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.size[1],
        )

    def grab(self) -> Optional[np.ndarray]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None or frame.size == 0:
            return None
        self.last_frame = frame
        return frame

    def release(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __iter__(self) -> Iterator[np.ndarray]:
        while True:
            frame = self.grab()
            if frame is None:
                print("[Camera] No frame received, stopping capture")
                return
            yield frame

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
