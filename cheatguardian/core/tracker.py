from collections import deque
from typing import Deque, Tuple

import numpy as np

from .config import HEAD_MOVEMENT_THRESHOLD, MAX_HEAD_POSITIONS, POSITION_TRACKING_INTERVAL
from .types import FaceObservation, HeadPosition


def centroid(face: FaceObservation) -> Tuple[float, float]:
    (x1, y1), (x2, y2) = face.top_left, face.bottom_right
    return x1 + (x2 - x1) / 2.0, y1 + (y2 - y1) / 2.0


def count_significant_movements(positions, threshold: float) -> int:
    """Number of consecutive sample pairs further apart than ``threshold`` pixels."""
    if len(positions) < 2:
        return 0
    points = np.array([(p.x, p.y) for p in positions], dtype=np.float64)
    distances = np.linalg.norm(np.diff(points, axis=0), axis=1)
    return int(np.count_nonzero(distances > threshold))


class FacePositionTracker:
    """
    Keeps a short, time-debounced history of where the primary face was
    and how often it jumped. Samples are only taken every
    ``interval_ms``, so the window covers a few seconds regardless of frame rate.
    """

    def __init__(
        self,
        capacity: int = MAX_HEAD_POSITIONS,
        movement_threshold: float = HEAD_MOVEMENT_THRESHOLD,
        interval_ms: float = POSITION_TRACKING_INTERVAL,
    ):
        self.capacity = capacity
        self.movement_threshold = movement_threshold
        self.interval_ms = interval_ms
        self._positions: Deque[HeadPosition] = deque(maxlen=capacity)
        self.significant_movements = 0

    @property
    def positions(self) -> Tuple[HeadPosition, ...]:
        return tuple(self._positions)

    def record(self, face: FaceObservation, now_ms: float) -> bool:
        """
        Append the centroid of ``face`` unless the last sample is too recent.
        Returns True when a sample was recorded (and volatility recomputed).
        """
        if self._positions and (now_ms - self._positions[-1].timestamp_ms) <= self.interval_ms:
            return False

        x, y = centroid(face)
        self._positions.append(HeadPosition(x=x, y=y, timestamp_ms=now_ms))
        self.significant_movements = count_significant_movements(
            self._positions, self.movement_threshold
        )
        return True

    def reset(self):
        self._positions.clear()
        self.significant_movements = 0
