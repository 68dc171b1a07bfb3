from dataclasses import dataclass
from typing import Literal, Optional, Tuple


Point = Tuple[float, float]
StatusLevel = Literal["safe", "warning", "danger"]
AlertType = Literal["warning", "danger"]


@dataclass(frozen=True)
class FaceObservation:
    top_left: Point
    bottom_right: Point
    landmarks: Tuple[Point, ...] = ()
    score: Optional[float] = None

    @property
    def width(self) -> float:
        return self.bottom_right[0] - self.top_left[0]

    @property
    def height(self) -> float:
        return self.bottom_right[1] - self.top_left[1]


@dataclass(frozen=True)
class HeadPosition:
    x: float
    y: float
    timestamp_ms: float


@dataclass(frozen=True)
class DetectionResult:
    face_count: int = 0
    face_present: bool = False
    looking_away: bool = False
    estimated_attention: int = 0
    observations: Tuple[FaceObservation, ...] = ()


@dataclass(frozen=True)
class AudioResult:
    noise_detected: bool = False
    noise_level: float = 0.0
    volume_level: float = 0.0


@dataclass(frozen=True)
class StatusResult:
    status: StatusLevel
    message: str


@dataclass(frozen=True)
class Alert:
    id: str
    message: str
    type: AlertType
    timestamp: float  # epoch milliseconds


@dataclass(frozen=True)
class TickResult:
    detection: DetectionResult
    status: StatusResult
    timestamp_ms: float
    frames_since_face_detected: int
    audio: Optional[AudioResult] = None
    new_alerts: Tuple[Alert, ...] = ()
    dropped: bool = False
