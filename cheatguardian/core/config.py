import math
from dataclasses import dataclass, fields, replace

# ==== Face position tracking ====
MAX_HEAD_POSITIONS = 15             # Retained centroid samples (oldest evicted first)
HEAD_MOVEMENT_THRESHOLD = 25.0      # Pixels between samples that count as a significant movement
FREQUENT_MOVEMENTS_THRESHOLD = 3    # Significant movements in the window => looking away
POSITION_TRACKING_INTERVAL = 300    # ms between recorded centroid samples
ATTENTION_PENALTY = 20              # Attention points lost per significant movement

# ==== Face presence ====
FACE_DISAPPEARANCE_THRESHOLD = 3    # Consecutive ticks without a face before danger

# ==== Audio ====
MAX_NOISE_SAMPLES = 20              # Retained volume samples
MIN_NOISE_SAMPLES = 5               # Variance is only trusted above this many samples
NOISE_THRESHOLD = 0.2               # Variance above this is suspicious
VOLUME_FLOOR = 0.1                  # Ignore variance while the room is near silent
AUDIO_FFT_SIZE = 256                # Snapshot has AUDIO_FFT_SIZE // 2 magnitude bins
SPECTRUM_SMOOTHING = 0.8            # Weight of the previous spectrum when averaging blocks
AUDIO_SAMPLE_RATE = 16000

# ==== Alerts ====
ALERT_COOLDOWN = 10000              # ms before the same message may alert again

# ==== Capture / scheduling ====
REFERENCE_FRAME_SIZE = (640, 480)   # Pixel thresholds are defined at this resolution
DETECTOR_TIMEOUT_MS = 1000          # Slower detector calls are dropped ticks
DETECTOR_CLOSE_WAIT_MS = 2000       # Grace period for an in-flight detector call on shutdown
TICK_INTERVAL_MS = 0                # 0 = next tick as soon as the previous settles
CAMERA_INDEX = 0


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunables for one monitoring session. Defaults mirror the module constants,
    which are the values the thresholds were calibrated with at 640x480.
    """

    max_head_positions: int = MAX_HEAD_POSITIONS
    head_movement_threshold: float = HEAD_MOVEMENT_THRESHOLD
    frequent_movements_threshold: int = FREQUENT_MOVEMENTS_THRESHOLD
    position_tracking_interval_ms: float = POSITION_TRACKING_INTERVAL
    attention_penalty: int = ATTENTION_PENALTY
    face_disappearance_threshold: int = FACE_DISAPPEARANCE_THRESHOLD
    max_noise_samples: int = MAX_NOISE_SAMPLES
    min_noise_samples: int = MIN_NOISE_SAMPLES
    noise_threshold: float = NOISE_THRESHOLD
    volume_floor: float = VOLUME_FLOOR
    alert_cooldown_ms: float = ALERT_COOLDOWN
    detector_timeout_ms: float = DETECTOR_TIMEOUT_MS
    tick_interval_ms: float = TICK_INTERVAL_MS

    def __post_init__(self):
        for name in ("max_head_positions", "max_noise_samples", "face_disappearance_threshold",
                     "frequent_movements_threshold"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1 (got {getattr(self, name)})")
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise ValueError(f"{f.name} must be non-negative (got {value})")
        if self.min_noise_samples >= self.max_noise_samples:
            raise ValueError("min_noise_samples must be smaller than max_noise_samples")

    def with_overrides(self, **overrides) -> "EngineConfig":
        return replace(self, **overrides)

    def for_frame_size(self, width: int, height: int) -> "EngineConfig":
        """
        Rescale pixel thresholds for a frame that is not 640x480.
        Movement is a Euclidean distance, so the frame diagonal is used as the scale.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid frame size {width}x{height}")
        ref_w, ref_h = REFERENCE_FRAME_SIZE
        scale = math.hypot(width, height) / math.hypot(ref_w, ref_h)
        return replace(self, head_movement_threshold=self.head_movement_threshold * scale)
