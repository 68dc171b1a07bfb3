from collections import deque
from typing import Deque, Sequence

import numpy as np

from .config import (
    AUDIO_FFT_SIZE,
    MAX_NOISE_SAMPLES,
    MIN_NOISE_SAMPLES,
    NOISE_THRESHOLD,
    SPECTRUM_SMOOTHING,
    VOLUME_FLOOR,
)
from .types import AudioResult


# Analyser range used to map magnitudes to bytes (same as browser defaults)
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0


def _magnitudes(samples: np.ndarray, fft_size: int) -> np.ndarray:
    """Linear magnitudes of the last ``fft_size`` samples (zero-padded), Blackman windowed."""
    block = np.asarray(samples, dtype=np.float32).ravel()[-fft_size:]
    if block.size < fft_size:
        block = np.pad(block, (fft_size - block.size, 0))
    spectrum = np.fft.rfft(block * np.blackman(fft_size))[: fft_size // 2]
    return np.abs(spectrum).astype(np.float64) / fft_size


def _to_bytes(magnitude: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore"):
        decibels = 20.0 * np.log10(magnitude)
    scaled = (decibels - MIN_DECIBELS) * (255.0 / (MAX_DECIBELS - MIN_DECIBELS))
    return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)


def frequency_snapshot(samples: np.ndarray, fft_size: int = AUDIO_FFT_SIZE) -> np.ndarray:
    """
    Convert one block of float PCM samples (-1..1) into ``fft_size // 2`` byte magnitudes,
    mapping the dB range [MIN_DECIBELS, MAX_DECIBELS] onto 0-255.

    This looks at a single block only; a live stream should go through
    ``FrequencyAnalyser`` so magnitudes are averaged over time.
    """
    return _to_bytes(_magnitudes(samples, fft_size))


class FrequencyAnalyser:
    """
    Running byte spectrum for a live audio stream. Each block's magnitudes are
    blended with the previous ones, ``smoothing * previous + (1 - smoothing) * current``,
    before the dB mapping, so short clicks do not make the volume jump.
    """

    def __init__(self, fft_size: int = AUDIO_FFT_SIZE, smoothing: float = SPECTRUM_SMOOTHING):
        if not 0.0 <= smoothing <= 1.0:
            raise ValueError(f"smoothing must be within [0, 1] (got {smoothing})")
        self.fft_size = fft_size
        self.smoothing = smoothing
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)

    def snapshot(self, samples: np.ndarray) -> np.ndarray:
        current = _magnitudes(samples, self.fft_size)
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * current
        return _to_bytes(self._smoothed)

    def reset(self):
        self._smoothed = np.zeros(self.fft_size // 2, dtype=np.float64)


def volume_from_snapshot(snapshot: Sequence[int]) -> float:
    """Mean byte magnitude normalized to 0-1."""
    data = np.asarray(snapshot, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(data.mean() / 255.0)


class AudioNoiseAnalyzer:
    """
    Rolling volume window. Talking or whispering makes the volume jump
    around, so high variance over the last couple of seconds (with the room
    not silent) is treated as suspicious noise.
    """

    def __init__(
        self,
        capacity: int = MAX_NOISE_SAMPLES,
        min_samples: int = MIN_NOISE_SAMPLES,
        noise_threshold: float = NOISE_THRESHOLD,
        volume_floor: float = VOLUME_FLOOR,
    ):
        self.capacity = capacity
        self.min_samples = min_samples
        self.noise_threshold = noise_threshold
        self.volume_floor = volume_floor
        self.window: Deque[float] = deque(maxlen=capacity)

    def process(self, snapshot: Sequence[int]) -> AudioResult:
        return self.add_volume(volume_from_snapshot(snapshot))

    def add_volume(self, volume: float) -> AudioResult:
        volume = min(1.0, max(0.0, float(volume)))
        self.window.append(volume)

        # Fewer samples than this is a low-confidence state, not an error
        if len(self.window) <= self.min_samples:
            return AudioResult(noise_detected=False, noise_level=0.0, volume_level=volume)

        variance = float(np.var(np.fromiter(self.window, dtype=np.float64)))
        return AudioResult(
            noise_detected=variance > self.noise_threshold and volume > self.volume_floor,
            noise_level=variance,
            volume_level=volume,
        )

    def clear(self):
        # Same deque object is kept so a restarted microphone reuses it
        self.window.clear()
