"""
Audio noise window, spectrum snapshots and the microphone block handler.
No audio device is opened here.
"""

import sys
from types import SimpleNamespace

import numpy as np
import pytest

from cheatguardian.core.audio_capture import MicrophoneMonitor
from cheatguardian.core.noise import (
    AudioNoiseAnalyzer,
    FrequencyAnalyser,
    frequency_snapshot,
    volume_from_snapshot,
)


def _tone(amplitude: float = 0.05, cycles: int = 16, size: int = 256) -> np.ndarray:
    t = np.arange(size)
    return amplitude * np.sin(2 * np.pi * cycles * t / size)


class TestNoiseWindow:

    def test_window_is_bounded(self):
        analyzer = AudioNoiseAnalyzer(capacity=20)
        for i in range(50):
            analyzer.add_volume((i % 10) / 10.0)
            assert len(analyzer.window) <= 20
        assert len(analyzer.window) == 20

    def test_low_confidence_until_enough_samples(self):
        analyzer = AudioNoiseAnalyzer(min_samples=5)
        values = [0.0, 1.0, 0.0, 1.0, 0.0]
        for v in values:
            result = analyzer.add_volume(v)
            assert not result.noise_detected
            assert result.noise_level == 0.0
            assert result.volume_level == v
        # Sixth sample is the first one that is judged
        result = analyzer.add_volume(1.0)
        assert result.noise_level == pytest.approx(0.25)
        assert result.noise_detected

    def test_constant_volume_is_not_noise(self):
        analyzer = AudioNoiseAnalyzer()
        for _ in range(6):
            result = analyzer.add_volume(0.05)
        assert result.noise_level == pytest.approx(0.0)
        assert not result.noise_detected

    def test_constant_loud_volume_is_not_noise(self):
        analyzer = AudioNoiseAnalyzer()
        for _ in range(10):
            result = analyzer.add_volume(0.9)
        assert not result.noise_detected

    def test_quiet_room_never_flags(self):
        analyzer = AudioNoiseAnalyzer(volume_floor=0.1)
        for v in [1.0, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0]:
            analyzer.add_volume(v)
        # High variance, but the current volume is below the floor
        result = analyzer.add_volume(0.0)
        assert result.noise_level > 0.2
        assert not result.noise_detected

    def test_order_does_not_change_variance(self):
        values = [0.1, 0.9, 0.4, 0.7, 0.2, 0.8, 0.3]
        a = AudioNoiseAnalyzer()
        b = AudioNoiseAnalyzer()
        for v in values:
            ra = a.add_volume(v)
        for v in reversed(values):
            rb = b.add_volume(v)
        assert ra.noise_level == pytest.approx(rb.noise_level)

    def test_volume_is_clamped(self):
        analyzer = AudioNoiseAnalyzer()
        assert analyzer.add_volume(3.0).volume_level == 1.0
        assert analyzer.add_volume(-1.0).volume_level == 0.0

    def test_clear_keeps_window_object(self):
        analyzer = AudioNoiseAnalyzer()
        window = analyzer.window
        analyzer.add_volume(0.5)
        analyzer.clear()
        assert analyzer.window is window
        assert len(window) == 0


class TestSpectrum:

    def test_silence_maps_to_zero(self):
        snapshot = frequency_snapshot(np.zeros(256, dtype=np.float32))
        assert snapshot.shape == (128,)
        assert snapshot.dtype == np.uint8
        assert snapshot.max() == 0
        assert volume_from_snapshot(snapshot) == 0.0

    def test_short_block_is_padded(self):
        snapshot = frequency_snapshot(np.zeros(10), fft_size=64)
        assert snapshot.shape == (32,)

    def test_tone_raises_its_bin(self):
        t = np.arange(256)
        tone = 0.05 * np.sin(2 * np.pi * 16 * t / 256)
        snapshot = frequency_snapshot(tone)
        assert int(np.argmax(snapshot)) == 16
        assert snapshot.max() > 150
        assert 0.0 < volume_from_snapshot(snapshot) <= 1.0

    def test_volume_of_empty_snapshot(self):
        assert volume_from_snapshot([]) == 0.0
        assert volume_from_snapshot([255, 255]) == 1.0


    def test_smoothing_off_matches_single_block(self):
        tone = _tone()
        analyser = FrequencyAnalyser(smoothing=0.0)
        np.testing.assert_array_equal(analyser.snapshot(tone), frequency_snapshot(tone))

    def test_smoothing_rises_and_decays(self):
        tone = _tone()
        analyser = FrequencyAnalyser(smoothing=0.8)
        levels = [int(analyser.snapshot(tone).max()) for _ in range(4)]
        assert levels == sorted(levels)
        assert levels[0] < frequency_snapshot(tone).max()

        # Silence after a tone fades out instead of dropping to zero
        after = analyser.snapshot(np.zeros(256))
        assert 0 < after.max() < levels[-1]

        analyser.reset()
        assert analyser.snapshot(np.zeros(256)).max() == 0

    def test_invalid_smoothing(self):
        with pytest.raises(ValueError):
            FrequencyAnalyser(smoothing=1.5)


class TestMicrophoneMonitor:

    def test_process_block_updates_latest(self):
        mic = MicrophoneMonitor(fft_size=256)
        assert not mic.active
        assert mic.latest is None

        result = mic.process_block(np.zeros(256, dtype=np.int16).tobytes())
        assert result.volume_level == 0.0
        assert mic.latest == result
        assert len(mic.analyzer.window) == 1

    def test_stop_clears_window(self):
        mic = MicrophoneMonitor()
        tone = (0.5 * 32767 * np.sin(np.arange(256) / 4.0)).astype(np.int16)
        for _ in range(3):
            mic.process_block(tone.tobytes())
        mic.stop()
        assert mic.latest is None
        assert len(mic.analyzer.window) == 0

    def test_stop_resets_spectrum(self):
        mic = MicrophoneMonitor()
        loud = (_tone(0.5) * 32767).astype(np.int16)
        mic.process_block(loud.tobytes())
        mic.stop()

        result = mic.process_block(np.zeros(256, dtype=np.int16).tobytes())
        assert result.volume_level == 0.0

    def test_start_without_pyaudio_falls_back(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "pyaudio", None)
        mic = MicrophoneMonitor()
        assert mic.start() is False
        assert not mic.active

    def test_start_survives_failing_device_release(self, monkeypatch):
        class BrokenPyAudio:
            def open(self, **kwargs):
                raise OSError("Device unavailable")

            def terminate(self):
                raise OSError("PortAudio not initialized")

        fake = SimpleNamespace(paContinue=0, paInt16=8, PyAudio=BrokenPyAudio)
        monkeypatch.setitem(sys.modules, "pyaudio", fake)

        mic = MicrophoneMonitor()
        assert mic.start() is False
        assert not mic.active
        # Released state allows a clean stop afterwards
        mic.stop()
