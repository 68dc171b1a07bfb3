import threading
from typing import Optional

import numpy as np

from .config import AUDIO_FFT_SIZE, AUDIO_SAMPLE_RATE
from .noise import AudioNoiseAnalyzer, FrequencyAnalyser
from .types import AudioResult


class MicrophoneMonitor:
    """
    Owns the microphone for one session and feeds the noise analyzer from
    PyAudio's sampling callback. Only this callback mutates the analyzer
    window; the video tick just reads ``latest``.

    ``start()`` reports device problems (denied, missing, busy) by returning
    False so the caller can carry on with video-only monitoring.
    """

    def __init__(
        self,
        analyzer: Optional[AudioNoiseAnalyzer] = None,
        rate: int = AUDIO_SAMPLE_RATE,
        fft_size: int = AUDIO_FFT_SIZE,
        device_index: Optional[int] = None,
    ):
        self.analyzer = analyzer or AudioNoiseAnalyzer()
        self.rate = rate
        self.fft_size = fft_size
        self.spectrum = FrequencyAnalyser(fft_size)
        self.device_index = device_index
        self._pa = None
        self._pa_continue = 0
        self._stream = None
        self._lock = threading.Lock()
        self._latest: Optional[AudioResult] = None

    @property
    def active(self) -> bool:
        return self._stream is not None

    @property
    def latest(self) -> Optional[AudioResult]:
        return self._latest

    def start(self) -> bool:
        if self.active:
            return True
        try:
            # Imported here so the analysis side works on machines without PortAudio
            import pyaudio

            self._pa_continue = pyaudio.paContinue
            self._pa = pyaudio.PyAudio()
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=self.rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.fft_size,
                stream_callback=self._on_audio,
            )
            self._stream.start_stream()
        except Exception as exc:
            print(f"[Microphone] Could not access microphone, continuing with video only: {exc}")
            self._release()
            return False
        print(f"[Microphone] Listening at {self.rate} Hz")
        return True

    def stop(self):
        self._release()
        with self._lock:
            self._latest = None
            self.analyzer.clear()
            self.spectrum.reset()

    def process_block(self, block: bytes) -> AudioResult:
        """Run one audio tick on a raw int16 block."""
        samples = np.frombuffer(block, dtype=np.int16).astype(np.float32) / 32768.0
        with self._lock:
            snapshot = self.spectrum.snapshot(samples)
            result = self.analyzer.process(snapshot)
            self._latest = result
        return result

    def _on_audio(self, in_data, frame_count, time_info, status_flags):
        try:
            self.process_block(in_data)
        except Exception as exc:
            print(f"[Microphone] Audio processing error: {exc}")
        return None, self._pa_continue

    def _release(self):
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except Exception as exc:
                print(f"[Microphone] Error closing stream: {exc}")
        pa, self._pa = self._pa, None
        if pa is not None:
            try:
                pa.terminate()
            except Exception as exc:
                print(f"[Microphone] Error releasing audio device: {exc}")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
