import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np

from .alerts import AlertManager
from .attention import AttentionEstimator
from .audio_capture import MicrophoneMonitor
from .config import DETECTOR_CLOSE_WAIT_MS, EngineConfig
from .logger import SessionLogger
from .status import derive_status
from .tracker import FacePositionTracker
from .types import Alert, AudioResult, DetectionResult, FaceObservation, TickResult


Detector = Callable[[np.ndarray], Sequence[FaceObservation]]


class MonitoringPipeline:
    """
    Ties together face detection, position tracking, attention, audio noise,
    status rules, alerting and session logging for one candidate.

    One ``tick()`` is one video frame. Ticks never overlap: the detector runs
    on a single worker thread and is awaited with a timeout, and all windows
    and counters are only touched after that call has resolved. A detector
    error or timeout is a dropped tick that leaves the state as it was.
    """

    def __init__(
        self,
        detector: Detector,
        config: Optional[EngineConfig] = None,
        microphone: Optional[MicrophoneMonitor] = None,
        logger: Optional[SessionLogger] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or EngineConfig()
        self.detector = detector
        self.microphone = microphone
        self.logger = logger
        self._clock = clock or (lambda: time.time() * 1000.0)

        self.tracker = FacePositionTracker(
            capacity=self.config.max_head_positions,
            movement_threshold=self.config.head_movement_threshold,
            interval_ms=self.config.position_tracking_interval_ms,
        )
        self.attention = AttentionEstimator(
            frequent_threshold=self.config.frequent_movements_threshold,
            penalty=self.config.attention_penalty,
        )
        self.alerts = AlertManager(cooldown_ms=self.config.alert_cooldown_ms, clock=self._clock)
        self.frames_since_face_detected = 0
        self.last_result: Optional[TickResult] = None

        self._running = False
        self._in_tick = False
        self._generation = 0
        self._detector_executor = ThreadPoolExecutor(max_workers=1)
        self._pending_detection: Future | None = None

    # ----------------------------
    # Session control
    # ----------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def audio_active(self) -> bool:
        return self.microphone is not None and self.microphone.active

    def start(self, log_path: Optional[str] = None):
        if log_path is not None:
            self.logger = SessionLogger(log_path)
        self._running = True
        print("[Pipeline] Monitoring started")

    def stop(self):
        """Halt before the next tick; a tick still waiting on the detector is discarded."""
        if self._running:
            print("[Pipeline] Monitoring stopped")
        self._running = False
        self._generation += 1
        self.disable_audio()

    def close(self, wait_ms: float = DETECTOR_CLOSE_WAIT_MS):
        """
        Stop and release the detector. A detector call that is still running
        (after a timed-out tick) gets ``wait_ms`` to finish; if it does not,
        the detector is left open rather than closed under the worker.
        """
        self.stop()
        pending = self._pending_detection
        self._detector_executor.shutdown(wait=False, cancel_futures=True)
        if pending is not None:
            done, _ = wait([pending], timeout=wait_ms / 1000.0)
            if not done:
                print(f"[Pipeline] Detector still busy after {wait_ms:.0f} ms; leaving it open")
                return
        close = getattr(self.detector, "close", None)
        if callable(close):
            try:
                close()
            except Exception as exc:
                print(f"[Pipeline] Error closing detector: {exc}")

    def reset(self):
        """Forget movement history, absence count and alerts."""
        self.tracker.reset()
        self.attention.reset()
        self.alerts.clear()
        self.frames_since_face_detected = 0
        self.last_result = None

    def enable_audio(self) -> bool:
        """Start the microphone. False means video-only monitoring continues."""
        if self.microphone is None:
            self.microphone = MicrophoneMonitor()
        return self.microphone.start()

    def disable_audio(self):
        if self.microphone is not None and self.microphone.active:
            self.microphone.stop()

    def dismiss_alert(self, alert_id: str) -> bool:
        return self.alerts.dismiss(alert_id)

    # ----------------------------
    # Tick
    # ----------------------------

    def tick(self, frame: np.ndarray, now_ms: float | None = None) -> Optional[TickResult]:
        """
        Run the full pipeline on one frame. Returns None when monitoring is
        stopped (including a stop that happened while the detector was busy).
        """
        if not self._running:
            return None
        now_ms = self._clock() if now_ms is None else now_ms
        if self._in_tick:
            print("[Pipeline] Tick requested while another is running; dropping it")
            return self._finish(DetectionResult(), now_ms, dropped=True)

        self._in_tick = True
        generation = self._generation
        try:
            observations = self._detect(frame)
            if generation != self._generation or not self._running:
                return None
            if observations is None:
                return self._finish(DetectionResult(), now_ms, dropped=True)
            return self._finish(self._update_detection(observations, now_ms), now_ms)
        finally:
            self._in_tick = False

    def run(
        self,
        frames: Iterable[np.ndarray],
        max_ticks: Optional[int] = None,
        on_tick: Optional[Callable[[TickResult], None]] = None,
    ) -> int:
        """Drive ticks from ``frames`` until stopped or the source runs dry."""
        if not self._running:
            self.start()
        interval_s = self.config.tick_interval_ms / 1000.0
        ticks = 0
        for frame in frames:
            if not self._running:
                break
            started = time.monotonic()
            result = self.tick(frame)
            ticks += 1
            if result is not None and on_tick is not None:
                on_tick(result)
            if max_ticks is not None and ticks >= max_ticks:
                break
            remaining = interval_s - (time.monotonic() - started)
            if remaining > 0:
                time.sleep(remaining)
        return ticks

    def _detect(self, frame: np.ndarray) -> Optional[List[FaceObservation]]:
        """Detector call with a bounded wait. None means the tick is dropped."""
        if self._pending_detection is not None and not self._pending_detection.done():
            # Previous call overran its timeout and still holds the worker
            print("[Pipeline] Detector still busy with an earlier frame; dropping tick")
            return None

        timeout_s = self.config.detector_timeout_ms / 1000.0 or None
        self._pending_detection = self._detector_executor.submit(self.detector, frame)
        try:
            return list(self._pending_detection.result(timeout=timeout_s))
        except FutureTimeout:
            print(f"[Pipeline] Detector exceeded {self.config.detector_timeout_ms:.0f} ms; dropping tick")
        except Exception as exc:
            print(f"[Pipeline] Face detection error: {exc}")
        return None

    def _update_detection(self, observations: List[FaceObservation], now_ms: float) -> DetectionResult:
        face_count = len(observations)
        face_present = face_count > 0

        if face_present:
            self.frames_since_face_detected = 0
            sampled = self.tracker.record(observations[0], now_ms)
        else:
            self.frames_since_face_detected += 1
            sampled = False

        looking_away, attention = self.attention.update(
            face_present, self.tracker.significant_movements, sampled
        )
        return DetectionResult(
            face_count=face_count,
            face_present=face_present,
            looking_away=looking_away,
            estimated_attention=attention,
            observations=tuple(observations),
        )

    def _finish(self, detection: DetectionResult, now_ms: float, dropped: bool = False) -> TickResult:
        audio: Optional[AudioResult] = self.microphone.latest if self.audio_active else None
        new_alerts: List[Alert] = []

        if audio is not None and audio.noise_detected:
            alert = self.alerts.notify_audio_event(now_ms)
            if alert is not None:
                new_alerts.append(alert)

        status = derive_status(
            detection,
            self.frames_since_face_detected,
            audio=audio,
            audio_active=self.audio_active,
            disappearance_threshold=self.config.face_disappearance_threshold,
        )
        alert = self.alerts.notify_status(status, now_ms)
        if alert is not None:
            new_alerts.append(alert)

        result = TickResult(
            detection=detection,
            status=status,
            timestamp_ms=now_ms,
            frames_since_face_detected=self.frames_since_face_detected,
            audio=audio,
            new_alerts=tuple(new_alerts),
            dropped=dropped,
        )
        self.last_result = result

        if self.logger is not None:
            self.logger.log_tick(result)
            for alert in new_alerts:
                self.logger.log_alert(alert)
        return result
