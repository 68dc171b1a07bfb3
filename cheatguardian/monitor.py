"""
Live exam monitoring from the webcam (and optionally the microphone).

Usage (from project root, with venv activated):

    python -m cheatguardian.monitor --log session_log.csv --audio

Keys in the preview window: q = quit, space = pause/resume,
a = toggle audio, d = dismiss latest alert.
"""

import argparse
import os
from datetime import datetime

import cv2

from cheatguardian.core.capture import CameraSource, CameraUnavailableError
from cheatguardian.core.config import CAMERA_INDEX, DETECTOR_TIMEOUT_MS, EngineConfig
from cheatguardian.core.face_detector import FaceDetector
from cheatguardian.core.overlay import draw_detections, draw_status
from cheatguardian.core.pipeline import MonitoringPipeline
from cheatguardian.core.types import Alert, TickResult


WINDOW_NAME = "CheatGuardian"


def _print_alert(alert: Alert):
    stamp = datetime.fromtimestamp(alert.timestamp / 1000.0).strftime("%H:%M:%S")
    label = "Cheating Detected" if alert.type == "danger" else "Warning"
    print(f"[{stamp}] {label}: {alert.message}")


def parse_args():
    parser = argparse.ArgumentParser(description="Monitor an exam candidate through the webcam.")
    parser.add_argument("--camera", type=int, default=CAMERA_INDEX, help="Webcam index (default: 0)")
    parser.add_argument(
        "--log",
        type=str,
        default="session_log.csv",
        help="Session CSV log path (default: session_log.csv in project root)",
    )
    parser.add_argument("--audio", action="store_true", help="Also monitor the microphone")
    parser.add_argument(
        "--detector-timeout",
        type=float,
        default=DETECTOR_TIMEOUT_MS,
        help="Milliseconds before a face detection call counts as a dropped frame",
    )
    parser.add_argument("--no-window", action="store_true", help="Run headless (console alerts only)")
    return parser.parse_args()


def main():
    args = parse_args()

    camera = CameraSource(index=args.camera)
    try:
        camera.open()
    except CameraUnavailableError as exc:
        raise SystemExit(f"[Monitor] {exc}")

    width, height = camera.frame_size
    config = EngineConfig(detector_timeout_ms=args.detector_timeout).for_frame_size(width, height)
    print(f"[Monitor] Camera {args.camera} at {width}x{height}, movement threshold "
          f"{config.head_movement_threshold:.1f}px")

    pipeline = MonitoringPipeline(FaceDetector(), config=config)
    pipeline.alerts.subscribe(_print_alert)
    pipeline.start(os.path.abspath(args.log))
    if args.audio and not pipeline.enable_audio():
        print("[Monitor] Audio monitoring unavailable; some detection features will be limited.")

    paused = False

    def on_tick(result: TickResult):
        nonlocal paused
        if args.no_window:
            return
        frame = camera.last_frame
        if frame is not None:
            draw_detections(frame, result.detection.observations)
            draw_status(frame, result.status, result.detection.estimated_attention)
            cv2.imshow(WINDOW_NAME, frame)
        key = cv2.waitKey(1) & 0xFF
        if key == ord("q"):
            pipeline.stop()
        elif key == ord("a"):
            if pipeline.audio_active:
                pipeline.disable_audio()
                print("[Monitor] Audio monitoring disabled")
            elif pipeline.enable_audio():
                print("[Monitor] Audio monitoring enabled")
        elif key == ord("d") and pipeline.alerts.latest is not None:
            pipeline.dismiss_alert(pipeline.alerts.latest.id)
        elif key == ord(" "):
            paused = True
            pipeline.stop()

    try:
        while True:
            pipeline.run(camera, on_tick=on_tick)
            if not paused:
                break
            # Paused: keep the camera open, resume on space
            print("[Monitor] Monitoring paused (space to resume, q to quit)")
            paused = False
            key = cv2.waitKey(0) & 0xFF
            if key != ord(" "):
                break
            pipeline.start()
    except KeyboardInterrupt:
        pass
    finally:
        pipeline.close()
        camera.release()
        if not args.no_window:
            cv2.destroyAllWindows()
        print(f"[Monitor] Session log written to: {pipeline.logger.csv_path}")


if __name__ == "__main__":
    main()
