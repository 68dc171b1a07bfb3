import csv
import os
import tempfile
from datetime import datetime, timezone
from typing import List

import pandas as pd

from .types import Alert, TickResult


LOG_FIELDS = [
    "timestamp",
    "timestamp_ms",
    "event",
    "status",
    "message",
    "face_count",
    "face_present",
    "looking_away",
    "attention",
    "frames_since_face",
    "noise_detected",
    "noise_level",
    "volume_level",
    "dropped",
    "alert_id",
    "alert_type",
]


def queue_path(csv_path: str) -> str:
    return os.path.splitext(csv_path)[0] + "_queue.tmp"


def read_session_log(csv_path: str) -> pd.DataFrame:
    """
    Read a session log plus its queue file (rows written while the log was
    locked), ordered by time. Read-only: missing or empty files give an
    empty frame with the log columns.
    """
    frames: List[pd.DataFrame] = []

    for path in [csv_path, queue_path(csv_path)]:
        if not os.path.exists(path):
            continue
        df = _read_csv_safe(path)
        if not df.empty:
            frames.append(df)

    if not frames:
        return pd.DataFrame(columns=LOG_FIELDS)

    combined = pd.concat(frames, ignore_index=True)

    for field in LOG_FIELDS:
        if field not in combined.columns:
            combined[field] = ""
    combined = combined[LOG_FIELDS]
    return combined.sort_values("timestamp_ms", kind="stable").reset_index(drop=True)


def _read_csv_safe(path: str) -> pd.DataFrame:
    """Read CSV while tolerating bad lines."""
    try:
        return pd.read_csv(path, on_bad_lines="skip", encoding="utf-8")
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=LOG_FIELDS)
    except Exception as exc:
        print(f"[CheatGuardian] CSV read warning for {os.path.basename(path)}: {exc}")
        return pd.DataFrame(columns=LOG_FIELDS)


class SessionLogger:
    """
    Handles CSV logging of ticks and alerts while tolerating locked files
    (e.g., when the log is open in Excel during the exam).
    Falls back to a temp queue file if the target CSV cannot be written.
    """

    def __init__(self, csv_path: str):
        self.csv_path = csv_path
        self.temp_csv_path = queue_path(csv_path)
        self._perm_warned = False

        os.makedirs(os.path.dirname(os.path.abspath(csv_path)), exist_ok=True)
        self._ensure_header(self.csv_path)

    def log_tick(self, result: TickResult):
        """Append one row per tick; never raises to keep the tick loop alive."""
        audio = result.audio
        det = result.detection
        self._append(
            {
                "timestamp": self._iso(result.timestamp_ms),
                "timestamp_ms": f"{result.timestamp_ms:.0f}",
                "event": "tick",
                "status": result.status.status,
                "message": result.status.message,
                "face_count": det.face_count,
                "face_present": int(det.face_present),
                "looking_away": int(det.looking_away),
                "attention": det.estimated_attention,
                "frames_since_face": result.frames_since_face_detected,
                "noise_detected": int(audio.noise_detected) if audio is not None else "",
                "noise_level": f"{audio.noise_level:.4f}" if audio is not None else "",
                "volume_level": f"{audio.volume_level:.4f}" if audio is not None else "",
                "dropped": int(result.dropped),
                "alert_id": "",
                "alert_type": "",
            }
        )

    def log_alert(self, alert: Alert):
        self._append(
            {
                "timestamp": self._iso(alert.timestamp),
                "timestamp_ms": f"{alert.timestamp:.0f}",
                "event": "alert",
                "status": alert.type,
                "message": alert.message,
                "alert_id": alert.id,
                "alert_type": alert.type,
            }
        )

    def to_dataframe(self) -> pd.DataFrame:
        return read_session_log(self.csv_path)

    # ----------------------------
    # Internal helpers
    # ----------------------------

    @staticmethod
    def _iso(timestamp_ms: float) -> str:
        return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).isoformat()

    def _append(self, row: dict):
        try:
            self._write_row(self.csv_path, row)
        except PermissionError:
            # Notify once so the user knows why logging is degraded
            if not self._perm_warned:
                print(
                    f"[CheatGuardian] Warning: {os.path.basename(self.csv_path)} is locked (maybe open in Excel). "
                    "Logging to a temporary queue until the file becomes writable."
                )
                self._perm_warned = True
            self._write_row(self.temp_csv_path, row, allow_permission_retry=False)
        except Exception as exc:
            print(f"[CheatGuardian] Logging error: {exc}")

    def _write_row(self, path: str, row: dict, allow_permission_retry: bool = True):
        try:
            need_header = not os.path.exists(path) or os.path.getsize(path) == 0
        except OSError:
            need_header = True

        try:
            with open(path, "a", newline="", encoding="utf-8") as handle:
                writer = csv.DictWriter(handle, fieldnames=LOG_FIELDS, restval="")
                if need_header:
                    writer.writeheader()
                writer.writerow(row)
        except PermissionError:
            if allow_permission_retry:
                raise
        except OSError:
            # Disk error or vanished directory: write to system temp file instead
            fallback = os.path.join(tempfile.gettempdir(), "cheatguardian_fallback.csv")
            if path == fallback:
                return
            self._write_row(fallback, row, allow_permission_retry=False)

    def _ensure_header(self, path: str):
        """Create the CSV with a header, or move an incompatible old log aside."""
        expected = ",".join(LOG_FIELDS)
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as handle:
                    first_line = handle.readline().strip()
            except OSError:
                first_line = ""
            if first_line == expected:
                return
            if first_line:
                backup_path = path + ".bak"
                os.replace(path, backup_path)
                print(f"[CheatGuardian] Existing log has a different layout. Backup saved at {backup_path}")

        with open(path, "w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=LOG_FIELDS)
            writer.writeheader()

