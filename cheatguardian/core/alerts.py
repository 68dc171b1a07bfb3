import itertools
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .config import ALERT_COOLDOWN
from .types import Alert, AlertType, StatusResult


MSG_SUSPICIOUS_SOUNDS = "Suspicious sounds detected"


def should_emit(log: Iterable[Alert], message: str, now_ms: float, cooldown_ms: float = ALERT_COOLDOWN) -> bool:
    """False if ``message`` already alerted less than ``cooldown_ms`` ago."""
    return not any(a.message == message and (now_ms - a.timestamp) < cooldown_ms for a in log)


class AlertManager:
    """
    In-memory alert log for one session, newest first.

    Cooldowns are tracked per distinct message on a separate ledger, so
    dismissing an alert hides it without letting the same message fire
    again before its cooldown runs out.
    """

    def __init__(self, cooldown_ms: float = ALERT_COOLDOWN, clock: Callable[[], float] | None = None):
        self.cooldown_ms = cooldown_ms
        self._clock = clock or (lambda: time.time() * 1000.0)
        self._alerts: List[Alert] = []
        self._last_emitted: Dict[str, Alert] = {}
        self._seq = itertools.count(1)
        self._subscribers: List[Callable[[Alert], None]] = []

    @property
    def alerts(self) -> Tuple[Alert, ...]:
        return tuple(self._alerts)

    @property
    def latest(self) -> Optional[Alert]:
        return self._alerts[0] if self._alerts else None

    def subscribe(self, callback: Callable[[Alert], None]):
        self._subscribers.append(callback)

    def notify_status(self, status: StatusResult, now_ms: float | None = None) -> Optional[Alert]:
        """Raise an alert for a warning/danger status; safe statuses never alert."""
        if status.status == "safe":
            return None
        return self.emit(status.message, status.status, now_ms)

    def notify_audio_event(self, now_ms: float | None = None) -> Optional[Alert]:
        return self.emit(MSG_SUSPICIOUS_SOUNDS, "warning", now_ms)

    def emit(self, message: str, alert_type: AlertType, now_ms: float | None = None) -> Optional[Alert]:
        now_ms = self._clock() if now_ms is None else now_ms
        if not should_emit(self._last_emitted.values(), message, now_ms, self.cooldown_ms):
            return None

        alert = Alert(
            id=f"alert-{int(now_ms)}-{next(self._seq)}",
            message=message,
            type=alert_type,
            timestamp=now_ms,
        )
        self._alerts.insert(0, alert)
        self._last_emitted[message] = alert

        for callback in list(self._subscribers):
            try:
                callback(alert)
            except Exception as exc:
                print(f"[Alerts] Subscriber error for '{message}': {exc}")
        return alert

    def dismiss(self, alert_id: str) -> bool:
        for idx, alert in enumerate(self._alerts):
            if alert.id == alert_id:
                del self._alerts[idx]
                return True
        return False

    def clear(self):
        self._alerts.clear()
        self._last_emitted.clear()
