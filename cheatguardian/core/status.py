from typing import Optional

from .config import FACE_DISAPPEARANCE_THRESHOLD
from .types import AudioResult, DetectionResult, StatusResult


MSG_NO_FACE = "No face detected in frame"
MSG_MULTIPLE_FACES = "Multiple faces detected ({count})"
MSG_LOOKING_AWAY = "Looking away from screen frequently"
MSG_FACE_HIDDEN = "Face temporarily not visible"
MSG_SUSPICIOUS_AUDIO = "Suspicious audio detected"
MSG_NORMAL = "Normal exam behavior"



def derive_status(
    detection: DetectionResult,
    frames_since_face_detected: int,
    audio: Optional[AudioResult] = None,
    audio_active: bool = False,
    disappearance_threshold: int = FACE_DISAPPEARANCE_THRESHOLD,
) -> StatusResult:
    """
    Resolve one overall status. Rules are checked in severity order and the
    first match wins: sustained absence, extra faces, frequent turning,
    brief absence, then audio can only lift "safe" to "warning".
    """
    if not detection.face_present and frames_since_face_detected >= disappearance_threshold:
        return StatusResult("danger", MSG_NO_FACE)

    if detection.face_count > 1:
        return StatusResult("danger", MSG_MULTIPLE_FACES.format(count=detection.face_count))

    if detection.looking_away:
        return StatusResult("warning", MSG_LOOKING_AWAY)

    if not detection.face_present and frames_since_face_detected > 0:
        return StatusResult("warning", MSG_FACE_HIDDEN)

    if audio_active and audio is not None and audio.noise_detected:
        return StatusResult("warning", MSG_SUSPICIOUS_AUDIO)

    return StatusResult("safe", MSG_NORMAL)
