"""CheatGuardian: webcam and microphone exam proctoring."""

__version__ = "0.1.0"
