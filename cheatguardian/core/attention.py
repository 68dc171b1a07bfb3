from typing import Tuple

from .config import ATTENTION_PENALTY, FREQUENT_MOVEMENTS_THRESHOLD


MAX_ATTENTION = 100


def estimate_attention(
    face_present: bool,
    significant_movements: int,
    frequent_threshold: int = FREQUENT_MOVEMENTS_THRESHOLD,
    penalty: int = ATTENTION_PENALTY,
) -> Tuple[bool, int]:
    """
    Returns (looking_away, attention 0-100).
    A missing face scores 0 but is not "looking away"; that flag is kept
    for a face that is present and keeps turning.
    """
    if not face_present:
        return False, 0
    looking_away = significant_movements >= frequent_threshold
    attention = MAX_ATTENTION
    if significant_movements > 0:
        attention = max(0, MAX_ATTENTION - significant_movements * penalty)
    return looking_away, attention


class AttentionEstimator:
    """
    Holds the last computed attention between position samples.
    The tracker only samples every few hundred ms, so recomputing on every
    frame would make the score flicker between the fresh value and 100.
    """

    def __init__(
        self,
        frequent_threshold: int = FREQUENT_MOVEMENTS_THRESHOLD,
        penalty: int = ATTENTION_PENALTY,
    ):
        self.frequent_threshold = frequent_threshold
        self.penalty = penalty
        self.looking_away = False
        self.attention = MAX_ATTENTION

    def update(self, face_present: bool, significant_movements: int, sampled: bool) -> Tuple[bool, int]:
        if not face_present:
            return estimate_attention(False, significant_movements)
        if sampled:
            self.looking_away, self.attention = estimate_attention(
                True, significant_movements, self.frequent_threshold, self.penalty
            )
        return self.looking_away, self.attention

    def reset(self):
        self.looking_away = False
        self.attention = MAX_ATTENTION
