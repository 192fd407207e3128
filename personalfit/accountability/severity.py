"""
Penalty Severity Scoring

Score a missed workout from how late it is, then nudge the score by the
plan's difficulty:

- Under 48h overdue: 1, 48-72h: 2, 72h or more: 3
- advanced/hard plans: +1 (max 3)
- beginner/easy plans: -1 (min 1)
- 3 = severe, 2 = moderate, 1 = light
"""

from typing import Optional
import logging

from personalfit.models.accountability import PenaltySeverity

logger = logging.getLogger(__name__)

HARD_DIFFICULTIES = frozenset({"advanced", "hard"})
EASY_DIFFICULTIES = frozenset({"beginner", "easy"})


def calculate_penalty_severity(difficulty: Optional[str], hours_overdue: int) -> PenaltySeverity:
    """
    Penalty severity for a missed workout

    Args:
        difficulty: Plan experience level, matched case-insensitively; unknown or None is neutral
        hours_overdue: Whole hours past the scheduled time

    Returns:
        PenaltySeverity
    """
    if hours_overdue >= 72:
        score = 3
    elif hours_overdue >= 48:
        score = 2
    else:
        score = 1

    level = (difficulty or "").strip().lower()
    if level in HARD_DIFFICULTIES:
        score = min(3, score + 1)
    elif level in EASY_DIFFICULTIES:
        score = max(1, score - 1)

    if score >= 3:
        return PenaltySeverity.SEVERE
    if score == 2:
        return PenaltySeverity.MODERATE
    return PenaltySeverity.LIGHT
