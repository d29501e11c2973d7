"""
Progress Calculator - completion counters for a task's question set

Pure functions over the current questions. Lock eligibility is decided by
counting, never by the rounded percentage.
"""

from typing import Sequence

from .schemas import PlanningProgress, PlanningQuestion


def percentage(answered: int, total: int) -> int:
    """Integer round-half-up of 100 * answered / total (0 when total is 0)."""
    if total <= 0:
        return 0
    return (answered * 100 * 2 + total) // (total * 2)


def compute_progress(questions: Sequence[PlanningQuestion]) -> PlanningProgress:
    total = len(questions)
    answered = sum(1 for q in questions if q.is_answered)
    return PlanningProgress(total=total, answered=answered, percentage=percentage(answered, total))


def is_lock_eligible(questions: Sequence[PlanningQuestion]) -> bool:
    """True only when there is at least one question and every one is answered."""
    progress = compute_progress(questions)
    return progress.total > 0 and progress.answered == progress.total
