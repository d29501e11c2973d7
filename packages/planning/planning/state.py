"""
Planning State Assembler - the read model returned to callers

Composes stored questions, the optional spec, progress and phase. Never
mutates anything.
"""

from typing import Optional, Sequence

from .progress import compute_progress
from .schemas import PlanningQuestion, PlanningSpec, PlanningState
from .state_machine import derive_phase


def next_unanswered(
    questions: Sequence[PlanningQuestion],
    after_index: Optional[int] = None,
) -> Optional[PlanningQuestion]:
    """First unanswered question after `after_index`, wrapping to the start."""
    if after_index is not None:
        for question in questions[after_index + 1:]:
            if not question.is_answered:
                return question
    for question in questions:
        if not question.is_answered:
            return question
    return None


def assemble_state(
    questions: Sequence[PlanningQuestion],
    spec: Optional[PlanningSpec],
) -> PlanningState:
    ordered = sorted(questions, key=lambda q: q.sort_order)
    upcoming = None if spec is not None else next_unanswered(ordered)
    return PlanningState(
        questions=ordered,
        spec=spec,
        progress=compute_progress(ordered),
        is_locked=spec is not None,
        phase=derive_phase(ordered, spec),
        next_question_id=upcoming.id if upcoming else None,
    )
