"""
Planning State Machine - per-task planning sub-state

State Flow:
    UNINITIALIZED → IN_PROGRESS → LOCK_ELIGIBLE → LOCKED

Philosophy:
- Phase is derived, never stored (questions + spec decide it)
- IN_PROGRESS and LOCK_ELIGIBLE share stored state; progress tells them apart
- LOCKED is terminal
"""

from enum import Enum
from typing import Dict, Optional, Sequence, Set

from .progress import is_lock_eligible
from .schemas import PlanningPhase, PlanningQuestion, PlanningSpec


class PlanningTransition(Enum):
    """Events that move a task between phases."""
    GENERATE = "generate"   # UNINITIALIZED → IN_PROGRESS
    ANSWER = "answer"       # IN_PROGRESS/LOCK_ELIGIBLE → IN_PROGRESS/LOCK_ELIGIBLE
    LOCK = "lock"           # LOCK_ELIGIBLE → LOCKED


VALID_TRANSITIONS: Dict[PlanningPhase, Set[PlanningPhase]] = {
    PlanningPhase.UNINITIALIZED: {
        PlanningPhase.IN_PROGRESS,
    },
    PlanningPhase.IN_PROGRESS: {
        PlanningPhase.IN_PROGRESS,  # more answers, still incomplete
        PlanningPhase.LOCK_ELIGIBLE,  # last question answered
    },
    PlanningPhase.LOCK_ELIGIBLE: {
        PlanningPhase.LOCK_ELIGIBLE,  # re-answer (answers are never cleared)
        PlanningPhase.LOCKED,
    },
    PlanningPhase.LOCKED: set(),  # Terminal
}


def derive_phase(
    questions: Sequence[PlanningQuestion],
    spec: Optional[PlanningSpec],
) -> PlanningPhase:
    if spec is not None:
        return PlanningPhase.LOCKED
    if not questions:
        return PlanningPhase.UNINITIALIZED
    if is_lock_eligible(questions):
        return PlanningPhase.LOCK_ELIGIBLE
    return PlanningPhase.IN_PROGRESS


def can_transition(from_phase: PlanningPhase, to_phase: PlanningPhase) -> bool:
    return to_phase in VALID_TRANSITIONS.get(from_phase, set())


def accepts_answers(phase: PlanningPhase) -> bool:
    return phase in (PlanningPhase.IN_PROGRESS, PlanningPhase.LOCK_ELIGIBLE)
