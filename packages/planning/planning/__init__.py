"""
Task Planning - guided clarifying-question workflow for a task

Flow:
    generate questions → answer (repeatedly) → progress reaches 100% → lock

The lock writes one immutable spec document per task; after it, answers are
read-only for the rest of the task's life.
"""

from .answers import normalize_answer, parse_answer, validate_choice
from .catalog import DEFAULT_CATALOG, QuestionCatalog, QuestionTemplate, build_catalog
from .config import PlanningConfig
from .errors import (
    AlreadyGeneratedError,
    AlreadyLockedError,
    ConcurrentModificationError,
    IncompletePlanError,
    InvalidAnswerError,
    PlanningError,
    PlanningStorageError,
    QuestionNotFoundError,
    SpecLockedError,
    TaskNotFoundError,
    TaskStatusError,
)
from .generator import build_questions, choice_id
from .progress import compute_progress, is_lock_eligible
from .schemas import (
    AnswerKind,
    PlanningCategory,
    PlanningPhase,
    PlanningProgress,
    PlanningQuestion,
    PlanningSpec,
    PlanningState,
    QuestionOption,
    QuestionType,
)
from .service import PlanningService
from .state import assemble_state, next_unanswered
from .stores import QuestionStore, SpecStore, TaskStore
from .synthesizer import MarkdownSpecRenderer, SpecEntry

__all__ = [
    # Catalog
    "DEFAULT_CATALOG",
    "QuestionCatalog",
    "QuestionTemplate",
    "build_catalog",

    # Schemas
    "AnswerKind",
    "PlanningCategory",
    "PlanningPhase",
    "PlanningProgress",
    "PlanningQuestion",
    "PlanningSpec",
    "PlanningState",
    "QuestionOption",
    "QuestionType",

    # Core operations
    "PlanningService",
    "PlanningConfig",
    "build_questions",
    "choice_id",
    "compute_progress",
    "is_lock_eligible",
    "normalize_answer",
    "parse_answer",
    "validate_choice",
    "assemble_state",
    "next_unanswered",
    "MarkdownSpecRenderer",
    "SpecEntry",

    # Collaborator interfaces
    "TaskStore",
    "QuestionStore",
    "SpecStore",

    # Errors
    "PlanningError",
    "TaskNotFoundError",
    "QuestionNotFoundError",
    "InvalidAnswerError",
    "AlreadyGeneratedError",
    "SpecLockedError",
    "IncompletePlanError",
    "AlreadyLockedError",
    "ConcurrentModificationError",
    "PlanningStorageError",
    "TaskStatusError",
]

__version__ = "0.1.0"
