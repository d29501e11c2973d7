"""
Question Generator - materializes the catalog into task-scoped questions

sort_order runs 0..n-1 across the whole batch (not reset per category); the
k-th choice of a template gets id chr(ord("A") + k).
"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional

from .catalog import MAX_CHOICES, QuestionCatalog
from .schemas import PlanningQuestion, QuestionOption


def choice_id(index: int) -> str:
    if not 0 <= index < MAX_CHOICES:
        raise ValueError(f"choice index out of range: {index}")
    return chr(ord("A") + index)


def build_questions(
    task_id: str,
    catalog: QuestionCatalog,
    created_at: Optional[datetime] = None,
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> List[PlanningQuestion]:
    """Build the unanswered question batch for one task (no persistence)."""
    questions: List[PlanningQuestion] = []
    for sort_order, (category, template) in enumerate(catalog.iter_templates()):
        options = None
        if template.options:
            options = [
                QuestionOption(id=choice_id(idx), label=label)
                for idx, label in enumerate(template.options)
            ]
        questions.append(
            PlanningQuestion(
                id=id_factory(),
                task_id=task_id,
                category=category,
                question=template.question,
                question_type=template.question_type,
                options=options,
                sort_order=sort_order,
                created_at=created_at,
            )
        )
    return questions
