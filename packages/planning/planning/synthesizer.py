"""
Spec Synthesizer - turns collected answers into the locked spec document

The service only depends on the SpecSynthesizer call signature; the default
renderer is a plain markdown template grouped by category.
"""

from datetime import datetime
from typing import Callable, List, NamedTuple, Optional, Sequence

from .answers import split_other
from .catalog import CATEGORY_TITLES
from .schemas import PlanningCategory, PlanningQuestion


class SpecEntry(NamedTuple):
    category: PlanningCategory
    question: str
    answer: str


SpecSynthesizer = Callable[[str, Sequence[SpecEntry]], str]


def entries_from_questions(questions: Sequence[PlanningQuestion]) -> List[SpecEntry]:
    ordered = sorted(questions, key=lambda q: q.sort_order)
    return [SpecEntry(q.category, q.question, q.answer or "") for q in ordered]


def _format_answer(answer: str) -> str:
    other_text = split_other(answer)
    if other_text:
        return f"{other_text} _(other)_"
    return answer


class MarkdownSpecRenderer:
    """Default synthesizer: one section per category, Q/A pairs in order."""

    def __init__(self, title: str = "Task Specification", generated_at: Optional[Callable[[], datetime]] = None):
        self.title = title
        self.generated_at = generated_at

    def __call__(self, task_id: str, entries: Sequence[SpecEntry]) -> str:
        lines = [f"# {self.title}", "", f"Task: `{task_id}`"]
        if self.generated_at is not None:
            lines.append(f"Locked at: {self.generated_at().isoformat()}")
        lines.append("")

        for category in PlanningCategory:
            section = [entry for entry in entries if entry.category == category]
            if not section:
                continue
            lines.append(f"## {CATEGORY_TITLES[category]}")
            lines.append("")
            for entry in section:
                lines.append(f"**{entry.question}**")
                lines.append("")
                # Multi-line answers stay inside the blockquote
                for answer_line in _format_answer(entry.answer).splitlines() or [""]:
                    lines.append(f"> {answer_line}".rstrip())
                lines.append("")

        return "\n".join(lines).rstrip() + "\n"
