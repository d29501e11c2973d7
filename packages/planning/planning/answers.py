"""
Answer rules - input validation and interpretation of stored answers

Answers are stored as plain strings. Choosing "Other" is encoded by the client
as "Other: <text>"; parse_answer turns a stored string back into a tagged
variant, and validate_choice enforces the convention when strict mode is on.
"""

from typing import Optional

from .catalog import OTHER_LABEL
from .errors import InvalidAnswerError
from .schemas import AnswerKind, ParsedAnswer, PlanningQuestion, QuestionType

OTHER_PREFIX = f"{OTHER_LABEL}:"


def normalize_answer(value: Optional[str]) -> str:
    """Reject empty/blank values; return the value verbatim otherwise."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidAnswerError("answer is required")
    return value


def split_other(value: str) -> Optional[str]:
    """Return the free text of an "Other: <text>" answer, else None."""
    if not value.startswith(OTHER_PREFIX):
        return None
    return value[len(OTHER_PREFIX):].strip()


def parse_answer(question: PlanningQuestion, value: str) -> ParsedAnswer:
    if question.question_type == QuestionType.MULTIPLE_CHOICE:
        for option in question.options or []:
            if option.label == value:
                kind = AnswerKind.OTHER if option.label == OTHER_LABEL else AnswerKind.CHOICE
                return ParsedAnswer(kind=kind, text=value, option_id=option.id)
        other_text = split_other(value)
        if other_text is not None and OTHER_LABEL in question.option_labels():
            other_id = next(o.id for o in question.options if o.label == OTHER_LABEL)
            return ParsedAnswer(kind=AnswerKind.OTHER, text=other_text, option_id=other_id)
    return ParsedAnswer(kind=AnswerKind.FREE_TEXT, text=value)


def validate_choice(question: PlanningQuestion, value: str) -> ParsedAnswer:
    """Strict mode: multiple-choice answers must be a label or "Other: <text>"."""
    parsed = parse_answer(question, value)
    if question.question_type != QuestionType.MULTIPLE_CHOICE:
        return parsed
    if parsed.kind == AnswerKind.FREE_TEXT:
        raise InvalidAnswerError(f"answer is not one of the options for question {question.id}")
    if parsed.kind == AnswerKind.OTHER and (not parsed.text or parsed.text == OTHER_LABEL):
        raise InvalidAnswerError("Other answer needs a description, e.g. 'Other: <text>'")
    return parsed
