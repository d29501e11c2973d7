from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class PlanningCategory(str, Enum):
    """问题分类（顺序即默认出题顺序）"""
    GOAL = "goal"
    AUDIENCE = "audience"
    SCOPE = "scope"
    DESIGN = "design"
    CONTENT = "content"
    TECHNICAL = "technical"
    TIMELINE = "timeline"
    CONSTRAINTS = "constraints"


class QuestionType(str, Enum):
    """问题类型"""
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT = "text"


class AnswerKind(str, Enum):
    """答案解析后的类型"""
    CHOICE = "choice"
    OTHER = "other"
    FREE_TEXT = "free_text"


class PlanningPhase(str, Enum):
    """规划子状态，locked 为终态"""
    UNINITIALIZED = "uninitialized"
    IN_PROGRESS = "in_progress"
    LOCK_ELIGIBLE = "lock_eligible"
    LOCKED = "locked"


class QuestionOption(BaseModel):
    """选择题选项，id 为 A/B/C..."""
    id: str
    label: str


class PlanningQuestion(BaseModel):
    """某个 task 下的一道规划问题"""
    id: str
    task_id: str
    category: PlanningCategory
    question: str
    question_type: QuestionType
    options: Optional[List[QuestionOption]] = None
    answer: Optional[str] = None
    answered_at: Optional[datetime] = None
    sort_order: int = Field(ge=0)
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_options_match_type(self) -> "PlanningQuestion":
        has_options = bool(self.options)
        if (self.question_type == QuestionType.MULTIPLE_CHOICE) != has_options:
            raise ValueError("multiple_choice questions must have options, text questions must not")
        return self

    @property
    def is_answered(self) -> bool:
        return bool(self.answer)

    def option_labels(self) -> List[str]:
        return [option.label for option in self.options or []]


class PlanningSpec(BaseModel):
    """锁定后的规划文档（只写一次）"""
    id: str
    task_id: str
    spec_markdown: str
    created_at: datetime


class PlanningProgress(BaseModel):
    """完成进度"""
    total: int = Field(ge=0)
    answered: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)


class ParsedAnswer(BaseModel):
    """答案的结构化解释：choice / other / free_text"""
    kind: AnswerKind
    text: str
    option_id: Optional[str] = None


class PlanningState(BaseModel):
    """规划读模型，每次读取时重新计算，不落库"""
    questions: List[PlanningQuestion]
    spec: Optional[PlanningSpec] = None
    progress: PlanningProgress
    is_locked: bool
    phase: PlanningPhase
    next_question_id: Optional[str] = None
