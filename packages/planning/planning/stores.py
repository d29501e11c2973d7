from __future__ import annotations

from datetime import UTC, datetime
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from planning.db import PlanningQuestionModel, PlanningSpecModel
from planning.schemas import PlanningQuestion, PlanningSpec, QuestionOption


class TaskStore(Protocol):
    """宿主服务提供的 task 存储接口"""

    def exists(self, task_id: str) -> bool: ...

    def set_status(self, task_id: str, status: str) -> None: ...


class QuestionStore(Protocol):
    """规划问题存储接口"""

    def count_for_task(self, task_id: str) -> int: ...

    def insert_batch(self, questions: Sequence[PlanningQuestion]) -> None: ...

    def get_by_id(self, question_id: str, for_update: bool = False) -> Optional[PlanningQuestion]: ...

    def list_for_task(self, task_id: str, for_update: bool = False) -> List[PlanningQuestion]: ...

    def update_answer(self, question_id: str, value: str, answered_at: datetime) -> bool: ...

    def answers_snapshot(self, task_id: str) -> Dict[str, Optional[str]]: ...


class SpecStore(Protocol):
    """锁定 Spec 存储接口"""

    def get_for_task(self, task_id: str) -> Optional[PlanningSpec]: ...

    def insert(self, spec: PlanningSpec) -> None: ...


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite 取回的是 naive datetime，统一补上 UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqlQuestionStore:
    """QuestionStore 的 SQLAlchemy 实现；不提交事务，由调用方 commit/rollback"""

    def __init__(self, db: Session):
        self._db = db

    def _model_to_question(self, model: PlanningQuestionModel) -> PlanningQuestion:
        """将数据库模型转换为 PlanningQuestion schema"""
        options = None
        if model.options:
            options = [QuestionOption(**option) for option in model.options]
        return PlanningQuestion(
            id=model.id,
            task_id=model.task_id,
            category=model.category,
            question=model.question,
            question_type=model.question_type,
            options=options,
            answer=model.answer,
            answered_at=_as_utc(model.answered_at),
            sort_order=model.sort_order,
            created_at=_as_utc(model.created_at),
        )

    def count_for_task(self, task_id: str) -> int:
        stmt = select(func.count()).select_from(PlanningQuestionModel).where(
            PlanningQuestionModel.task_id == task_id
        )
        return self._db.execute(stmt).scalar_one()

    def insert_batch(self, questions: Sequence[PlanningQuestion]) -> None:
        now = datetime.now(UTC)
        self._db.add_all([
            PlanningQuestionModel(
                id=q.id,
                task_id=q.task_id,
                category=q.category,
                question=q.question,
                question_type=q.question_type,
                options=[option.model_dump() for option in q.options] if q.options else None,
                answer=q.answer,
                answered_at=q.answered_at,
                sort_order=q.sort_order,
                created_at=q.created_at or now,
            )
            for q in questions
        ])
        # flush 时触发唯一约束检查
        self._db.flush()

    def get_by_id(self, question_id: str, for_update: bool = False) -> Optional[PlanningQuestion]:
        query = self._db.query(PlanningQuestionModel).filter(
            PlanningQuestionModel.id == question_id
        )
        if for_update:
            # 与 lock 的 list_for_task(for_update=True) 互斥，直到事务结束
            query = query.with_for_update()
        model = query.populate_existing().first()
        if model is None:
            return None
        return self._model_to_question(model)

    def list_for_task(self, task_id: str, for_update: bool = False) -> List[PlanningQuestion]:
        query = self._db.query(PlanningQuestionModel).filter(
            PlanningQuestionModel.task_id == task_id
        ).order_by(PlanningQuestionModel.sort_order)
        if for_update:
            # SQLite 忽略 FOR UPDATE；PostgreSQL/MySQL 会锁住这些行直到事务结束
            query = query.with_for_update()
        return [self._model_to_question(model) for model in query.populate_existing().all()]

    def update_answer(self, question_id: str, value: str, answered_at: datetime) -> bool:
        """条件更新：所属 task 已有 Spec 时不更新，返回是否写入成功"""
        locked = (
            select(PlanningSpecModel.id)
            .where(PlanningSpecModel.task_id == PlanningQuestionModel.task_id)
            .correlate(PlanningQuestionModel)
            .exists()
        )
        stmt = (
            update(PlanningQuestionModel)
            .where(PlanningQuestionModel.id == question_id, ~locked)
            .values(answer=value, answered_at=answered_at)
            .execution_options(synchronize_session=False)
        )
        result = self._db.execute(stmt)
        return result.rowcount > 0

    def answers_snapshot(self, task_id: str) -> Dict[str, Optional[str]]:
        """直接从库里读 id -> answer，用于锁定前后比对"""
        stmt = select(PlanningQuestionModel.id, PlanningQuestionModel.answer).where(
            PlanningQuestionModel.task_id == task_id
        )
        return {row.id: row.answer for row in self._db.execute(stmt)}


class SqlSpecStore:
    """SpecStore 的 SQLAlchemy 实现；只插入，不提供更新/删除"""

    def __init__(self, db: Session):
        self._db = db

    def _model_to_spec(self, model: PlanningSpecModel) -> PlanningSpec:
        return PlanningSpec(
            id=model.id,
            task_id=model.task_id,
            spec_markdown=model.spec_markdown,
            created_at=_as_utc(model.created_at),
        )

    def get_for_task(self, task_id: str) -> Optional[PlanningSpec]:
        model = self._db.query(PlanningSpecModel).filter(
            PlanningSpecModel.task_id == task_id
        ).first()
        if model is None:
            return None
        return self._model_to_spec(model)

    def insert(self, spec: PlanningSpec) -> None:
        self._db.add(
            PlanningSpecModel(
                id=spec.id,
                task_id=spec.task_id,
                spec_markdown=spec.spec_markdown,
                created_at=spec.created_at,
            )
        )
        # flush 时触发 task_id 唯一约束
        self._db.flush()
