"""
Planning Service - generate / answer / lock / read for one task

Each operation is one transaction on the injected session:
- generate: count guard + batch insert; unique (task_id, sort_order) closes the race
- answer:   row lock on the question, spec check, then a conditional UPDATE
            that refuses once a spec row exists
- lock:     completeness check + spec insert; unique task_id closes the race,
            answers are re-read after the spec row is claimed
- read:     no writes

The service commits or rolls back; stores only flush.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .answers import normalize_answer, validate_choice
from .catalog import DEFAULT_CATALOG, QuestionCatalog
from .config import PlanningConfig
from .errors import (
    AlreadyGeneratedError,
    AlreadyLockedError,
    ConcurrentModificationError,
    IncompletePlanError,
    PlanningStorageError,
    QuestionNotFoundError,
    SpecLockedError,
    TaskNotFoundError,
    TaskStatusError,
)
from .generator import build_questions
from .progress import compute_progress
from .schemas import PlanningPhase, PlanningQuestion, PlanningSpec, PlanningState
from .state import assemble_state
from .state_machine import PlanningTransition, accepts_answers, can_transition, derive_phase
from .stores import QuestionStore, SpecStore, SqlQuestionStore, SqlSpecStore, TaskStore
from .synthesizer import MarkdownSpecRenderer, SpecSynthesizer, entries_from_questions

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PlanningService:
    """
    Planning state machine over persisted questions and specs.

    Collaborators are injected: the task store belongs to the host service,
    question/spec stores default to the SQLAlchemy implementations bound to
    the same session, so every write of an operation shares one transaction.
    """

    def __init__(
        self,
        db: Session,
        tasks: TaskStore,
        questions: Optional[QuestionStore] = None,
        specs: Optional[SpecStore] = None,
        catalog: QuestionCatalog = DEFAULT_CATALOG,
        synthesizer: Optional[SpecSynthesizer] = None,
        config: Optional[PlanningConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._db = db
        self._tasks = tasks
        self._questions = questions or SqlQuestionStore(db)
        self._specs = specs or SqlSpecStore(db)
        self.catalog = catalog
        self.config = config or PlanningConfig()
        self._synthesizer = synthesizer or MarkdownSpecRenderer(title=self.config.spec_title)
        self._clock = clock

    def _require_task(self, task_id: str) -> None:
        if not self._tasks.exists(task_id):
            raise TaskNotFoundError(task_id)

    def _rollback_storage_error(self, operation: str, target: str, exc: SQLAlchemyError) -> PlanningStorageError:
        self._db.rollback()
        logger.warning("planning.%s storage failure %s", operation, target, exc_info=True)
        return PlanningStorageError(f"Failed to {operation} planning for {target}: {exc}")

    # ==================== Read ====================

    def read(self, task_id: str) -> PlanningState:
        """Assemble the planning read model; no writes."""
        self._require_task(task_id)
        questions = self._questions.list_for_task(task_id)
        spec = self._specs.get_for_task(task_id)
        return assemble_state(questions, spec)

    # ==================== Generate ====================

    def generate(self, task_id: str) -> List[PlanningQuestion]:
        """Create the question batch once per task and mark the task as planning."""
        self._require_task(task_id)
        if self._questions.count_for_task(task_id) > 0:
            raise AlreadyGeneratedError(task_id)

        questions = build_questions(task_id, self.catalog, created_at=self._clock())
        status = self.config.planning_status
        try:
            self._questions.insert_batch(questions)
            self._tasks.set_status(task_id, status)
            self._db.commit()
        except IntegrityError:
            # 并发生成：另一请求先提交了同一 task 的 sort_order
            self._db.rollback()
            logger.warning("planning.generate lost race task_id=%s", task_id)
            raise AlreadyGeneratedError(task_id)
        except SQLAlchemyError as e:
            raise self._rollback_storage_error("generate", f"task {task_id}", e)
        except ValueError as e:
            # 宿主不认识配置的状态值
            self._db.rollback()
            logger.error("planning.generate task store rejected status=%r task_id=%s", status, task_id)
            raise TaskStatusError(task_id, status) from e
        except Exception:
            self._db.rollback()
            raise

        logger.info(
            "planning.%s task_id=%s catalog=%s questions=%d",
            PlanningTransition.GENERATE.value, task_id, self.catalog.version, len(questions),
        )
        return questions

    def generate_state(self, task_id: str) -> PlanningState:
        self.generate(task_id)
        return self.read(task_id)

    # ==================== Answer ====================

    def answer(self, question_id: str, value: Optional[str], task_id: Optional[str] = None) -> PlanningQuestion:
        """Overwrite one answer (last write wins) unless the task is locked."""
        value = normalize_answer(value)
        if task_id is not None:
            self._require_task(task_id)

        try:
            # 先锁住问题行：若 lock 正持有该行，这里会等到它提交
            question = self._questions.get_by_id(question_id, for_update=True)
            if question is None or (task_id is not None and question.task_id != task_id):
                raise QuestionNotFoundError(question_id)
            # 拿到行锁之后的新语句，能看到已提交的 spec
            spec = self._specs.get_for_task(question.task_id)
            if not accepts_answers(derive_phase([question], spec)):
                raise SpecLockedError(question.task_id)
            if self.config.strict_choices:
                validate_choice(question, value)

            if not self._questions.update_answer(question_id, value, self._clock()):
                logger.warning(
                    "planning.answer rejected after concurrent lock task_id=%s question_id=%s",
                    question.task_id, question_id,
                )
                raise SpecLockedError(question.task_id)
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._rollback_storage_error("answer", f"question {question_id}", e)
        except Exception:
            self._db.rollback()
            raise

        logger.debug(
            "planning.%s task_id=%s question_id=%s",
            PlanningTransition.ANSWER.value, question.task_id, question_id,
        )
        return self._questions.get_by_id(question_id)

    # ==================== Lock ====================

    def lock(self, task_id: str) -> PlanningSpec:
        """Freeze a fully answered plan into its one and only spec."""
        self._require_task(task_id)
        if self._specs.get_for_task(task_id) is not None:
            raise AlreadyLockedError(task_id)

        try:
            questions = self._questions.list_for_task(task_id, for_update=True)
            if not can_transition(derive_phase(questions, None), PlanningPhase.LOCKED):
                progress = compute_progress(questions)
                raise IncompletePlanError(task_id, progress.answered, progress.total)

            snapshot = {q.id: q.answer for q in questions}
            spec = PlanningSpec(
                id=str(uuid.uuid4()),
                task_id=task_id,
                spec_markdown=self._synthesizer(task_id, entries_from_questions(questions)),
                created_at=self._clock(),
            )
            self._specs.insert(spec)
            # spec 行已占住写锁，再核对一次答案，防止与并发 answer 交错
            if self._questions.answers_snapshot(task_id) != snapshot:
                logger.warning("planning.lock answers changed during lock task_id=%s", task_id)
                raise ConcurrentModificationError(
                    f"Answers changed while locking task {task_id}, retry the lock"
                )
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            logger.warning("planning.lock lost race task_id=%s", task_id)
            raise AlreadyLockedError(task_id)
        except SQLAlchemyError as e:
            raise self._rollback_storage_error("lock", f"task {task_id}", e)
        except Exception:
            # 未完成、答案漂移或合成失败：放弃行锁和已 flush 的 spec 行
            self._db.rollback()
            raise

        logger.info(
            "planning.%s task_id=%s spec_id=%s questions=%d",
            PlanningTransition.LOCK.value, task_id, spec.id, len(questions),
        )
        return spec
