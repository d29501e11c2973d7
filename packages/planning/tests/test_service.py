"""
Tests for PlanningService

Validates:
- Generate once per task
- Answer rules (not found, empty, last write wins, locked)
- Lock eligibility and one-time lock
- Read model
- Lost races resolved by the unique constraints
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import OperationalError

from planning.catalog import DEFAULT_CATALOG, build_catalog
from planning.config import PlanningConfig
from planning.db import PlanningQuestionModel, PlanningSpecModel
from planning.errors import (
    AlreadyGeneratedError,
    AlreadyLockedError,
    ConcurrentModificationError,
    IncompletePlanError,
    InvalidAnswerError,
    PlanningStorageError,
    QuestionNotFoundError,
    SpecLockedError,
    TaskNotFoundError,
)
from planning.schemas import PlanningCategory, PlanningPhase, QuestionType
from planning.service import PlanningService

THREE_QUESTIONS = build_catalog("three", {
    PlanningCategory.GOAL: [{"question": "Goal?", "options": ["Sell", "Inform", "Other"]}],
    PlanningCategory.SCOPE: [{"question": "In scope?"}, {"question": "Out of scope?"}],
})


def _answer_all(service, task_id):
    for question in service.read(task_id).questions:
        if question.question_type == QuestionType.MULTIPLE_CHOICE:
            value = question.options[0].label
        else:
            value = f"details for {question.question}"
        service.answer(question.id, value, task_id=task_id)


def _count_rows(session_factory, model, task_id):
    db = session_factory()
    try:
        return db.query(model).filter(model.task_id == task_id).count()
    finally:
        db.close()


# ==================== Generate ====================

def test_generate_creates_catalog_questions_and_marks_task(service, tasks):
    questions = service.generate("task-1")

    assert len(questions) == DEFAULT_CATALOG.total() == 16
    assert [q.sort_order for q in questions] == list(range(16))
    assert tasks.statuses["task-1"] == "planning"
    assert tasks.statuses["task-2"] == "inbox"


def test_generate_twice_fails_and_keeps_count(service, temp_db):
    _, session_factory = temp_db
    service.generate("task-1")

    with pytest.raises(AlreadyGeneratedError) as excinfo:
        service.generate("task-1")
    assert excinfo.value.code == "ALREADY_GENERATED"
    assert _count_rows(session_factory, PlanningQuestionModel, "task-1") == 16


def test_generate_unknown_task(service):
    with pytest.raises(TaskNotFoundError) as excinfo:
        service.generate("missing")
    assert excinfo.value.http_status == 404


def test_generate_lost_race_maps_to_already_generated(service, temp_db, monkeypatch):
    """count 检查通过但另一请求已提交，唯一约束兜底"""
    _, session_factory = temp_db
    service.generate("task-1")
    monkeypatch.setattr(service._questions, "count_for_task", lambda task_id: 0)

    with pytest.raises(AlreadyGeneratedError):
        service.generate("task-1")
    assert _count_rows(session_factory, PlanningQuestionModel, "task-1") == 16


def test_generate_with_injected_catalog(temp_db, tasks, clock):
    db, _ = temp_db
    service = PlanningService(db, tasks, catalog=THREE_QUESTIONS, clock=clock)

    questions = service.generate("task-1")
    assert [(q.category, q.sort_order) for q in questions] == [
        (PlanningCategory.GOAL, 0),
        (PlanningCategory.SCOPE, 1),
        (PlanningCategory.SCOPE, 2),
    ]


def test_generate_with_custom_status(temp_db, tasks):
    db, _ = temp_db
    service = PlanningService(db, tasks, config=PlanningConfig(planning_status="scoping"))
    service.generate("task-2")
    assert tasks.statuses["task-2"] == "scoping"


def test_generate_storage_failure_is_wrapped(service, monkeypatch):
    def boom(questions):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(service._questions, "insert_batch", boom)
    with pytest.raises(PlanningStorageError) as excinfo:
        service.generate("task-1")
    assert excinfo.value.retryable is True
    assert excinfo.value.http_status == 500


# ==================== Answer ====================

def test_answer_unknown_question(service):
    service.generate("task-1")
    with pytest.raises(QuestionNotFoundError):
        service.answer("no-such-question", "hello")


def test_answer_question_from_other_task_is_not_found(service):
    service.generate("task-1")
    service.generate("task-2")
    question = service.read("task-1").questions[0]

    with pytest.raises(QuestionNotFoundError):
        service.answer(question.id, "Sell", task_id="task-2")


def test_answer_unknown_task(service):
    service.generate("task-1")
    question = service.read("task-1").questions[0]
    with pytest.raises(TaskNotFoundError):
        service.answer(question.id, "x", task_id="missing")


@pytest.mark.parametrize("value", ["", "   ", None])
def test_answer_empty_value_rejected(service, value):
    service.generate("task-1")
    question = service.read("task-1").questions[0]

    with pytest.raises(InvalidAnswerError):
        service.answer(question.id, value, task_id="task-1")
    assert service.read("task-1").questions[0].answer is None


def test_reanswer_overwrites_and_restamps(service):
    service.generate("task-1")
    question = service.read("task-1").questions[0]

    first = service.answer(question.id, "Provide information", task_id="task-1")
    second = service.answer(question.id, "Collect user data", task_id="task-1")

    assert first.answer == "Provide information"
    assert second.answer == "Collect user data"
    assert second.answered_at > first.answered_at
    stored = service.read("task-1").questions[0]
    assert stored.answer == "Collect user data"
    assert stored.answered_at == second.answered_at


def test_answer_accepts_any_string_for_choice_questions(service):
    service.generate("task-1")
    question = service.read("task-1").questions[0]
    assert question.question_type == QuestionType.MULTIPLE_CHOICE

    updated = service.answer(question.id, "Other: grow the newsletter", task_id="task-1")
    assert updated.answer == "Other: grow the newsletter"

    updated = service.answer(question.id, "not even an option", task_id="task-1")
    assert updated.answer == "not even an option"


def test_strict_mode_rejects_unknown_choice(temp_db, tasks, clock):
    db, _ = temp_db
    service = PlanningService(db, tasks, config=PlanningConfig(strict_choices=True), clock=clock)
    service.generate("task-1")
    question = service.read("task-1").questions[0]

    with pytest.raises(InvalidAnswerError):
        service.answer(question.id, "not even an option", task_id="task-1")
    assert service.answer(question.id, "Other: referrals", task_id="task-1").answer == "Other: referrals"


def test_answer_updates_progress(service):
    service.generate("task-1")
    questions = service.read("task-1").questions
    service.answer(questions[1].id, "Page views/traffic")

    state = service.read("task-1")
    assert state.progress.answered == 1
    assert state.progress.total == 16
    assert state.progress.percentage == 6
    assert state.phase == PlanningPhase.IN_PROGRESS
    assert state.next_question_id == questions[0].id


# ==================== Lock ====================

def test_lock_incomplete_two_of_three(temp_db, tasks, clock):
    db, _ = temp_db
    service = PlanningService(db, tasks, catalog=THREE_QUESTIONS, clock=clock)
    service.generate("task-1")
    questions = service.read("task-1").questions
    service.answer(questions[0].id, "Sell")
    service.answer(questions[1].id, "Everything")

    state = service.read("task-1")
    assert state.progress.percentage == 67
    with pytest.raises(IncompletePlanError) as excinfo:
        service.lock("task-1")
    assert (excinfo.value.answered, excinfo.value.total) == (2, 3)
    assert db.in_transaction() is False
    assert service.read("task-1").is_locked is False


def test_lock_without_questions_is_incomplete(service):
    state = service.read("task-1")
    assert (state.progress.total, state.progress.percentage, state.is_locked) == (0, 0, False)

    with pytest.raises(IncompletePlanError) as excinfo:
        service.lock("task-1")
    assert excinfo.value.total == 0


def test_lock_unknown_task(service):
    with pytest.raises(TaskNotFoundError):
        service.lock("missing")


def test_lock_freezes_answers(service, temp_db):
    _, session_factory = temp_db
    service.generate("task-1")
    _answer_all(service, "task-1")

    spec = service.lock("task-1")
    assert spec.task_id == "task-1"
    assert "## Goal" in spec.spec_markdown
    assert "details for What is included in this task?" in spec.spec_markdown

    question = service.read("task-1").questions[0]
    with pytest.raises(SpecLockedError):
        service.answer(question.id, "Provide information", task_id="task-1")
    # 重复提交相同的值也不行
    with pytest.raises(SpecLockedError):
        service.answer(question.id, question.answer, task_id="task-1")

    with pytest.raises(AlreadyLockedError):
        service.lock("task-1")
    assert _count_rows(session_factory, PlanningSpecModel, "task-1") == 1


def test_answer_racing_lock_is_rejected(service, monkeypatch):
    """预检时还没有 Spec，但 UPDATE 执行时 lock 已提交"""
    service.generate("task-1")
    _answer_all(service, "task-1")
    service.lock("task-1")
    question = service.read("task-1").questions[0]

    monkeypatch.setattr(service._specs, "get_for_task", lambda task_id: None)
    with pytest.raises(SpecLockedError):
        service.answer(question.id, "Provide information", task_id="task-1")
    monkeypatch.undo()

    assert service.read("task-1").questions[0].answer == question.answer


def test_answer_rechecks_spec_after_taking_row_lock(service, temp_db, monkeypatch):
    """lock 在 answer 等待行锁期间提交：拿到行锁后的 spec 查询必须能看到它"""
    _, session_factory = temp_db
    service.generate("task-1")
    question = service.read("task-1").questions[0]
    real_get_by_id = service._questions.get_by_id
    calls = []

    def get_by_id_after_lock_commits(question_id, for_update=False):
        calls.append(for_update)
        if for_update:
            other = session_factory()
            try:
                other.add(PlanningSpecModel(
                    id="spec-1", task_id="task-1", spec_markdown="# Spec\n", created_at=datetime.now(UTC),
                ))
                other.commit()
            finally:
                other.close()
        return real_get_by_id(question_id, for_update=for_update)

    monkeypatch.setattr(service._questions, "get_by_id", get_by_id_after_lock_commits)
    with pytest.raises(SpecLockedError):
        service.answer(question.id, "Sell", task_id="task-1")
    monkeypatch.undo()

    assert calls == [True]
    assert service._db.in_transaction() is False
    assert service.read("task-1").questions[0].answer is None


def test_lock_lost_race_maps_to_already_locked(service, temp_db, monkeypatch):
    _, session_factory = temp_db
    service.generate("task-1")
    _answer_all(service, "task-1")
    service.lock("task-1")

    monkeypatch.setattr(service._specs, "get_for_task", lambda task_id: None)
    with pytest.raises(AlreadyLockedError):
        service.lock("task-1")
    assert _count_rows(session_factory, PlanningSpecModel, "task-1") == 1


def test_lock_aborts_when_answers_drift(service, monkeypatch):
    service.generate("task-1")
    _answer_all(service, "task-1")
    real_snapshot = service._questions.answers_snapshot

    def drifted(task_id):
        snapshot = real_snapshot(task_id)
        first = next(iter(snapshot))
        snapshot[first] = "changed concurrently"
        return snapshot

    monkeypatch.setattr(service._questions, "answers_snapshot", drifted)
    with pytest.raises(ConcurrentModificationError) as excinfo:
        service.lock("task-1")
    assert excinfo.value.retryable is True
    assert service._db.in_transaction() is False
    monkeypatch.undo()

    assert service.read("task-1").is_locked is False
    assert service.lock("task-1").task_id == "task-1"


def test_lock_uses_injected_synthesizer(temp_db, tasks, clock):
    db, _ = temp_db
    seen = {}

    def synthesizer(task_id, entries):
        seen["task_id"] = task_id
        seen["entries"] = list(entries)
        return "custom body"

    service = PlanningService(db, tasks, catalog=THREE_QUESTIONS, synthesizer=synthesizer, clock=clock)
    service.generate("task-1")
    _answer_all(service, "task-1")

    spec = service.lock("task-1")
    assert spec.spec_markdown == "custom body"
    assert seen["task_id"] == "task-1"
    assert [(e.category, e.question, e.answer) for e in seen["entries"]] == [
        (PlanningCategory.GOAL, "Goal?", "Sell"),
        (PlanningCategory.SCOPE, "In scope?", "details for In scope?"),
        (PlanningCategory.SCOPE, "Out of scope?", "details for Out of scope?"),
    ]



def test_failing_synthesizer_rolls_back_lock(temp_db, tasks, clock):
    db, _ = temp_db

    def broken(task_id, entries):
        raise RuntimeError("template missing")

    service = PlanningService(db, tasks, catalog=THREE_QUESTIONS, synthesizer=broken, clock=clock)
    service.generate("task-1")
    _answer_all(service, "task-1")

    with pytest.raises(RuntimeError):
        service.lock("task-1")
    assert db.in_transaction() is False
    assert service.read("task-1").is_locked is False

    working = PlanningService(db, tasks, catalog=THREE_QUESTIONS, clock=clock)
    assert working.lock("task-1").spec_markdown.startswith("# Task Specification")

# ==================== Read ====================

def test_read_unknown_task(service):
    with pytest.raises(TaskNotFoundError):
        service.read("missing")


def test_read_is_idempotent(service):
    service.generate("task-1")
    question = service.read("task-1").questions[2]
    service.answer(question.id, "B2C consumers")

    assert service.read("task-1") == service.read("task-1")


def test_tasks_are_isolated(service):
    service.generate("task-1")
    _answer_all(service, "task-1")
    service.lock("task-1")

    other = service.read("task-2")
    assert other.questions == []
    assert other.is_locked is False
    assert other.phase == PlanningPhase.UNINITIALIZED


def test_end_to_end(service):
    state = service.generate_state("task-1")
    assert state.phase == PlanningPhase.IN_PROGRESS
    assert state.progress.total == 16
    assert state.progress.percentage == 0

    _answer_all(service, "task-1")
    state = service.read("task-1")
    assert state.progress.percentage == 100
    assert state.phase == PlanningPhase.LOCK_ELIGIBLE
    assert state.next_question_id is None

    spec = service.lock("task-1")
    state = service.read("task-1")
    assert state.is_locked is True
    assert state.phase == PlanningPhase.LOCKED
    assert state.spec == spec
