"""规划错误类型：404 NOT_FOUND、400 INVALID_INPUT、409 一次性状态冲突、500/503 存储失败（可重试）。"""
from __future__ import annotations


class PlanningError(Exception):
    """基类，带 code + message 供 API 返回 detail。"""
    code: str = "PLANNING_ERROR"
    http_status: int = 500
    retryable: bool = False

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_reason(self) -> dict:
        return {"code": self.code, "message": self.message}


class TaskNotFoundError(PlanningError):
    """task 不存在 → 404。"""
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class QuestionNotFoundError(PlanningError):
    """问题不存在，或不属于该 task → 404。"""
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, question_id: str) -> None:
        super().__init__(f"Question not found: {question_id}")
        self.question_id = question_id


class InvalidAnswerError(PlanningError):
    """答案为空或不合法 → 400。"""
    code = "INVALID_INPUT"
    http_status = 400


class AlreadyGeneratedError(PlanningError):
    """问题已生成过，不可重复生成 → 409。"""
    code = "ALREADY_GENERATED"
    http_status = 409

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Questions already generated for task {task_id}")
        self.task_id = task_id


class SpecLockedError(PlanningError):
    """Spec 已锁定，答案不可再修改 → 409。"""
    code = "LOCKED"
    http_status = 409

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Spec is locked for task {task_id}, cannot modify answers")
        self.task_id = task_id


class IncompletePlanError(PlanningError):
    """还有未回答的问题，不能锁定 → 409。"""
    code = "INCOMPLETE"
    http_status = 409

    def __init__(self, task_id: str, answered: int, total: int) -> None:
        super().__init__(f"Cannot lock task {task_id}: {answered} of {total} questions answered")
        self.task_id = task_id
        self.answered = answered
        self.total = total


class AlreadyLockedError(PlanningError):
    """Spec 已存在，不可重复锁定 → 409。"""
    code = "ALREADY_LOCKED"
    http_status = 409

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Spec already locked for task {task_id}")
        self.task_id = task_id


class ConcurrentModificationError(PlanningError):
    """锁定过程中答案被并发修改，事务已回滚 → 503，调用方重试整个操作。"""
    code = "CONCURRENT_MODIFICATION"
    http_status = 503
    retryable = True


class PlanningStorageError(PlanningError):
    """数据库连接/约束等底层失败 → 500，调用方重试整个操作。"""
    code = "STORAGE_ERROR"
    http_status = 500
    retryable = True


class TaskStatusError(PlanningStorageError):
    """宿主 task 存储不接受配置的状态值（PLANNING_TASK_STATUS 配错）→ 500，不可重试。"""
    retryable = False

    def __init__(self, task_id: str, status: str) -> None:
        super().__init__(f"Task store rejected status {status!r} for task {task_id}")
        self.task_id = task_id
        self.status = status
