"""
Task Planning API

- GET  /tasks/{task_id}/planning          - 规划状态（问题、进度、Spec、是否锁定）
- POST /tasks/{task_id}/planning          - 生成问题（每个 task 只能一次）
- POST /tasks/{task_id}/planning/answer   - 回答问题（锁定后拒绝）
- POST /tasks/{task_id}/planning/approve  - 锁定 Spec（全部答完后，只能一次）
"""
from __future__ import annotations

import logging
from typing import Any, Dict, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db import SqlTaskStore, TaskStatus, get_db
from planning import PlanningConfig, PlanningError, PlanningService

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_task_status(config: PlanningConfig) -> PlanningConfig:
    """启动时校验 PLANNING_TASK_STATUS 是否为 tasks 表认识的状态，配错直接抛 ValueError"""
    TaskStatus(config.planning_status)
    return config


PLANNING_CONFIG = _check_task_status(PlanningConfig.from_env())


class AnswerRequest(BaseModel):
    """回答问题请求"""
    question_id: str
    answer: Optional[str] = None


def _planning_service(db: Session, config: Optional[PlanningConfig] = None) -> PlanningService:
    return PlanningService(db, SqlTaskStore(db), config=config or PLANNING_CONFIG)


def _raise_http(error: PlanningError) -> NoReturn:
    """PlanningError → HTTPException，detail 为 {code, message}"""
    if error.http_status >= 500:
        logger.warning("planning request failed: %s", error.to_reason())
    raise HTTPException(status_code=error.http_status, detail=error.to_reason())


async def _get_planning_state(task_id: str, db: Session, config: Optional[PlanningConfig] = None) -> Dict[str, Any]:
    """获取规划状态（内部函数，便于测试）"""
    try:
        state = _planning_service(db, config).read(task_id)
    except PlanningError as e:
        _raise_http(e)
    return state.model_dump(mode="json")


async def _generate_questions(task_id: str, db: Session, config: Optional[PlanningConfig] = None) -> Dict[str, Any]:
    """生成规划问题并返回新的规划状态（内部函数，便于测试）"""
    try:
        state = _planning_service(db, config).generate_state(task_id)
    except PlanningError as e:
        _raise_http(e)
    return state.model_dump(mode="json")


async def _answer_question(
    task_id: str,
    request: AnswerRequest,
    db: Session,
    config: Optional[PlanningConfig] = None,
) -> Dict[str, Any]:
    """回答一道问题，返回更新后的问题（内部函数，便于测试）"""
    try:
        question = _planning_service(db, config).answer(request.question_id, request.answer, task_id=task_id)
    except PlanningError as e:
        _raise_http(e)
    return question.model_dump(mode="json")


async def _lock_spec(task_id: str, db: Session, config: Optional[PlanningConfig] = None) -> Dict[str, Any]:
    """锁定 Spec（内部函数，便于测试）"""
    try:
        spec = _planning_service(db, config).lock(task_id)
    except PlanningError as e:
        _raise_http(e)
    return spec.model_dump(mode="json")


@router.get("/{task_id}/planning", response_model=Dict[str, Any])
async def get_planning_state(task_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return await _get_planning_state(task_id, db)


@router.post("/{task_id}/planning", response_model=Dict[str, Any])
async def generate_planning_questions(task_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return await _generate_questions(task_id, db)


@router.post("/{task_id}/planning/answer", response_model=Dict[str, Any])
async def answer_question(task_id: str, request: AnswerRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return await _answer_question(task_id, request, db)


@router.post("/{task_id}/planning/approve", response_model=Dict[str, Any])
async def lock_spec(task_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return await _lock_spec(task_id, db)
