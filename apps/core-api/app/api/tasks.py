from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.db import TaskModel, TaskStatus, get_db

router = APIRouter()


class TaskCreateRequest(BaseModel):
    """创建 Task 请求"""
    title: str = Field(min_length=1)
    description: Optional[str] = None


class TaskListResponse(BaseModel):
    """Task 列表响应"""
    items: list[Dict[str, Any]]
    limit: Optional[int] = None
    offset: Optional[int] = None


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    """确保时间包含时区信息（Z 表示 UTC）"""
    if value is None:
        return None
    text = value.isoformat()
    if not text.endswith("Z") and "+" not in text:
        text += "Z"
    return text


def _serialize_task(task: TaskModel) -> Dict[str, Any]:
    """序列化 Task 为字典"""
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "created_at": _isoformat(task.created_at),
        "updated_at": _isoformat(task.updated_at),
    }


async def _create_task(request: TaskCreateRequest, db: Session) -> Dict[str, Any]:
    """创建新 Task（内部函数，便于测试）"""
    now = datetime.now(UTC)
    task = TaskModel(
        id=str(uuid.uuid4()),
        title=request.title,
        description=request.description,
        status=TaskStatus.INBOX,
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return _serialize_task(task)


async def _get_task(task_id: str, db: Session) -> Dict[str, Any]:
    """获取单个 Task（内部函数，便于测试）"""
    task = db.query(TaskModel).filter(TaskModel.id == task_id).first()
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return _serialize_task(task)


async def _list_tasks(
    db: Session,
    status: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Dict[str, Any]:
    """列出 Task，按 updated_at 降序排列（内部函数，便于测试）"""
    query = db.query(TaskModel)

    if status:
        try:
            query = query.filter(TaskModel.status == TaskStatus(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    query = query.order_by(desc(TaskModel.updated_at))
    if offset is not None:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)

    return {
        "items": [_serialize_task(task) for task in query.all()],
        "limit": limit,
        "offset": offset,
    }


@router.post("", response_model=Dict[str, Any])
async def create_task(request: TaskCreateRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return await _create_task(request, db)


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    status: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return await _list_tasks(db, status=status, limit=limit, offset=offset)


@router.get("/{task_id}", response_model=Dict[str, Any])
async def get_task(task_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return await _get_task(task_id, db)
