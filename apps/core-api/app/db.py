from __future__ import annotations

import os
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SQLEnum,
    Index,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from planning.db import init_db as init_planning_db


class TaskStatus(str, Enum):
    """Task 状态枚举"""
    INBOX = "inbox"
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


# 数据库配置
# 默认与 planning 包共享数据库（可通过 TASK_PLANNING_CORE_API_DB_URL 使用独立数据库）
# planning 表建在同一个库里，但模型定义独立，避免耦合
DATABASE_URL = os.getenv(
    "TASK_PLANNING_CORE_API_DB_URL",
    os.getenv("PLANNING_DB_URL", "sqlite:///./task_planning.db")
)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {},
    echo=os.getenv("TASK_PLANNING_CORE_API_DB_ECHO", "").lower() == "true",
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class TaskModel(Base):
    """Task 数据库模型"""
    __tablename__ = "tasks"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(TaskStatus), nullable=False, index=True, default=TaskStatus.INBOX)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    # 索引：用于按 updated_at 排序查询任务列表
    __table_args__ = (
        Index("idx_tasks_updated_at", "updated_at"),
    )


class SqlTaskStore:
    """planning.TaskStore 的实现，基于 tasks 表；与 planning 共用同一个 Session/事务"""

    def __init__(self, db: Session):
        self._db = db

    def exists(self, task_id: str) -> bool:
        return self._db.query(TaskModel.id).filter(TaskModel.id == task_id).first() is not None

    def set_status(self, task_id: str, status: str) -> None:
        task = self._db.query(TaskModel).filter(TaskModel.id == task_id).first()
        if task is None:
            return
        task.status = TaskStatus(status)
        task.updated_at = datetime.now(UTC)
        self._db.flush()


def init_db(bind=None) -> None:
    """初始化数据库，创建 tasks 表和 planning 相关表"""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    init_planning_db(bind)


def get_db():
    """获取数据库会话（生成器函数，用于依赖注入）"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
