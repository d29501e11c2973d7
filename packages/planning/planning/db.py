from __future__ import annotations

import os
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SQLEnum,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base

from planning.schemas import PlanningCategory, QuestionType

# 数据库配置
# 默认使用独立 SQLite 文件；宿主服务可以把这些表建在自己的库里（见 init_db(bind)）
DATABASE_URL = os.getenv(
    "PLANNING_DB_URL",
    "sqlite:///./task_planning.db"
)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {},
    echo=os.getenv("PLANNING_DB_ECHO", "").lower() == "true",
)

Base = declarative_base()


class PlanningQuestionModel(Base):
    """规划问题数据库模型"""
    __tablename__ = "planning_questions"

    id = Column(String, primary_key=True, index=True)
    task_id = Column(String, nullable=False, index=True)  # tasks 表由宿主服务维护，这里不加外键
    category = Column(SQLEnum(PlanningCategory), nullable=False)
    question = Column(Text, nullable=False)
    question_type = Column(SQLEnum(QuestionType), nullable=False)
    options = Column(JSON, nullable=True)  # [{"id": "A", "label": "..."}]，仅选择题
    answer = Column(Text, nullable=True)
    answered_at = Column(DateTime, nullable=True)
    sort_order = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(UTC))

    # 唯一约束：同一 task 的 sort_order 不重复，并发生成时后提交者失败
    __table_args__ = (
        UniqueConstraint("task_id", "sort_order", name="uq_planning_questions_task_sort"),
    )


class PlanningSpecModel(Base):
    """锁定 Spec 数据库模型（一个 task 最多一条，写入后不再修改）"""
    __tablename__ = "planning_specs"

    id = Column(String, primary_key=True, index=True)
    task_id = Column(String, nullable=False, unique=True, index=True)
    spec_markdown = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(UTC))


def init_db(bind=None) -> None:
    """创建规划相关表；bind 为空时使用本模块的 engine"""
    Base.metadata.create_all(bind=bind or engine)