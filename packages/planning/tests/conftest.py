"""
Pytest fixtures for planning tests.

Each test gets its own temporary SQLite file; tasks live in an in-memory
store since the tasks table belongs to the host service.
"""

import os
import tempfile
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from planning.db import Base
from planning.service import PlanningService


class FakeTaskStore:
    """TaskStore backed by a dict: task_id -> status."""

    def __init__(self, *task_ids):
        self.statuses = {task_id: "inbox" for task_id in task_ids}

    def exists(self, task_id):
        return task_id in self.statuses

    def set_status(self, task_id, status):
        self.statuses[task_id] = status


class StepClock:
    """Deterministic clock: every call is one second later."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self):
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def temp_db():
    """创建临时数据库用于测试"""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    test_engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=test_engine)

    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    db = TestSessionLocal()

    yield db, TestSessionLocal

    db.close()
    test_engine.dispose()
    try:
        os.unlink(db_path)
    except (PermissionError, OSError):
        # Windows 上可能文件被占用，忽略错误
        pass


@pytest.fixture
def tasks():
    return FakeTaskStore("task-1", "task-2")


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def service(temp_db, tasks, clock):
    db, _ = temp_db
    return PlanningService(db, tasks, clock=clock)
