"""
Модели задач.
"""

import uuid
from enum import Enum
from typing import Any, Callable, Optional, Dict
from dataclasses import dataclass, field
from datetime import datetime


class TaskStatus(Enum):
    """Статусы задач."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"
    CANCELLED = "cancelled"


@dataclass
class Task:
    """Представление задачи."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    func: Callable = None
    args: tuple = field(default_factory=tuple)
    kwargs: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status: TaskStatus = TaskStatus.PENDING
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    retry_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Валидация после инициализации."""
        if not self.func:
            raise ValueError("Task function is required")
        if not callable(self.func):
            raise ValueError("Task function must be callable")
        if not self.name:
            self.name = getattr(self.func, "__name__", "task")

    def run(self) -> Any:
        """Синхронный вызов функции задачи с отметками времени и статуса."""
        self.status = TaskStatus.RUNNING
        self.started_at = datetime.now()
        try:
            self.result = self.func(*self.args, **self.kwargs)
        except BaseException as e:
            self.error = e
            self.status = TaskStatus.FAILED
            raise
        finally:
            self.completed_at = datetime.now()

        self.error = None
        self.status = TaskStatus.COMPLETED
        return self.result


@dataclass
class TaskResult:
    """Результат выполнения задачи."""

    task_id: str
    status: TaskStatus
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    execution_time: Optional[float] = None
    retry_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    completed_at: datetime = field(default_factory=datetime.now)

    @property
    def attempts(self) -> int:
        """Общее число попыток (первая + ретраи)."""
        return self.retry_count + 1

    def is_success(self) -> bool:
        """Проверка успешности выполнения."""
        return self.status == TaskStatus.COMPLETED

    def is_failure(self) -> bool:
        """Проверка неудачного выполнения."""
        return self.status in [TaskStatus.FAILED, TaskStatus.CANCELLED]
