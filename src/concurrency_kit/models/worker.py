"""
Модели воркеров пула.
"""

from enum import Enum
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock


class WorkerStatus(Enum):
    """Статусы воркеров."""
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class WorkerMetrics:
    """Метрики воркера."""

    tasks_completed: int = 0
    tasks_failed: int = 0
    total_execution_time: float = 0.0
    average_execution_time: float = 0.0
    last_task_at: Optional[datetime] = None

    def record(self, execution_time: float, success: bool):
        if success:
            self.tasks_completed += 1
        else:
            self.tasks_failed += 1

        self.total_execution_time += execution_time
        self.average_execution_time = self.total_execution_time / self.tasks_processed
        self.last_task_at = datetime.now()

    @property
    def tasks_processed(self) -> int:
        return self.tasks_completed + self.tasks_failed

    def get_success_rate(self) -> float:
        """Получение процента успешных задач."""
        if self.tasks_processed == 0:
            return 0.0
        return (self.tasks_completed / self.tasks_processed) * 100


@dataclass
class Worker:
    """Представление воркера. Имя совпадает с именем его потока."""

    name: str
    status: WorkerStatus = WorkerStatus.IDLE
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    metrics: WorkerMetrics = field(default_factory=WorkerMetrics)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def start(self):
        with self._lock:
            self.status = WorkerStatus.IDLE
            self.started_at = datetime.now()

    def stop(self):
        with self._lock:
            self.status = WorkerStatus.STOPPED
            self.stopped_at = datetime.now()

    def set_busy(self):
        with self._lock:
            if self.status == WorkerStatus.IDLE:
                self.status = WorkerStatus.BUSY

    def set_idle(self):
        with self._lock:
            if self.status == WorkerStatus.BUSY:
                self.status = WorkerStatus.IDLE

    def update_metrics(self, execution_time: float, success: bool = True):
        """Обновление метрик после выполнения задачи."""
        with self._lock:
            self.metrics.record(execution_time, success)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'name': self.name,
                'status': self.status.value,
                'tasks_completed': self.metrics.tasks_completed,
                'tasks_failed': self.metrics.tasks_failed,
                'average_execution_time': self.metrics.average_execution_time,
                'success_rate': self.metrics.get_success_rate(),
            }
