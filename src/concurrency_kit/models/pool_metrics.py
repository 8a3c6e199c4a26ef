"""
Метрики пула воркеров.
"""

from typing import Dict, Optional
from dataclasses import dataclass
from datetime import datetime


@dataclass
class PoolMetrics:
    """Метрики пула воркеров. Обновляются под блокировкой пула."""

    total_tasks_submitted: int = 0
    total_tasks_completed: int = 0
    total_tasks_failed: int = 0
    total_tasks_cancelled: int = 0

    total_execution_time: float = 0.0
    average_execution_time: float = 0.0
    max_execution_time: float = 0.0

    max_queue_size: int = 0

    pool_start_time: Optional[datetime] = None
    pool_stop_time: Optional[datetime] = None
    uptime: float = 0.0

    def start_pool(self):
        self.pool_start_time = datetime.now()

    def stop_pool(self):
        self.pool_stop_time = datetime.now()
        if self.pool_start_time:
            self.uptime = (self.pool_stop_time - self.pool_start_time).total_seconds()

    def update_task_completion(self, execution_time: float, success: bool = True):
        """Обновление завершения задачи."""
        if success:
            self.total_tasks_completed += 1
        else:
            self.total_tasks_failed += 1

        self.total_execution_time += execution_time
        self.max_execution_time = max(self.max_execution_time, execution_time)
        processed = self.total_tasks_completed + self.total_tasks_failed
        self.average_execution_time = self.total_execution_time / processed

    def update_queue_size(self, size: int):
        self.max_queue_size = max(self.max_queue_size, size)

    def get_uptime(self) -> float:
        """Получение времени работы пула."""
        if self.pool_start_time and not self.pool_stop_time:
            return (datetime.now() - self.pool_start_time).total_seconds()
        return self.uptime

    def to_dict(self) -> Dict:
        """Преобразование в словарь."""
        return {
            'total_tasks_submitted': self.total_tasks_submitted,
            'total_tasks_completed': self.total_tasks_completed,
            'total_tasks_failed': self.total_tasks_failed,
            'total_tasks_cancelled': self.total_tasks_cancelled,
            'total_execution_time': self.total_execution_time,
            'average_execution_time': self.average_execution_time,
            'max_execution_time': self.max_execution_time,
            'max_queue_size': self.max_queue_size,
            'uptime': self.get_uptime()
        }
