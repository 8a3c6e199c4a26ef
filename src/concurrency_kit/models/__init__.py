"""
Модели данных примитивов конкурентности.
"""

from .task import Task, TaskResult, TaskStatus
from .worker import Worker, WorkerStatus, WorkerMetrics
from .pool_metrics import PoolMetrics
from .token_bucket import TokenBucket

__all__ = [
    "Task",
    "TaskResult",
    "TaskStatus",
    "Worker",
    "WorkerStatus",
    "WorkerMetrics",
    "PoolMetrics",
    "TokenBucket"
]
