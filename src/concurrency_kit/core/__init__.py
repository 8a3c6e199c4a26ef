"""
Основные компоненты: ограничитель скорости, пул воркеров, планировщик ретраев.
"""

from .rate_limiter import RateLimiter, RateLimiterConfig
from .task_channel import TaskChannel
from .worker_pool import WorkerPool, WorkerPoolConfig
from .retry_scheduler import RetryScheduler, RetryConfig, RetryAttempt

__all__ = [
    "RateLimiter",
    "RateLimiterConfig",
    "TaskChannel",
    "WorkerPool",
    "WorkerPoolConfig",
    "RetryScheduler",
    "RetryConfig",
    "RetryAttempt"
]
