"""
Примитивы конкурентности для слоя диспетчеризации задач.

Основные компоненты:
- RateLimiter: ограничение входящего потока запросов (token bucket)
- WorkerPool: пул воркеров фиксированного размера с FIFO-очередью задач
- RetryScheduler: ретраи с экспоненциальным backoff без блокировки потоков

Компоненты независимы друг от друга, композицию выполняет вызывающая сторона.
"""

from .core.rate_limiter import RateLimiter, RateLimiterConfig
from .core.task_channel import TaskChannel
from .core.worker_pool import WorkerPool, WorkerPoolConfig
from .core.retry_scheduler import RetryScheduler, RetryConfig, RetryAttempt
from .models.task import Task, TaskResult, TaskStatus
from .models.worker import Worker, WorkerStatus
from .models.token_bucket import TokenBucket
from .utils.config import Config, load_config, load_config_from_env, save_config
from .utils.decorators import rate_limited
from .utils.logger import get_logger, setup_logging
from .utils.monitoring import MetricsCollector
from .exceptions import (
    ConcurrencyKitError,
    ConfigurationError,
    ShutdownError,
    TaskExecutionError,
    RetryExhaustedError,
    TaskChannelError,
    RateLimitExceededError
)

__version__ = "1.0.0"

__all__ = [
    "RateLimiter",
    "RateLimiterConfig",
    "TaskChannel",
    "WorkerPool",
    "WorkerPoolConfig",
    "RetryScheduler",
    "RetryConfig",
    "RetryAttempt",
    "Task",
    "TaskResult",
    "TaskStatus",
    "Worker",
    "WorkerStatus",
    "TokenBucket",
    "Config",
    "load_config",
    "load_config_from_env",
    "save_config",
    "rate_limited",
    "get_logger",
    "setup_logging",
    "MetricsCollector",
    "ConcurrencyKitError",
    "ConfigurationError",
    "ShutdownError",
    "TaskExecutionError",
    "RetryExhaustedError",
    "TaskChannelError",
    "RateLimitExceededError"
]
