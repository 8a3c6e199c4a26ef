"""
Планировщик ретраев с экспоненциальным backoff.
"""

import threading
import time
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Any, Optional, Dict, List, Tuple, Type
from dataclasses import dataclass
from datetime import datetime

from ..models.task import Task, TaskStatus, TaskResult
from ..utils.logger import get_logger
from ..exceptions import (
    ConfigurationError,
    RetryExhaustedError,
    ShutdownError,
    TaskExecutionError
)


logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Конфигурация планировщика ретраев."""
    thread_count: int = 2
    max_retries: int = 3  # Дополнительные попытки после первой
    base_delay: float = 1.0  # Базовая задержка в секундах
    max_delay: Optional[float] = None  # Верхняя граница задержки
    history_size: int = 1000  # Число задач, для которых хранится история ретраев


@dataclass
class RetryAttempt:
    """Информация о неудачной попытке и запланированном ретрае."""
    task_id: str
    attempt_number: int
    delay: float
    timestamp: datetime
    exception: Optional[BaseException] = None


class RetryScheduler:
    """
    Выполнение задач с ретраями на пуле потоков фиксированного размера.

    Неудачная попытка не занимает поток на время backoff: следующая
    попытка ставится на таймер и отправляется в пул, когда он сработает.
    Попытки одной задачи строго последовательны.
    """

    def __init__(
        self,
        thread_count: int,
        max_retries: int,
        base_delay: float,
        max_delay: Optional[float] = None,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        history_size: int = 1000,
        name: str = "retry"
    ):
        """
        Args:
            thread_count: Размер пула потоков
            max_retries: Количество ретраев (0 - только одна попытка)
            base_delay: Задержка перед первым ретраем в секундах
            max_delay: Верхняя граница задержки (None - без ограничения)
            retry_on: Типы исключений, считающиеся временным сбоем
            history_size: Для скольких последних задач хранить историю ретраев
            name: Префикс имен потоков

        Raises:
            ConfigurationError: При недопустимых параметрах
        """
        self._validate(thread_count, max_retries, base_delay, max_delay, history_size)

        self.thread_count = thread_count
        self.max_retries = max_retries
        self.base_delay = float(base_delay)
        self.max_delay = max_delay
        self.retry_on = tuple(retry_on)
        self.history_size = history_size

        self._executor = ThreadPoolExecutor(
            max_workers=thread_count,
            thread_name_prefix=name
        )
        self._lock = threading.Lock()
        self._shutdown = False

        # task_id -> (таймер, future) для ожидающих ретраев
        self._pending: Dict[str, tuple] = {}
        # Ограниченная история: самые старые задачи вытесняются
        self._retry_history: Dict[str, List[RetryAttempt]] = OrderedDict()

        self._stats = {
            'tasks_submitted': 0,
            'tasks_succeeded': 0,
            'tasks_exhausted': 0,
            'tasks_failed': 0,
            'tasks_cancelled': 0,
            'retries_scheduled': 0
        }

        logger.info(
            f"RetryScheduler initialized: threads={thread_count}, "
            f"max_retries={max_retries}, base_delay={self.base_delay}s"
        )

    @staticmethod
    def _validate(thread_count, max_retries, base_delay, max_delay, history_size):
        errors = []

        if isinstance(thread_count, bool) or not isinstance(thread_count, int) or thread_count <= 0:
            errors.append(f"thread_count must be a positive integer, got {thread_count!r}")

        if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 0:
            errors.append(f"max_retries must be a non-negative integer, got {max_retries!r}")

        if not isinstance(base_delay, (int, float)) or isinstance(base_delay, bool) or base_delay <= 0:
            errors.append(f"base_delay must be > 0, got {base_delay!r}")
        elif max_delay is not None and max_delay < base_delay:
            errors.append(f"max_delay must be >= base_delay, got {max_delay!r}")

        if isinstance(history_size, bool) or not isinstance(history_size, int) or history_size <= 0:
            errors.append(f"history_size must be a positive integer, got {history_size!r}")

        if errors:
            raise ConfigurationError(f"Invalid RetryScheduler configuration: {'; '.join(errors)}")

    @classmethod
    def from_config(cls, config: RetryConfig) -> 'RetryScheduler':
        return cls(
            config.thread_count,
            config.max_retries,
            config.base_delay,
            max_delay=config.max_delay,
            history_size=config.history_size
        )

    def calculate_delay(self, attempt: int) -> float:
        """
        Задержка перед попыткой attempt + 1.

        Args:
            attempt: Номер неудачной попытки (начиная с 0)

        Returns:
            base_delay * 2 ** attempt, ограниченная max_delay
        """
        delay = self.base_delay * (2 ** attempt)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def submit(self, func: Callable, *args, name: str = "", **kwargs) -> Future:
        """
        Асинхронное выполнение задачи с ретраями.

        Args:
            func: Функция для выполнения
            *args: Аргументы функции
            name: Имя задачи
            **kwargs: Именованные аргументы функции

        Returns:
            Future с TaskResult при успехе, RetryExhaustedError при исчерпании
            ретраев или TaskExecutionError для неретраибельной ошибки.
            Атрибут future.task_id содержит идентификатор задачи для
            get_retry_history()

        Raises:
            ShutdownError: Если планировщик уже остановлен
        """
        task = Task(name=name, func=func, args=args, kwargs=kwargs)
        future: Future = Future()
        future.task_id = task.id

        with self._lock:
            if self._shutdown:
                raise ShutdownError("RetryScheduler has been shut down")
            self._stats['tasks_submitted'] += 1
            self._executor.submit(self._run_with_retry, task, future, 0, time.monotonic())

        logger.debug(f"Task {task.id} ({task.name}) submitted for execution with retries")
        return future

    def _run_with_retry(self, task: Task, future: Future, attempt: int, started: float):
        """Одна попытка выполнения задачи."""
        if attempt == 0 and not future.set_running_or_notify_cancel():
            logger.debug(f"Task {task.id} was cancelled before start")
            with self._lock:
                self._stats['tasks_cancelled'] += 1
            return

        task.retry_count = attempt
        logger.debug(f"Executing task {task.id}, attempt {attempt + 1}")

        try:
            result = task.run()
        except BaseException as e:
            self._handle_failure(task, future, attempt, started, e)
            return

        with self._lock:
            self._stats['tasks_succeeded'] += 1

        if attempt > 0:
            logger.info(f"Task {task.id} succeeded after {attempt + 1} attempts")

        future.set_result(TaskResult(
            task_id=task.id,
            status=TaskStatus.COMPLETED,
            result=result,
            execution_time=time.monotonic() - started,
            retry_count=attempt
        ))

    def _handle_failure(self, task: Task, future: Future, attempt: int, started: float, error: BaseException):
        """Решение о ретрае после неудачной попытки."""
        if not isinstance(error, self.retry_on):
            with self._lock:
                self._stats['tasks_failed'] += 1

            logger.error(f"Task {task.id} ({task.name}) failed with non-retryable error: {error}")

            failure = TaskExecutionError(f"Task {task.id} ({task.name}) failed: {error}")
            failure.__cause__ = error
            future.set_exception(failure)
            return

        if attempt >= self.max_retries:
            with self._lock:
                self._stats['tasks_exhausted'] += 1

            message = f"Task {task.id} ({task.name}) failed after {attempt + 1} attempts"
            logger.error(f"{message}: {error}")

            exhausted = RetryExhaustedError(message, task_id=task.id, attempts=attempt + 1)
            exhausted.__cause__ = error
            future.set_exception(exhausted)
            return

        delay = self.calculate_delay(attempt)

        with self._lock:
            dropped = self._shutdown
            if dropped:
                self._stats['tasks_cancelled'] += 1
            else:
                task.status = TaskStatus.RETRYING
                self._schedule_retry(task, future, attempt, started, delay, error)

        # Future завершается вне блокировки: done-callback может обратиться к планировщику
        if dropped:
            shutdown_error = ShutdownError(f"Retry of task {task.id} dropped: scheduler is shut down")
            shutdown_error.__cause__ = error
            future.set_exception(shutdown_error)
            return

        logger.warning(
            f"Task {task.id} failed on attempt {attempt + 1}: {error}. "
            f"Retrying in {delay:.3f}s"
        )

    def _schedule_retry(self, task: Task, future: Future, attempt: int, started: float,
                        delay: float, error: BaseException):
        """Запись попытки в историю и запуск таймера. Вызывается под блокировкой."""
        self._retry_history.setdefault(task.id, []).append(RetryAttempt(
            task_id=task.id,
            attempt_number=attempt,
            delay=delay,
            timestamp=datetime.now(),
            exception=error
        ))
        self._retry_history.move_to_end(task.id)
        while len(self._retry_history) > self.history_size:
            self._retry_history.popitem(last=False)
        self._stats['retries_scheduled'] += 1

        timer = threading.Timer(delay, self._resubmit, args=(task, future, attempt + 1, started))
        timer.daemon = True
        self._pending[task.id] = (timer, future)
        timer.start()

    def _resubmit(self, task: Task, future: Future, attempt: int, started: float):
        """Срабатывание таймера: отправка следующей попытки в пул."""
        with self._lock:
            # Запись уже снята, если таймер отменил shutdown()
            if self._pending.pop(task.id, None) is None:
                return
            self._executor.submit(self._run_with_retry, task, future, attempt, started)

    def shutdown(self, wait: bool = True):
        """
        Остановка планировщика.

        Новые задачи отклоняются, ожидающие ретраи отменяются (их future
        завершаются с ShutdownError), выполняющиеся попытки дорабатывают.

        Args:
            wait: Ждать завершения выполняющихся попыток
        """
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            pending = list(self._pending.items())
            self._pending.clear()
            self._stats['tasks_cancelled'] += len(pending)

        for task_id, (timer, future) in pending:
            timer.cancel()
            future.set_exception(ShutdownError(f"Retry of task {task_id} cancelled by shutdown"))

        if pending:
            logger.info(f"Cancelled {len(pending)} pending retries")

        self._executor.shutdown(wait=wait)
        logger.info("RetryScheduler shut down")

    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown

    def get_retry_history(self, task_id: str) -> List[RetryAttempt]:
        """Получение истории ретраев для задачи."""
        with self._lock:
            return list(self._retry_history.get(task_id, []))

    def get_metrics(self) -> Dict[str, Any]:
        """Получение статистики планировщика."""
        with self._lock:
            stats = self._stats.copy()
            stats['pending_retries'] = len(self._pending)
            stats['tasks_with_retries'] = len(self._retry_history)
        return stats

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)

    def __repr__(self) -> str:
        return (f"RetryScheduler(threads={self.thread_count}, "
                f"max_retries={self.max_retries}, base_delay={self.base_delay})")
