"""
Пул воркеров фиксированного размера с общим FIFO-каналом задач.
"""

import threading
import time
from typing import Callable, Any, Optional, Dict, List
from dataclasses import dataclass

from .task_channel import TaskChannel
from ..models.task import Task, TaskStatus
from ..models.worker import Worker
from ..models.pool_metrics import PoolMetrics
from ..utils.logger import get_logger
from ..exceptions import ConfigurationError, ShutdownError


logger = get_logger(__name__)


@dataclass
class WorkerPoolConfig:
    """Конфигурация пула воркеров."""
    worker_count: int = 4
    name: str = "worker"  # Префикс имен потоков


class WorkerPool:
    """
    Пул из фиксированного числа долгоживущих потоков.

    Потоки запускаются в конструкторе и разбирают общий канал задач в
    порядке отправки. Ошибка задачи логируется и не останавливает воркер.
    Завершение работы кооперативное: новые задачи отклоняются, уже
    поставленные в очередь дорабатываются.
    """

    def __init__(self, worker_count: int, name: str = "worker"):
        """
        Args:
            worker_count: Количество потоков-воркеров
            name: Префикс имен потоков

        Raises:
            ConfigurationError: Если worker_count <= 0
        """
        if isinstance(worker_count, bool) or not isinstance(worker_count, int):
            raise ConfigurationError(f"worker_count must be an integer, got {worker_count!r}")
        if worker_count <= 0:
            raise ConfigurationError(f"worker_count must be > 0, got {worker_count}")

        self._name = name
        self._lock = threading.Lock()
        self._shutdown_requested = False
        self._channel = TaskChannel()
        self._pool_metrics = PoolMetrics()

        self._workers: List[Worker] = []
        self._threads: List[threading.Thread] = []

        for index in range(worker_count):
            worker = Worker(name=f"{name}-{index}")
            thread = threading.Thread(
                target=self._worker_loop,
                args=(worker,),
                name=worker.name,
                daemon=True
            )
            self._workers.append(worker)
            self._threads.append(thread)

        self._pool_metrics.start_pool()
        for worker, thread in zip(self._workers, self._threads):
            worker.start()
            thread.start()

        logger.info(f"WorkerPool started with {worker_count} workers")

    @classmethod
    def from_config(cls, config: WorkerPoolConfig) -> 'WorkerPool':
        return cls(config.worker_count, name=config.name)

    def execute(self, func: Callable, *args, name: str = "", **kwargs) -> str:
        """
        Отправка задачи в пул. Никогда не ждет свободного воркера.

        Args:
            func: Функция для выполнения
            *args: Аргументы функции
            name: Имя задачи
            **kwargs: Именованные аргументы функции

        Returns:
            ID задачи

        Raises:
            ShutdownError: Если пул уже завершает работу
        """
        task = Task(name=name, func=func, args=args, kwargs=kwargs)

        # Проверка флага и постановка в очередь атомарны относительно shutdown()
        with self._lock:
            if self._shutdown_requested:
                raise ShutdownError("WorkerPool has been shut down")
            self._channel.put(task)
            self._pool_metrics.total_tasks_submitted += 1
            self._pool_metrics.update_queue_size(len(self._channel))

        logger.debug(f"Task {task.id} ({task.name}) submitted to pool")
        return task.id

    def shutdown(self):
        """
        Graceful shutdown: отклонять новые задачи, дорабатывать очередь.

        Не ждет завершения воркеров, для этого есть await_termination().
        """
        with self._lock:
            if self._shutdown_requested:
                return
            self._shutdown_requested = True
            self._channel.close()

        logger.info(f"WorkerPool shutdown requested, {len(self._channel)} tasks still queued")

    def shutdown_now(self) -> List[Task]:
        """
        Завершение работы с отменой задач, еще не взятых воркерами.

        Выполняющиеся задачи дорабатывают до конца.

        Returns:
            Список отмененных задач
        """
        self.shutdown()
        cancelled = self._channel.drain()

        for task in cancelled:
            task.status = TaskStatus.CANCELLED

        with self._lock:
            self._pool_metrics.total_tasks_cancelled += len(cancelled)

        logger.info(f"WorkerPool cancelled {len(cancelled)} queued tasks")
        return cancelled

    def await_termination(self, timeout: Optional[float] = None) -> bool:
        """
        Ожидание остановки всех воркеров после shutdown().

        Args:
            timeout: Общий таймаут ожидания (None - ждать бесконечно)

        Returns:
            True если все воркеры остановлены, False если таймаут
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        for thread in self._threads:
            if deadline is None:
                thread.join()
            else:
                thread.join(timeout=max(0.0, deadline - time.monotonic()))

        return self.is_terminated()

    def _worker_loop(self, worker: Worker):
        """Основной цикл воркера."""
        logger.debug(f"Worker {worker.name} started")

        try:
            while True:
                task = self._channel.get()
                if task is None:
                    break
                self._run_task(task, worker)
        finally:
            worker.stop()
            logger.debug(f"Worker {worker.name} stopped")

    def _run_task(self, task: Task, worker: Worker):
        """Выполнение одной задачи на воркере с изоляцией ошибок."""
        worker.set_busy()
        start_time = time.perf_counter()
        success = True

        try:
            task.run()
        except BaseException:
            # SystemExit и прочие BaseException тоже не должны завершать поток воркера
            success = False
            logger.exception(f"Task {task.id} ({task.name}) failed on worker {worker.name}")
        finally:
            execution_time = time.perf_counter() - start_time
            worker.update_metrics(execution_time, success)
            worker.set_idle()
            with self._lock:
                self._pool_metrics.update_task_completion(execution_time, success)

        if success:
            logger.debug(f"Task {task.id} completed on worker {worker.name} in {execution_time:.3f}s")

    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown_requested

    def is_terminated(self) -> bool:
        """Пул остановлен и ни один воркер больше не работает."""
        if not self.is_shutdown():
            return False
        terminated = not any(thread.is_alive() for thread in self._threads)
        if terminated:
            with self._lock:
                if self._pool_metrics.pool_stop_time is None:
                    self._pool_metrics.stop_pool()
        return terminated

    def get_worker_count(self) -> int:
        """Получение количества живых воркеров."""
        return sum(1 for thread in self._threads if thread.is_alive())

    def get_queue_size(self) -> int:
        return len(self._channel)

    def get_workers(self) -> List[Worker]:
        return list(self._workers)

    def get_metrics(self) -> Dict[str, Any]:
        """Получение метрик пула."""
        with self._lock:
            metrics = self._pool_metrics.to_dict()

        metrics.update({
            'worker_count': len(self._workers),
            'live_workers': self.get_worker_count(),
            'queue_size': self.get_queue_size(),
            'shutdown': self.is_shutdown(),
            'channel_metrics': self._channel.get_metrics(),
            'workers': [worker.to_dict() for worker in self._workers]
        })
        return metrics

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        self.await_termination()

    def __repr__(self) -> str:
        return (f"WorkerPool(name={self._name!r}, "
                f"workers={len(self._workers)}, "
                f"queue_size={self.get_queue_size()}, "
                f"shutdown={self.is_shutdown()})")
