"""
Канал задач для пула воркеров.
"""

import queue
import threading
from typing import Optional, List

from ..models.task import Task
from ..utils.logger import get_logger
from ..exceptions import TaskChannelError


logger = get_logger(__name__)


# Маркер закрытия канала. Ставится в конец очереди, после всех задач
_CLOSED = object()


class TaskChannel:
    """
    Неограниченный FIFO-канал между отправителями и воркерами.

    Закрытие не выбрасывает задачи: маркер закрытия встает в очередь после
    них, и каждый потребитель видит его только когда очередь опустела.
    """

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()
        self._close_lock = threading.Lock()
        self._metrics_lock = threading.Lock()

        self._metrics = {
            'tasks_submitted': 0,
            'tasks_retrieved': 0,
            'tasks_drained': 0,
            'max_size_reached': 0
        }

    def put(self, task: Task):
        """
        Отправка задачи в канал. Никогда не блокирует.

        Raises:
            TaskChannelError: Если канал закрыт
        """
        with self._close_lock:
            if self._closed.is_set():
                raise TaskChannelError("Channel is closed")
            self._queue.put(task)

        with self._metrics_lock:
            self._metrics['tasks_submitted'] += 1
            self._metrics['max_size_reached'] = max(
                self._metrics['max_size_reached'],
                self._queue.qsize()
            )

        logger.debug(f"Task {task.id} submitted to channel")

    def get(self, timeout: Optional[float] = None) -> Optional[Task]:
        """
        Получение следующей задачи.

        Args:
            timeout: Таймаут ожидания (None - ждать бесконечно)

        Returns:
            Задача, либо None если канал закрыт и пуст или истек таймаут
        """
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

        if item is _CLOSED:
            # Возвращаем маркер для остальных потребителей
            self._queue.put(_CLOSED)
            return None

        with self._metrics_lock:
            self._metrics['tasks_retrieved'] += 1

        logger.debug(f"Task {item.id} retrieved from channel")
        return item

    def close(self):
        """Закрытие канала. Повторный вызов ничего не делает."""
        with self._close_lock:
            if self._closed.is_set():
                return
            self._closed.set()
            self._queue.put(_CLOSED)

        logger.info("Task channel closed")

    def drain(self) -> List[Task]:
        """Удаление из канала всех ожидающих задач."""
        drained = []
        saw_close = False
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _CLOSED:
                saw_close = True
            else:
                drained.append(item)

        if saw_close:
            self._queue.put(_CLOSED)

        with self._metrics_lock:
            self._metrics['tasks_drained'] += len(drained)

        if drained:
            logger.info(f"Drained {len(drained)} pending tasks from channel")
        return drained

    def is_closed(self) -> bool:
        return self._closed.is_set()

    def get_metrics(self) -> dict:
        """Получение метрик канала."""
        with self._metrics_lock:
            metrics = self._metrics.copy()
        metrics['current_size'] = len(self)
        return metrics

    def __len__(self) -> int:
        """Количество ожидающих задач (без маркера закрытия)."""
        size = self._queue.qsize()
        if self._closed.is_set():
            size -= 1
        return max(0, size)

    def __repr__(self) -> str:
        return f"TaskChannel(size={len(self)}, closed={self.is_closed()})"
