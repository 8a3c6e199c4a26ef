"""
Сбор метрик процесса и компонентов.
"""

import os
import time
import threading
import psutil
from typing import Dict, Any, List, Optional, Callable
from dataclasses import dataclass, field, asdict
from datetime import datetime
from collections import deque

from ..utils.logger import get_logger


logger = get_logger(__name__)


@dataclass
class ProcessMetrics:
    """Метрики текущего процесса."""
    cpu_percent: float = 0.0
    memory_rss_mb: float = 0.0
    num_threads: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


class MetricsCollector:
    """
    Сборщик метрик процесса и зарегистрированных компонентов.

    Компонент регистрируется функцией без аргументов, возвращающей словарь,
    например pool.get_metrics или limiter.get_metrics.
    """

    def __init__(self, collection_interval: float = 5.0, history_size: int = 100):
        self.collection_interval = collection_interval
        self.history_size = history_size

        self._process = psutil.Process(os.getpid())
        self._metrics_history: deque = deque(maxlen=history_size)
        self._collectors: Dict[str, Callable[[], Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._collection_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def register_collector(self, name: str, collector: Callable[[], Dict[str, Any]]):
        with self._lock:
            self._collectors[name] = collector
        logger.debug(f"Registered metrics collector {name!r}")

    def unregister_collector(self, name: str):
        with self._lock:
            self._collectors.pop(name, None)

    def collect(self) -> Dict[str, Any]:
        """Однократный сбор всех метрик с сохранением в историю."""
        snapshot = {
            'timestamp': datetime.now(),
            'process': asdict(self._collect_process_metrics()),
            'components': self._collect_component_metrics()
        }

        with self._lock:
            self._metrics_history.append(snapshot)

        return snapshot

    def _collect_process_metrics(self) -> ProcessMetrics:
        try:
            with self._process.oneshot():
                return ProcessMetrics(
                    cpu_percent=self._process.cpu_percent(interval=None),
                    memory_rss_mb=self._process.memory_info().rss / (1024 * 1024),
                    num_threads=self._process.num_threads()
                )
        except psutil.Error as e:
            logger.warning(f"Error collecting process metrics: {e}")
            return ProcessMetrics()

    def _collect_component_metrics(self) -> Dict[str, Any]:
        with self._lock:
            collectors = list(self._collectors.items())

        metrics = {}
        for name, collector in collectors:
            try:
                metrics[name] = collector()
            except Exception as e:
                logger.error(f"Error in metrics collector {name!r}: {e}")
                metrics[name] = {'error': str(e)}
        return metrics

    def start(self):
        """Запуск периодического сбора в фоновом потоке."""
        if self._collection_thread and self._collection_thread.is_alive():
            logger.warning("Metrics collection already running")
            return

        self._stop_event.clear()
        self._collection_thread = threading.Thread(
            target=self._collection_loop,
            name="metrics-collector",
            daemon=True
        )
        self._collection_thread.start()
        logger.info(f"Metrics collection started with interval {self.collection_interval}s")

    def stop(self):
        """Остановка сбора метрик."""
        if self._collection_thread and self._collection_thread.is_alive():
            self._stop_event.set()
            self._collection_thread.join(timeout=5.0)
            logger.info("Metrics collection stopped")

    def _collection_loop(self):
        while not self._stop_event.is_set():
            started = time.monotonic()
            self.collect()
            elapsed = time.monotonic() - started
            self._stop_event.wait(max(0.0, self.collection_interval - elapsed))

    def get_history(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._metrics_history)

    def get_latest(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._metrics_history[-1] if self._metrics_history else None
