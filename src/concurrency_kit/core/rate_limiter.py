"""
Ограничитель скорости запросов на основе token bucket.
"""

import threading
import time
from typing import Callable, Dict, Any
from dataclasses import dataclass

from ..models.token_bucket import TokenBucket
from ..utils.logger import get_logger
from ..exceptions import ConfigurationError


logger = get_logger(__name__)


@dataclass
class RateLimiterConfig:
    """Конфигурация ограничителя скорости."""
    capacity: int = 10  # Максимум токенов в ведре
    refill_rate: int = 5  # Токенов за каждую целую секунду


def _require_positive_int(name: str, value: Any):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be > 0, got {value}")


class RateLimiter:
    """
    Потокобезопасный ограничитель скорости.

    Пополнение и проверка выполняются одной критической секцией, поэтому
    конкурентные вызовы не могут увидеть устаревшее число токенов.
    Пополнение идет только целыми секундами: доля секунды не засчитывается.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: int,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            capacity: Максимальное количество токенов
            refill_rate: Количество токенов, добавляемых за секунду
            clock: Источник монотонного времени в секундах
        """
        _require_positive_int("capacity", capacity)
        _require_positive_int("refill_rate", refill_rate)

        self._clock = clock
        self._lock = threading.Lock()
        self._bucket = TokenBucket(
            capacity=capacity,
            refill_rate=refill_rate,
            last_refill_time=clock()
        )

        self._allowed = 0
        self._rejected = 0

        logger.info(f"RateLimiter initialized: capacity={capacity}, refill_rate={refill_rate}/s")

    @classmethod
    def from_config(cls, config: RateLimiterConfig) -> 'RateLimiter':
        return cls(config.capacity, config.refill_rate)

    @property
    def capacity(self) -> int:
        return self._bucket.capacity

    @property
    def refill_rate(self) -> int:
        return self._bucket.refill_rate

    def allow_request(self) -> bool:
        """
        Попытка получить разрешение на один запрос.

        Не блокирует и не ставит запрос в очередь: отклоненный запрос
        обрабатывает вызывающая сторона.

        Returns:
            True если запрос разрешен, False иначе
        """
        with self._lock:
            allowed = self._bucket.try_consume(self._clock())
            if allowed:
                self._allowed += 1
            else:
                self._rejected += 1

        if not allowed:
            logger.debug("Request rejected: bucket is empty")
        return allowed

    @property
    def available_tokens(self) -> int:
        """Текущее число токенов с учетом пополнения."""
        with self._lock:
            self._bucket.refill(self._clock())
            return self._bucket.tokens

    def get_metrics(self) -> Dict[str, Any]:
        """Получение метрик ограничителя."""
        with self._lock:
            return {
                'capacity': self._bucket.capacity,
                'refill_rate': self._bucket.refill_rate,
                'tokens': self._bucket.tokens,
                'requests_allowed': self._allowed,
                'requests_rejected': self._rejected
            }

    def __repr__(self) -> str:
        return f"RateLimiter(capacity={self.capacity}, refill_rate={self.refill_rate})"
