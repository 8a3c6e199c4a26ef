"""
Модель token bucket для ограничителя скорости.
"""

from dataclasses import dataclass, field


@dataclass
class TokenBucket:
    """
    Ведро токенов с пополнением по целым секундам.

    Блокировок не содержит: все обращения сериализует владелец
    (RateLimiter). Инвариант: 0 <= tokens <= capacity.
    """

    capacity: int
    refill_rate: int
    last_refill_time: float
    tokens: int = field(default=-1)

    def __post_init__(self):
        # Ведро создается полным
        if self.tokens < 0:
            self.tokens = self.capacity

    def refill(self, now: float) -> int:
        """
        Пополнение токенов за прошедшие целые секунды.

        Args:
            now: Текущее монотонное время в секундах

        Returns:
            Количество фактически добавленных токенов
        """
        elapsed = now - self.last_refill_time
        if elapsed < 1.0:
            return 0

        # Дробная часть секунды не засчитывается
        tokens_to_add = int(elapsed) * self.refill_rate
        new_count = min(self.capacity, self.tokens + tokens_to_add)
        added = new_count - self.tokens

        self.tokens = new_count
        self.last_refill_time = now
        return added

    def try_consume(self, now: float) -> bool:
        """Пополнение и попытка забрать один токен."""
        self.refill(now)

        if self.tokens > 0:
            self.tokens -= 1
            return True
        return False
