"""
Декораторы для композиции примитивов.
"""

import functools
from typing import Callable

from ..core.rate_limiter import RateLimiter
from ..utils.logger import get_logger
from ..exceptions import RateLimitExceededError


logger = get_logger(__name__)


def rate_limited(limiter: RateLimiter) -> Callable:
    """
    Декоратор, пропускающий вызов только при разрешении ограничителя.

    Не ждет пополнения токенов: отклоненный вызов сразу получает
    RateLimitExceededError, и решение остается за вызывающей стороной.

    Args:
        limiter: Общий для всех вызовов ограничитель скорости
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not limiter.allow_request():
                logger.warning(f"Rate limit exceeded for {func.__name__}")
                raise RateLimitExceededError(f"Rate limit exceeded for {func.__name__}")

            return func(*args, **kwargs)

        wrapper.limiter = limiter
        return wrapper
    return decorator
