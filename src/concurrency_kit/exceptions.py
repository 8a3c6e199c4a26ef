"""
Исключения для примитивов конкурентности.
"""


class ConcurrencyKitError(Exception):
    """Базовое исключение для всех примитивов."""
    pass


class ConfigurationError(ConcurrencyKitError):
    """Некорректные параметры при создании компонента."""
    pass


class ShutdownError(ConcurrencyKitError):
    """Отправка задачи после завершения работы компонента."""
    pass


class TaskExecutionError(ConcurrencyKitError):
    """Ошибка выполнения задачи."""
    pass


class RetryExhaustedError(ConcurrencyKitError):
    """Исчерпаны все попытки ретрая."""

    def __init__(self, message: str, task_id: str = "", attempts: int = 0):
        super().__init__(message)
        self.task_id = task_id
        self.attempts = attempts


class TaskChannelError(ConcurrencyKitError):
    """Ошибка канала задач."""
    pass


class RateLimitExceededError(ConcurrencyKitError):
    """Запрос отклонен ограничителем скорости."""
    pass
