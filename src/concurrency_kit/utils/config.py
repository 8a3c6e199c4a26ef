"""
Система конфигурации для примитивов конкурентности.
"""

import json
import yaml
import os
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass, asdict, field
from pathlib import Path

from ..core.rate_limiter import RateLimiterConfig
from ..core.worker_pool import WorkerPoolConfig
from ..core.retry_scheduler import RetryConfig
from ..exceptions import ConfigurationError
from .logger import setup_logging


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class Config:
    """Общая конфигурация набора примитивов."""

    log_level: str = "INFO"

    rate_limiter: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    worker_pool: WorkerPoolConfig = field(default_factory=WorkerPoolConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование в словарь."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Создание из словаря."""
        data = dict(data or {})

        rate_limiter_data = data.pop('rate_limiter', None) or {}
        worker_pool_data = data.pop('worker_pool', None) or {}
        retry_data = data.pop('retry', None) or {}

        try:
            return cls(
                rate_limiter=RateLimiterConfig(**rate_limiter_data),
                worker_pool=WorkerPoolConfig(**worker_pool_data),
                retry=RetryConfig(**retry_data),
                **data
            )
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

    def validate(self) -> bool:
        """Валидация конфигурации."""
        errors = []

        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

        for key, value in (
            ('rate_limiter.capacity', self.rate_limiter.capacity),
            ('rate_limiter.refill_rate', self.rate_limiter.refill_rate),
            ('worker_pool.worker_count', self.worker_pool.worker_count),
            ('retry.thread_count', self.retry.thread_count),
            ('retry.history_size', self.retry.history_size),
        ):
            if not _is_int(value):
                errors.append(f"{key} must be an integer, got {value!r}")
            elif value <= 0:
                errors.append(f"{key} must be > 0")

        if not _is_int(self.retry.max_retries):
            errors.append(f"retry.max_retries must be an integer, got {self.retry.max_retries!r}")
        elif self.retry.max_retries < 0:
            errors.append("retry.max_retries must be >= 0")

        base_delay_valid = False
        if not _is_number(self.retry.base_delay):
            errors.append(f"retry.base_delay must be a number, got {self.retry.base_delay!r}")
        elif self.retry.base_delay <= 0:
            errors.append("retry.base_delay must be > 0")
        else:
            base_delay_valid = True

        max_delay = self.retry.max_delay
        if max_delay is not None:
            if not _is_number(max_delay):
                errors.append(f"retry.max_delay must be a number, got {max_delay!r}")
            elif base_delay_valid and max_delay < self.retry.base_delay:
                errors.append("retry.max_delay must be >= retry.base_delay")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

        return True

    def configure_logging(self, log_file: Optional[str] = None, enable_console: bool = True):
        """Настройка логирования с уровнем из конфигурации."""
        setup_logging(level=self.log_level, log_file=log_file, enable_console=enable_console)

    def update(self, **kwargs) -> 'Config':
        """Обновление конфигурации с новыми значениями."""
        new_config = self.to_dict()
        new_config.update(kwargs)
        return Config.from_dict(new_config)


def load_config(file_path: Union[str, Path]) -> Config:
    """
    Загрузка конфигурации из файла.

    Args:
        file_path: Путь к файлу конфигурации (.yaml, .yml или .json)

    Returns:
        Проверенный объект конфигурации
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif file_path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {file_path.suffix}")

    config = Config.from_dict(data)
    config.validate()

    return config


def save_config(config: Config, file_path: Union[str, Path], format: str = 'yaml'):
    """
    Сохранение конфигурации в файл.

    Args:
        config: Объект конфигурации
        file_path: Путь к файлу
        format: Формат файла ('yaml' или 'json')
    """
    file_path = Path(file_path)
    data = config.to_dict()

    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, 'w', encoding='utf-8') as f:
        if format.lower() == 'yaml':
            yaml.safe_dump(data, f, default_flow_style=False, indent=2)
        elif format.lower() == 'json':
            json.dump(data, f, indent=2, ensure_ascii=False)
        else:
            raise ConfigurationError(f"Unsupported format: {format}")


def load_config_from_env() -> Config:
    """
    Загрузка конфигурации из переменных окружения.

    Returns:
        Объект конфигурации
    """
    config_data: Dict[str, Any] = {}

    if os.getenv('CONCURRENCY_KIT_LOG_LEVEL'):
        config_data['log_level'] = os.getenv('CONCURRENCY_KIT_LOG_LEVEL')

    # Ограничитель скорости
    rate_limiter_data = {}
    if os.getenv('RATE_LIMITER_CAPACITY'):
        rate_limiter_data['capacity'] = int(os.getenv('RATE_LIMITER_CAPACITY'))

    if os.getenv('RATE_LIMITER_REFILL_RATE'):
        rate_limiter_data['refill_rate'] = int(os.getenv('RATE_LIMITER_REFILL_RATE'))

    if rate_limiter_data:
        config_data['rate_limiter'] = rate_limiter_data

    # Пул воркеров
    if os.getenv('WORKER_POOL_WORKER_COUNT'):
        config_data['worker_pool'] = {'worker_count': int(os.getenv('WORKER_POOL_WORKER_COUNT'))}

    # Ретраи
    retry_data = {}
    if os.getenv('RETRY_THREAD_COUNT'):
        retry_data['thread_count'] = int(os.getenv('RETRY_THREAD_COUNT'))

    if os.getenv('RETRY_MAX_RETRIES'):
        retry_data['max_retries'] = int(os.getenv('RETRY_MAX_RETRIES'))

    if os.getenv('RETRY_BASE_DELAY'):
        retry_data['base_delay'] = float(os.getenv('RETRY_BASE_DELAY'))

    if os.getenv('RETRY_MAX_DELAY'):
        retry_data['max_delay'] = float(os.getenv('RETRY_MAX_DELAY'))

    if os.getenv('RETRY_HISTORY_SIZE'):
        retry_data['history_size'] = int(os.getenv('RETRY_HISTORY_SIZE'))

    if retry_data:
        config_data['retry'] = retry_data

    return Config.from_dict(config_data)


def merge_configs(base_config: Config, override_config: Dict[str, Any]) -> Config:
    """
    Объединение конфигурации с частичными переопределениями.

    Args:
        base_config: Базовая конфигурация
        override_config: Словарь переопределений (вложенные секции сливаются)

    Returns:
        Объединенная конфигурация
    """
    def merge_dicts(base: dict, override: dict) -> dict:
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    return Config.from_dict(merge_dicts(base_config.to_dict(), override_config))
