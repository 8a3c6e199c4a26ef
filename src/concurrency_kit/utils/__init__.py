"""
Утилиты: логирование, конфигурация, мониторинг, декораторы.

Конфигурация и декораторы зависят от core, поэтому импортируются
из своих модулей напрямую.
"""

from .logger import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging"
]
