"""
Система логирования для instrumented_swarm
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    node_id: Optional[str] = None
) -> structlog.BoundLogger:
    """
    Настройка системы логирования

    Args:
        log_level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Путь к файлу логов (опционально)
        node_id: Публичный ключ роя (hex) для добавления в логи

    Returns:
        Настроенный логгер
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if log_file else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        # Один приемник: structlog пишет через стандартный logging
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Стандартный logging (aiohttp пишет через него); force закрывает прежний обработчик
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.FileHandler(log_file) if log_file else logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logger = structlog.get_logger()
    if node_id:
        logger = logger.bind(node_id=node_id[:16])

    return logger


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Получение логгера для модуля

    Args:
        name: Имя модуля (опционально)

    Returns:
        Логгер
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(module=name)
    return logger
