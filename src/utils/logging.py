"""Настройка логирования.

Два канала вывода:
1. Консоль (stdout) с цветными уровнями — терминал и логи контейнера
2. Файл с ротацией (data/logs/app.log) — история циклов проверки подписок

Компактный формат логов:
    25-01-07 21:55:46 | INFO | services.expiration_service | Сообщение

setup_logging() можно вызывать повторно (hot-reload uvicorn, тесты):
обработчики, добавленные прошлым вызовом, заменяются, а не дублируются.
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from typing_extensions import override

from src.config.constants import LOG_FILE, LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES
from src.utils.timezone import get_timezone

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%y-%m-%d %H:%M:%S"

# Метка обработчиков, установленных setup_logging()
_HANDLER_ATTR = "_relay_handler"

# Внешние библиотеки, которые шумят на INFO.
# apscheduler пишет "Running job ..." на каждом тике.
_QUIET_LOGGERS = ("apscheduler", "httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


# ==============================================================================
# ЦВЕТА
# ==============================================================================


class AnsiColors:
    """ANSI escape-коды для цветного вывода в терминале."""

    RESET = "\033[0m"

    DEBUG = "\033[36m"  # Голубой
    INFO = "\033[32m"  # Зелёный
    WARNING = "\033[33m"  # Жёлтый
    ERROR = "\033[31m"  # Красный
    CRITICAL = "\033[35m"  # Пурпурный


LEVEL_COLORS: dict[str, str] = {
    "DEBUG": AnsiColors.DEBUG,
    "INFO": AnsiColors.INFO,
    "WARNING": AnsiColors.WARNING,
    "ERROR": AnsiColors.ERROR,
    "CRITICAL": AnsiColors.CRITICAL,
}


# ==============================================================================
# ФОРМАТТЕРЫ
# ==============================================================================


class TimezoneFormatter(logging.Formatter):
    """Форматтер с временем в заданном часовом поясе.

    Префикс "src." убирается из имени логгера: src.scheduler.tasks → scheduler.tasks.
    """

    def __init__(
        self,
        fmt: str | None = LOG_FORMAT,
        datefmt: str | None = DATE_FORMAT,
        timezone_name: str = "UTC",
    ) -> None:
        """Инициализировать форматтер.

        Args:
            fmt: Формат строки лога.
            datefmt: Формат даты/времени.
            timezone_name: Название часового пояса из базы IANA.
        """
        super().__init__(fmt, datefmt)
        self.timezone = get_timezone(timezone_name)

    @override
    def formatTime(
        self,
        record: logging.LogRecord,
        datefmt: str | None = None,
    ) -> str:
        dt = datetime.fromtimestamp(record.created, tz=self.timezone)
        return dt.strftime(datefmt or self.default_time_format)

    @override
    def format(self, record: logging.LogRecord) -> str:
        original_name = record.name
        record.name = original_name.removeprefix("src.")
        try:
            return super().format(record)
        finally:
            # Запись разделяется между обработчиками
            record.name = original_name


class ColoredFormatter(TimezoneFormatter):
    """Форматтер консоли: уровень подсвечивается цветом."""

    def __init__(
        self,
        fmt: str | None = LOG_FORMAT,
        datefmt: str | None = DATE_FORMAT,
        timezone_name: str = "UTC",
        use_colors: bool = True,
    ) -> None:
        super().__init__(fmt, datefmt, timezone_name)
        self.use_colors = use_colors

    @override
    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        level_color = LEVEL_COLORS.get(record.levelname)
        if not self.use_colors or level_color is None:
            return formatted

        return formatted.replace(
            f"| {record.levelname} |",
            f"| {level_color}{record.levelname}{AnsiColors.RESET} |",
            1,
        )


def _should_use_colors() -> bool:
    """Цвета включены, если stdout — терминал и не задан NO_COLOR (https://no-color.org/)."""
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


# ==============================================================================
# НАСТРОЙКА
# ==============================================================================


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_ATTR, True)
    return handler


def _remove_own_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)
            handler.close()


def setup_logging(
    level: str = "INFO",
    timezone_name: str = "UTC",
    log_file: Path | None = LOG_FILE,
) -> None:
    """Настроить логирование приложения.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        timezone_name: Часовой пояс для времени в логах.
        log_file: Путь к файлу логов. None — только консоль.
    """
    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        ColoredFormatter(timezone_name=timezone_name, use_colors=_should_use_colors())
    )
    handlers.append(_mark(console_handler))

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(TimezoneFormatter(timezone_name=timezone_name))
        handlers.append(_mark(file_handler))

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    _remove_own_handlers(root_logger)
    for handler in handlers:
        root_logger.addHandler(handler)

    # Uvicorn пишет в те же обработчики и в том же формате
    for name in ("uvicorn", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = list(handlers)
        uvicorn_logger.propagate = False
    # uvicorn.error всплывает в "uvicorn"
    uvicorn_error = logging.getLogger("uvicorn.error")
    uvicorn_error.handlers = []
    uvicorn_error.propagate = True

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер с указанным именем.

    Args:
        name: Имя логгера (обычно __name__).

    Returns:
        Экземпляр логгера.
    """
    return logging.getLogger(name)
