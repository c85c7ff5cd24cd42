"""Настройки из переменных окружения и .env.

Модуль читает окружение при импорте и выставляет глобальный `settings`.
Тесты, которым нужны только классы секций, импортируют их из
src.config.models: там нет побочных эффектов.

Вложенные поля задаются через двойное подчёркивание:
    PUSH__ACCESS_TOKEN=...
    DATABASE__URL=sqlite+aiosqlite:///./data/relay.db
    LOGGING__LEVEL=DEBUG
"""

import sys

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.constants import PROJECT_ROOT
from src.config.models import (
    CORSSettings,
    DatabaseSettings,
    LoggingSettings,
    PushSettings,
)

__all__ = [
    "CORSSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "PushSettings",
    "Settings",
    "load_settings",
    "settings",
]

ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Настройки приложения. Переменные окружения важнее значений из .env."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings = DatabaseSettings()
    push: PushSettings = PushSettings()
    logging: LoggingSettings = LoggingSettings()
    cors: CORSSettings = CORSSettings()


def _format_validation_error(error: ValidationError) -> str:
    lines = ["Ошибка конфигурации. Проверьте .env или переменные окружения:"]
    for err in error.errors():
        # ("push", "timeout") -> PUSH__TIMEOUT
        env_name = "__".join(str(loc) for loc in err["loc"]).upper()
        lines.append(f"  {env_name}: {err['msg']}")
    return "\n".join(lines)


def load_settings() -> Settings:
    """Загрузить настройки.

    При невалидных значениях печатает список ошибок и завершает процесс:
    сервис без корректной конфигурации запускать нельзя.

    Returns:
        Загруженные настройки.
    """
    try:
        return Settings()
    except ValidationError as e:
        print(_format_validation_error(e), file=sys.stderr)
        sys.exit(1)


settings = load_settings()
