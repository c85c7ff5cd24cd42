"""Загрузчик YAML-конфигурации.

Этот модуль загружает и валидирует config.yaml — файл с настройками,
которые можно менять без изменения кода.

Содержимое config.yaml:
- Расписание задачи истечения подписок
- Тексты уведомления об окончании подписки
- Имена коллекций и полей в хранилище документов
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class ExpiryNotificationConfig(BaseModel):
    """Текст push-уведомления об окончании подписки.

    Attributes:
        title: Заголовок уведомления.
        body: Текст уведомления (предложение продлить подписку).
        sound: Звук уведомления на устройстве ("default" или None).
    """

    title: str = Field(
        default="Subscription Ended ⚠️",
        min_length=1,
        description="Заголовок уведомления",
    )
    body: str = Field(
        default="Your subscription has expired. Renew to continue premium access.",
        min_length=1,
        description="Текст уведомления",
    )
    sound: str | None = Field(
        default="default",
        description="Звук уведомления (None — без звука)",
    )


class ExpirationConfig(BaseModel):
    """Настройки задачи истечения подписок.

    Задача запускается один раз при старте приложения и затем
    каждые interval_seconds секунд.

    Attributes:
        enabled: Регистрировать ли задачу в планировщике.
        interval_seconds: Интервал между запусками в секундах.
        run_on_startup: Выполнить первый цикл сразу при старте,
            не дожидаясь первого срабатывания таймера.
        shutdown_timeout_seconds: Через сколько секунд ожидание текущего цикла
            при остановке считается затянувшимся (цикл всё равно дорабатывает).
        notification: Тексты уведомления пользователю.
    """

    enabled: bool = Field(
        default=True,
        description="Включить задачу истечения подписок",
    )
    interval_seconds: int = Field(
        default=60,
        ge=1,
        description="Интервал между циклами проверки (секунды)",
    )
    run_on_startup: bool = Field(
        default=True,
        description="Запустить первый цикл сразу при старте",
    )
    shutdown_timeout_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Ожидание текущего цикла при остановке (секунды)",
    )
    notification: ExpiryNotificationConfig = ExpiryNotificationConfig()


class StoreSchemaConfig(BaseModel):
    """Имена коллекций, полей и значений в хранилище документов.

    Значения по умолчанию совпадают со схемой мобильного приложения:
    коллекции user_payments и users, поля в camelCase.
    """

    payments_collection: str = "user_payments"
    users_collection: str = "users"

    # Поля документа платежа
    status_field: str = "status"
    expires_at_field: str = "expiresAt"
    user_id_field: str = "userId"

    # Поля документа пользователя
    role_field: str = "role"
    push_address_field: str = "expoPushToken"

    # Значения статуса платежа
    active_status: str = "active"
    expired_status: str = "expired"

    # Значения роли пользователя
    admin_role: str = "admin"
    demoted_role: str = "user"


class YamlConfig(BaseModel):
    """Главная YAML-конфигурация.

    Загружается из config.yaml при старте приложения.
    """

    expiration: ExpirationConfig = ExpirationConfig()
    store: StoreSchemaConfig = StoreSchemaConfig()


def load_yaml_config(path: Path | str = "config.yaml") -> YamlConfig:
    """Загрузить и валидировать YAML-конфигурацию.

    Args:
        path: Путь к файлу конфигурации.

    Returns:
        Валидированный объект конфигурации.
        Если файла нет — конфигурация по умолчанию.

    Raises:
        yaml.YAMLError: Некорректный YAML.
        pydantic.ValidationError: Некорректная конфигурация.
    """
    config_path = Path(path)

    if not config_path.exists():
        return YamlConfig()

    with config_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return YamlConfig.model_validate(data)


yaml_config = load_yaml_config()
