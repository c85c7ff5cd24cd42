"""Управление жизненным циклом приложения.

Класс ApplicationLifecycle инкапсулирует всю логику startup и shutdown:
- Создание таблиц хранилища
- Создание push-провайдера, сервиса уведомлений и реестра токенов
- Запуск планировщика проверки подписок
- Корректная остановка всех компонентов

Порядок остановки важен: сначала планировщик дожидается текущего цикла,
и только потом закрываются HTTP-клиент и пул соединений БД —
иначе цикл упадёт на середине.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.db.base import create_tables, dispose_engine
from src.providers.push import create_expo_provider
from src.scheduler import create_scheduler, shutdown_scheduler, start_scheduler
from src.services.notification_service import NotificationService
from src.services.token_registry import InMemoryTokenRegistry
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from apscheduler.schedulers.asyncio import AsyncIOScheduler
    from fastapi import FastAPI

    from src.config.settings import Settings
    from src.config.yaml_config import YamlConfig
    from src.providers.push import BasePushProvider

logger = get_logger(__name__)


class ApplicationLifecycle:
    """Управление жизненным циклом приложения.

    Attributes:
        settings: Настройки приложения из .env
        yaml_config: Конфигурация из config.yaml
        push_provider: Push-шлюз (создаётся при startup)
        scheduler: APScheduler instance для проверки подписок
    """

    def __init__(self, settings: Settings, yaml_config: YamlConfig) -> None:
        """Инициализировать lifecycle manager.

        Args:
            settings: Настройки приложения из .env
            yaml_config: Конфигурация из config.yaml
        """
        self.settings = settings
        self.yaml_config = yaml_config

        # Компоненты, которые создаются при startup
        self.push_provider: BasePushProvider | None = None
        self.scheduler: AsyncIOScheduler | None = None

    async def startup(self, app: FastAPI) -> None:
        """Выполнить startup приложения.

        1. Таблицы хранилища
        2. Push-провайдер и сервис уведомлений
        3. Реестр push-токенов
        4. Планировщик (первый цикл — сразу, если run_on_startup)

        Args:
            app: FastAPI приложение для сохранения компонентов в app.state
        """
        logger.info("Запуск приложения...")

        await create_tables()
        logger.debug("Таблицы хранилища готовы")

        push = self.settings.push
        access_token = push.access_token.get_secret_value() if push.access_token else None
        self.push_provider = create_expo_provider(
            push.url,
            timeout=push.timeout,
            access_token=access_token,
        )
        notification_service = NotificationService(self.push_provider)

        # Сохраняем в app.state для доступа из API endpoints
        app.state.push_provider = self.push_provider
        app.state.notification_service = notification_service
        app.state.token_registry = InMemoryTokenRegistry()

        self.scheduler = create_scheduler(self.yaml_config, notification_service)
        start_scheduler(self.scheduler)
        app.state.scheduler = self.scheduler

        logger.info("✅ Приложение запущено успешно")

    async def shutdown(self) -> None:
        """Выполнить shutdown приложения.

        Останавливает все компоненты в обратном порядке:
        1. Планировщик (с ожиданием текущего цикла)
        2. HTTP-клиент push-шлюза
        3. Пул соединений БД
        """
        logger.info("Остановка приложения...")

        if self.scheduler is not None:
            await shutdown_scheduler(
                self.scheduler,
                timeout=self.yaml_config.expiration.shutdown_timeout_seconds,
            )

        if self.push_provider is not None:
            await self.push_provider.close()
            logger.debug("HTTP-клиент push-шлюза закрыт")

        await dispose_engine()
        logger.debug("Пул соединений БД закрыт")

        logger.info("✅ Приложение остановлено")
