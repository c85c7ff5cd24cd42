"""Factory для создания FastAPI приложения.

Функция create_app() создаёт и настраивает FastAPI app:
- Подключает роутеры (health, push)
- Настраивает CORS middleware
- Подключает lifecycle manager
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.health import router as health_router
from src.api.push import router as push_router
from src.app.lifecycle import ApplicationLifecycle
from src.config.settings import settings
from src.config.yaml_config import yaml_config
from src.utils.logging import get_logger

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Создать и настроить FastAPI приложение.

    Returns:
        Настроенное FastAPI приложение готовое к запуску
    """
    lifecycle = ApplicationLifecycle(settings, yaml_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Управление жизненным циклом приложения.

        Args:
            app: FastAPI приложение

        Yields:
            None: Приложение работает между startup и shutdown
        """
        await lifecycle.startup(app)

        yield

        await lifecycle.shutdown()

    app = FastAPI(
        title="Push Relay",
        description="Relay push-уведомлений и проверка истёкших подписок",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS включается только если указаны разрешённые домены
    if settings.cors.is_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors.allow_origins,
            allow_credentials=settings.cors.allow_credentials,
            allow_methods=settings.cors.allow_methods,
            allow_headers=settings.cors.allow_headers,
        )
        logger.info(
            "CORS включён для доменов: %s",
            ", ".join(settings.cors.allow_origins),
        )

    # Health check API: /health
    app.include_router(health_router)

    # Push API: /register-token, /count, /send-notification, /notify-user, /notify-admins
    app.include_router(push_router)

    return app
