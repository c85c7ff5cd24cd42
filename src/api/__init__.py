"""API эндпоинты.

Этот модуль содержит FastAPI роутеры для:
- Health check (/health)
- Push-уведомлений (регистрация токенов, рассылки, уведомление админов)

Проверка истёкших подписок работает в планировщике,
HTTP-эндпоинтов у неё нет.
"""

from src.api.health import router as health_router
from src.api.push import router as push_router

__all__ = ["health_router", "push_router"]
