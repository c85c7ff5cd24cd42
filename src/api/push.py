"""API эндпоинты push-уведомлений.

Этот модуль содержит HTTP-эндпоинты для мобильного приложения и админов:
- POST /register-token — регистрация push-токена устройства
- GET /count — количество зарегистрированных токенов
- POST /send-notification — рассылка на все зарегистрированные токены
- POST /notify-user — уведомление на один токен
- POST /notify-admins — уведомление всем пользователям с ролью admin

Важно:
- Реестр токенов и сервис уведомлений берутся из app.state
  (создаются в ApplicationLifecycle)
- Ошибка push-шлюза возвращается как 500, повторов нет
"""

import json
from collections.abc import Callable
from typing import Annotated, Any, TypeVar, cast

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.config.yaml_config import yaml_config
from src.core.exceptions import DatabaseError, PushError
from src.db.base import get_session
from src.db.repositories.document_repo import DocumentRepository
from src.db.repositories.user_repo import UserRepository
from src.services.notification_service import NotificationService
from src.services.token_registry import TokenRegistry
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["push"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


# ==============================================================================
# МОДЕЛИ ЗАПРОСОВ
# ==============================================================================


class PushRequest(BaseModel):
    """Общая часть тел запросов.

    Поля принимаются как есть из JSON: строки без изменений, непустые
    числа и true приводятся к строке, а null, false, 0, объекты и массивы
    считаются отсутствующими. Проверка обязательных полей — в эндпоинтах
    (400, а не 422 валидации FastAPI).
    """

    @field_validator("*", mode="before")
    @classmethod
    def _loose_text(cls, value: Any) -> str | None:
        if isinstance(value, str):
            return value
        if isinstance(value, bool | int | float) and value:
            return json.dumps(value)
        return None


class RegisterTokenRequest(PushRequest):
    """Тело запроса /register-token."""

    token: str | None = None


class NotificationRequest(PushRequest):
    """Тело запросов /send-notification и /notify-admins."""

    title: str | None = None
    body: str | None = None


class NotifyUserRequest(PushRequest):
    """Тело запроса /notify-user."""

    token: str | None = None
    title: str | None = None
    body: str | None = None


# ==============================================================================
# ЗАВИСИМОСТИ
# ==============================================================================


async def get_token_registry(request: Request) -> TokenRegistry:
    """Получить реестр токенов из app.state.

    Raises:
        HTTPException: Если реестр не инициализирован.
    """
    registry = getattr(request.app.state, "token_registry", None)
    if registry is None:
        raise HTTPException(status_code=500, detail="Token registry not available")
    return cast("TokenRegistry", registry)


async def get_notification_service(request: Request) -> NotificationService:
    """Получить сервис уведомлений из app.state.

    Raises:
        HTTPException: Если сервис не инициализирован.
    """
    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Notification service not available")
    return cast("NotificationService", service)


# ==============================================================================
# ЭНДПОИНТЫ
# ==============================================================================


@typed_post("/register-token")
async def register_token(
    registry: Annotated[TokenRegistry, Depends(get_token_registry)],
    payload: RegisterTokenRequest | None = None,
) -> dict[str, Any]:
    """Зарегистрировать push-токен устройства.

    Повторная регистрация того же токена не увеличивает счётчик.

    Returns:
        {"success": true, "totalTokens": n}.

    Raises:
        HTTPException: 400 если токен не передан.
    """
    payload = payload or RegisterTokenRequest()
    if not payload.token:
        raise HTTPException(status_code=400, detail="No token provided")

    total = await registry.add(payload.token)
    logger.info("Зарегистрирован push-токен, всего токенов: %d", total)
    return {"success": True, "totalTokens": total}


@router.get("/count")
async def count_tokens(
    registry: Annotated[TokenRegistry, Depends(get_token_registry)],
) -> dict[str, int]:
    """Количество зарегистрированных токенов."""
    return {"count": await registry.count()}


@typed_post("/send-notification")
async def send_notification(
    registry: Annotated[TokenRegistry, Depends(get_token_registry)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    payload: NotificationRequest | None = None,
) -> dict[str, Any]:
    """Отправить уведомление на все зарегистрированные токены.

    Returns:
        {"success": true, "sent": n, "expoResponse": ...}.

    Raises:
        HTTPException: 400 без title/body или без токенов, 500 при ошибке шлюза.
    """
    payload = payload or NotificationRequest()
    if not payload.title or not payload.body:
        raise HTTPException(status_code=400, detail="title and body are required")

    tokens = await registry.list_tokens()
    if not tokens:
        raise HTTPException(status_code=400, detail="No subscribers registered")

    try:
        response = await notifications.send_to_tokens(tokens, payload.title, payload.body)
    except PushError as e:
        logger.error("Ошибка рассылки на %d токенов: %s", len(tokens), e)
        raise HTTPException(status_code=500, detail="Failed to send notification") from e

    logger.info("Рассылка отправлена на %d токенов", len(tokens))
    return {"success": True, "sent": len(tokens), "expoResponse": response}


@typed_post("/notify-user")
async def notify_user(
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    payload: NotifyUserRequest | None = None,
) -> dict[str, Any]:
    """Отправить уведомление на один токен.

    Raises:
        HTTPException: 400 без token/title/body, 500 при ошибке шлюза.
    """
    payload = payload or NotifyUserRequest()
    if not payload.token or not payload.title or not payload.body:
        raise HTTPException(status_code=400, detail="token, title, body required")

    try:
        response = await notifications.send_to_token(
            payload.token, payload.title, payload.body
        )
    except PushError as e:
        logger.error("Ошибка отправки уведомления пользователю: %s", e)
        raise HTTPException(status_code=500, detail="Failed to notify user") from e

    return {"success": True, "expoResponse": response}


@typed_post("/notify-admins")
async def notify_admins(
    session: Annotated[AsyncSession, Depends(get_session)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    payload: NotificationRequest | None = None,
) -> dict[str, Any]:
    """Отправить уведомление всем пользователям с ролью admin.

    Пользователи без push-адреса пропускаются.

    Raises:
        HTTPException: 400 без title/body, 500 при ошибке БД или шлюза.
    """
    payload = payload or NotificationRequest()
    if not payload.title or not payload.body:
        raise HTTPException(status_code=400, detail="title and body required")

    users = UserRepository(
        DocumentRepository(session, timeout=settings.database.timeout),
        yaml_config.store,
    )
    try:
        admins = await users.get_admins()
    except DatabaseError as e:
        logger.error("Не удалось получить список админов: %s", e)
        raise HTTPException(status_code=500, detail="Failed to notify admins") from e

    if not admins:
        return {"success": True, "message": "No admins found"}

    tokens = [admin.push_address for admin in admins if admin.push_address]
    if not tokens:
        return {"success": True, "message": "No admin tokens available"}

    try:
        response = await notifications.send_to_tokens(tokens, payload.title, payload.body)
    except PushError as e:
        logger.error("Ошибка рассылки админам: %s", e)
        raise HTTPException(status_code=500, detail="Failed to notify admins") from e

    logger.info("Уведомление отправлено %d админам", len(tokens))
    return {"success": True, "sent": len(tokens), "expoResponse": response}
