"""Сервисы приложения.

Этот пакет содержит бизнес-логику приложения.

Сервисы:
- ExpirationService — цикл истечения подписок (сканирование, оценка, перевод, уведомление).
- NotificationService — отправка push-уведомлений через провайдер.
- InMemoryTokenRegistry — реестр push-токенов для массовых рассылок.
"""

from src.services.expiration_service import (
    CycleReport,
    ExpirationService,
    TransitionResult,
    create_expiration_service,
    is_expired,
)
from src.services.notification_service import DeliveryStatus, NotificationService
from src.services.token_registry import InMemoryTokenRegistry, TokenRegistry

__all__ = [
    "CycleReport",
    "DeliveryStatus",
    "ExpirationService",
    "InMemoryTokenRegistry",
    "NotificationService",
    "TokenRegistry",
    "TransitionResult",
    "create_expiration_service",
    "is_expired",
]
