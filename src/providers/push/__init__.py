"""Push-провайдеры.

Архитектура:
- BasePushProvider — абстрактный интерфейс шлюза
- ExpoPushProvider — Expo Push API (единственный реализованный шлюз)
- NotificationService в services/ решает, кому и что отправлять

Пример использования:
    from src.providers.push import PushMessage, create_expo_provider

    provider = create_expo_provider(timeout=settings.push.timeout)
    await provider.send(PushMessage(to=token, title="...", body="..."))
"""

from src.core.exceptions import PushError
from src.providers.push.base import BasePushProvider, PushMessage
from src.providers.push.expo import (
    EXPO_BATCH_LIMIT,
    ExpoPushProvider,
    create_expo_provider,
)

__all__ = [
    "EXPO_BATCH_LIMIT",
    "BasePushProvider",
    "ExpoPushProvider",
    "PushError",
    "PushMessage",
    "create_expo_provider",
]
