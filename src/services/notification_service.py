"""Сервис push-уведомлений.

Два режима отправки:
1. notify() — best effort для фоновых задач: ошибки логируются
   и НИКОГДА не пробрасываются вызывающему коду, повторов нет.
2. send_to_token() / send_to_tokens() — для HTTP API: ошибка шлюза
   пробрасывается как PushError, чтобы endpoint вернул 500.
"""

from collections.abc import Sequence
from enum import StrEnum
from typing import Any

from src.core.exceptions import PushError
from src.providers.push.base import BasePushProvider, PushMessage
from src.utils.logging import get_logger

logger = get_logger(__name__)


class DeliveryStatus(StrEnum):
    """Результат best-effort отправки."""

    SENT = "sent"  # Шлюз принял уведомление (2xx)
    SKIPPED = "skipped"  # Нет push-адреса, это не ошибка
    FAILED = "failed"  # Шлюз недоступен или ответил ошибкой


class NotificationService:
    """Отправка push-уведомлений через провайдер.

    Attributes:
        _provider: Push-шлюз.
    """

    def __init__(self, provider: BasePushProvider) -> None:
        """Инициализация сервиса.

        Args:
            provider: Push-шлюз (ExpoPushProvider или mock в тестах).
        """
        self._provider = provider

    async def notify(
        self,
        push_address: str | None,
        title: str,
        body: str,
        *,
        sound: str | None = "default",
    ) -> DeliveryStatus:
        """Отправить уведомление без гарантий доставки.

        Отсутствующий push-адрес — не ошибка, отправка просто пропускается.

        Args:
            push_address: Push-адрес устройства (может быть None).
            title: Заголовок.
            body: Текст.
            sound: Звук уведомления.

        Returns:
            DeliveryStatus — исключения наружу не выходят.
        """
        if not push_address:
            return DeliveryStatus.SKIPPED

        message = PushMessage(to=push_address, title=title, body=body, sound=sound)
        try:
            response = await self._provider.send(message)
        except PushError as e:
            logger.warning(
                "Уведомление не доставлено: to=%s, status=%s, временная=%s, ошибка=%s",
                _mask(push_address),
                e.status_code,
                e.is_retryable,
                e,
            )
            return DeliveryStatus.FAILED
        except Exception:
            logger.exception(
                "Неожиданная ошибка отправки уведомления to=%s",
                _mask(push_address),
            )
            return DeliveryStatus.FAILED

        logger.debug("Ответ шлюза для %s: %s", _mask(push_address), response)
        return DeliveryStatus.SENT

    async def send_to_token(self, token: str, title: str, body: str) -> Any:
        """Отправить уведомление на один токен.

        Returns:
            JSON-ответ шлюза.

        Raises:
            PushError: Ошибка шлюза.
        """
        return await self._provider.send(PushMessage(to=token, title=title, body=body))

    async def send_to_tokens(self, tokens: Sequence[str], title: str, body: str) -> Any:
        """Отправить одно и то же уведомление на несколько токенов.

        Args:
            tokens: Непустой список токенов.
            title: Заголовок.
            body: Текст.

        Returns:
            JSON-ответ шлюза.

        Raises:
            PushError: Ошибка шлюза.
        """
        messages = [PushMessage(to=token, title=title, body=body) for token in tokens]
        return await self._provider.send_batch(messages)


def _mask(push_address: str) -> str:
    """Сократить push-адрес для логов (адрес — персональные данные)."""
    if len(push_address) <= 12:
        return push_address
    return f"{push_address[:12]}…"
