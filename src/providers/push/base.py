"""Базовый адаптер для push-шлюзов.

Этот модуль определяет абстрактный интерфейс push-шлюза. Это позволяет:
- Тестировать логику уведомлений с mock-провайдером
- Заменить Expo на другой шлюз (FCM, APNs) без изменения сервисов

Паттерн: Adapter (GoF)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PushMessage:
    """Одно push-уведомление.

    Attributes:
        to: Push-адрес устройства (непрозрачный токен, например ExponentPushToken[...]).
        title: Заголовок.
        body: Текст.
        sound: Звук на устройстве ("default" или None — без звука).
    """

    to: str
    title: str
    body: str
    sound: str | None = "default"

    def to_payload(self) -> dict[str, Any]:
        """Сериализовать в JSON-объект шлюза {to, sound, title, body}."""
        return {
            "to": self.to,
            "sound": self.sound,
            "title": self.title,
            "body": self.body,
        }


class BasePushProvider(ABC):
    """Абстрактный push-шлюз.

    Семантика доставки — best effort: провайдер делает одну попытку,
    повторов и отслеживания квитанций нет.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Название провайдера для логов и ошибок."""

    @abstractmethod
    async def send(self, message: PushMessage) -> Any:
        """Отправить одно уведомление.

        Args:
            message: Уведомление.

        Returns:
            JSON-ответ шлюза (только для логирования).

        Raises:
            PushError: Шлюз недоступен или ответил не 2xx.
        """

    @abstractmethod
    async def send_batch(self, messages: list[PushMessage]) -> Any:
        """Отправить несколько уведомлений одним запросом.

        Args:
            messages: Непустой список уведомлений.

        Returns:
            JSON-ответ шлюза.

        Raises:
            PushError: Шлюз недоступен или ответил не 2xx.
        """

    async def close(self) -> None:
        """Освободить ресурсы (HTTP-клиент). По умолчанию — ничего."""
