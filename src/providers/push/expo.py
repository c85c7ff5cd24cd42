"""Push-провайдер через Expo Push API.

API документация: https://docs.expo.dev/push-notifications/sending-notifications/

Один endpoint:
    POST https://exp.host/--/api/v2/push/send
    Тело: {to, sound, title, body} или массив таких объектов (до 100 штук)
    Ответ: {"data": {...}} или {"data": [...]} — квитанции (push tickets)

Квитанции только логируются: повторов и проверки receipts нет.
"""

from typing import Any

import httpx
from typing_extensions import override

from src.config.constants import EXPO_PUSH_URL, PUSH_HTTP_TIMEOUT
from src.core.exceptions import PushError
from src.providers.push.base import BasePushProvider, PushMessage
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Максимум сообщений в одном запросе к Expo
EXPO_BATCH_LIMIT = 100


class ExpoPushProvider(BasePushProvider):
    """Провайдер push-уведомлений через Expo.

    Attributes:
        _url: Endpoint шлюза.
        _timeout: Таймаут HTTP-запроса в секундах.
        _access_token: Access token Expo (опционально).
        _client: HTTP-клиент (создаётся лениво).

    Example:
        provider = ExpoPushProvider(timeout=10.0)
        await provider.send(PushMessage(to="ExponentPushToken[xxx]", title="Hi", body="..."))
        await provider.close()
    """

    PROVIDER_NAME = "expo"

    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        *,
        timeout: float = PUSH_HTTP_TIMEOUT,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Создать провайдер Expo.

        Args:
            url: Endpoint шлюза.
            timeout: Таймаут HTTP-запросов в секундах.
            access_token: Access token Expo (Enhanced Security).
            transport: Транспорт httpx (для тестов — httpx.MockTransport).
        """
        self._url = url
        self._timeout = timeout
        self._access_token = access_token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Получить или создать HTTP-клиент.

        Ленивая инициализация клиента для корректной работы с asyncio.
        """
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
            if self._access_token:
                headers["Authorization"] = f"Bearer {self._access_token}"
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент.

        Вызовите при завершении работы приложения.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return self.PROVIDER_NAME

    @override
    async def send(self, message: PushMessage) -> Any:
        """Отправить одно уведомление (тело — JSON-объект)."""
        return await self._post(message.to_payload())

    @override
    async def send_batch(self, messages: list[PushMessage]) -> Any:
        """Отправить уведомления массивами по EXPO_BATCH_LIMIT штук.

        Returns:
            {"data": [...]} — квитанции всех частей по порядку.
        """
        tickets: list[Any] = []
        for start in range(0, len(messages), EXPO_BATCH_LIMIT):
            chunk = messages[start : start + EXPO_BATCH_LIMIT]
            response = await self._post([m.to_payload() for m in chunk])
            data = response.get("data", []) if isinstance(response, dict) else []
            tickets.extend(data if isinstance(data, list) else [data])
        return {"data": tickets}

    async def _post(self, payload: dict[str, Any] | list[dict[str, Any]]) -> Any:
        """Выполнить POST к шлюзу.

        Args:
            payload: Объект или массив объектов сообщений.

        Returns:
            Разобранный JSON-ответ (или None, если тело пустое).

        Raises:
            PushError: Таймаут, сетевая ошибка или ответ не 2xx.
        """
        try:
            client = await self._get_client()
            response = await client.post(self._url, json=payload)
        except httpx.TimeoutException as e:
            logger.warning("Expo таймаут: %s", e)
            raise PushError(
                "Таймаут запроса к Expo",
                provider=self.provider_name,
                is_retryable=True,
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            raise PushError(
                f"Ошибка HTTP: {e}",
                provider=self.provider_name,
                is_retryable=True,
                original_error=e,
            ) from e

        if not response.is_success:
            raise PushError(
                f"Expo ответил {response.status_code}: {response.text[:500]}",
                provider=self.provider_name,
                status_code=response.status_code,
                is_retryable=response.status_code >= 500,
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            # 2xx с не-JSON телом: уведомление принято, квитанции нет
            logger.warning("Expo вернул не-JSON ответ: %s", response.text[:200])
            return None


def create_expo_provider(
    url: str = EXPO_PUSH_URL,
    *,
    timeout: float = PUSH_HTTP_TIMEOUT,
    access_token: str | None = None,
) -> ExpoPushProvider:
    """Фабричная функция для создания ExpoPushProvider.

    Args:
        url: Endpoint шлюза.
        timeout: Таймаут HTTP-запросов.
        access_token: Access token Expo (опционально).

    Returns:
        Настроенный экземпляр ExpoPushProvider.
    """
    return ExpoPushProvider(url, timeout=timeout, access_token=access_token)
