"""Тесты для ExpoPushProvider.

HTTP-запросы перехватываются через httpx.MockTransport,
реальные запросы к Expo не выполняются.
"""

import json
from collections.abc import Callable

import httpx
import pytest

from src.core.exceptions import PushError
from src.providers.push.base import PushMessage
from src.providers.push.expo import EXPO_BATCH_LIMIT, ExpoPushProvider

EXPO_URL = "https://exp.host/--/api/v2/push/send"


def _provider(
    handler: Callable[[httpx.Request], httpx.Response],
    access_token: str | None = None,
) -> ExpoPushProvider:
    return ExpoPushProvider(
        EXPO_URL,
        timeout=5.0,
        access_token=access_token,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_send_posts_single_object() -> None:
    """Тест: send() отправляет JSON-объект {to, sound, title, body}."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"data": {"status": "ok", "id": "t1"}})

    provider = _provider(handler)
    try:
        response = await provider.send(
            PushMessage(to="ExponentPushToken[a]", title="Hi", body="Text")
        )
    finally:
        await provider.close()

    assert response == {"data": {"status": "ok", "id": "t1"}}
    assert len(captured) == 1
    request = captured[0]
    assert str(request.url) == EXPO_URL
    assert request.method == "POST"
    assert json.loads(request.content) == {
        "to": "ExponentPushToken[a]",
        "sound": "default",
        "title": "Hi",
        "body": "Text",
    }
    assert "authorization" not in request.headers


@pytest.mark.asyncio
async def test_access_token_header() -> None:
    """Тест: access token передаётся в заголовке Authorization."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"data": {}})

    provider = _provider(handler, access_token="secret")
    try:
        await provider.send(PushMessage(to="t", title="a", body="b"))
    finally:
        await provider.close()

    assert captured[0].headers["authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_send_batch_chunks_by_limit() -> None:
    """Тест: send_batch() разбивает сообщения на части по EXPO_BATCH_LIMIT."""
    chunk_sizes: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        chunk_sizes.append(len(payload))
        return httpx.Response(200, json={"data": [{"status": "ok"} for _ in payload]})

    messages = [
        PushMessage(to=f"t{i}", title="a", body="b") for i in range(EXPO_BATCH_LIMIT + 5)
    ]
    provider = _provider(handler)
    try:
        response = await provider.send_batch(messages)
    finally:
        await provider.close()

    assert chunk_sizes == [EXPO_BATCH_LIMIT, 5]
    assert len(response["data"]) == EXPO_BATCH_LIMIT + 5


@pytest.mark.asyncio
@pytest.mark.parametrize(("status_code", "retryable"), [(400, False), (503, True)])
async def test_non_2xx_raises_push_error(status_code: int, retryable: bool) -> None:
    """Тест: ответ не 2xx — PushError с кодом ответа."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"errors": [{"code": "ERR"}]})

    provider = _provider(handler)
    try:
        with pytest.raises(PushError) as exc_info:
            await provider.send(PushMessage(to="t", title="a", body="b"))
    finally:
        await provider.close()

    assert exc_info.value.status_code == status_code
    assert exc_info.value.is_retryable is retryable
    assert exc_info.value.provider == "expo"


@pytest.mark.asyncio
async def test_timeout_raises_retryable_push_error() -> None:
    """Тест: таймаут — PushError с is_retryable=True."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    provider = _provider(handler)
    try:
        with pytest.raises(PushError) as exc_info:
            await provider.send(PushMessage(to="t", title="a", body="b"))
    finally:
        await provider.close()

    assert exc_info.value.is_retryable is True
    assert isinstance(exc_info.value.original_error, httpx.TimeoutException)


@pytest.mark.asyncio
async def test_connection_error_raises_push_error() -> None:
    """Тест: сетевая ошибка — PushError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    provider = _provider(handler)
    try:
        with pytest.raises(PushError):
            await provider.send(PushMessage(to="t", title="a", body="b"))
    finally:
        await provider.close()


@pytest.mark.asyncio
async def test_non_json_success_returns_none() -> None:
    """Тест: 2xx с не-JSON телом — None, без исключения."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="OK")

    provider = _provider(handler)
    try:
        response = await provider.send(PushMessage(to="t", title="a", body="b"))
    finally:
        await provider.close()

    assert response is None
