"""Реестр push-токенов для массовой рассылки.

Токены регистрирует мобильное приложение через POST /register-token.
Реестр передаётся в API как зависимость (app.state.token_registry),
поэтому in-memory реализацию можно заменить персистентной
(Redis, таблица) без изменения endpoint-ов.
"""

from typing import Protocol

from typing_extensions import override


class TokenRegistry(Protocol):
    """Интерфейс реестра токенов."""

    async def add(self, token: str) -> int:
        """Добавить токен (повторное добавление игнорируется).

        Returns:
            Количество токенов после добавления.
        """
        ...

    async def list_tokens(self) -> list[str]:
        """Получить все токены в порядке регистрации."""
        ...

    async def count(self) -> int:
        """Количество зарегистрированных токенов."""
        ...


class InMemoryTokenRegistry(TokenRegistry):
    """Реестр в памяти процесса.

    Теряется при перезапуске и не разделяется между инстансами.
    """

    def __init__(self) -> None:
        # dict сохраняет порядок вставки, в отличие от set
        self._tokens: dict[str, None] = {}

    @override
    async def add(self, token: str) -> int:
        self._tokens[token] = None
        return len(self._tokens)

    @override
    async def list_tokens(self) -> list[str]:
        return list(self._tokens)

    @override
    async def count(self) -> int:
        return len(self._tokens)
