"""Репозиторий документов — базовые операции хранилища.

Хранилище поддерживает ровно три вида операций:
- query: выборка документов коллекции по равенству полей
- update: точечное обновление именованных полей документа по ID
- get: точечное чтение документа по ID

Каждая операция — атомарна в пределах ОДНОГО документа
(отдельный commit). Многодокументных транзакций нет.

Контракт конкурентности: last write wins.
Никаких блокировок и токенов версий — если два процесса одновременно
обновляют один документ, побеждает последняя запись. Вызывающий код
должен быть идемпотентным (например, повторная пометка "expired").
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import DatabaseOperationError, DocumentNotFoundError
from src.db.models.document import Document

T = TypeVar("T")


class DocumentRepository:
    """Репозиторий для работы с документами коллекций.

    Использует Dependency Injection — сессия передаётся в конструктор.

    Ошибки SQLAlchemy и таймауты оборачиваются в DatabaseOperationError,
    после ошибки сессия откатывается и пригодна для следующих операций.

    Пример использования:
        async with DatabaseSession() as session:
            repo = DocumentRepository(session, timeout=10.0)
            active = await repo.query("user_payments", {"status": "active"})
    """

    def __init__(self, session: AsyncSession, *, timeout: float | None = None) -> None:
        """Инициализировать репозиторий.

        Args:
            session: Асинхронная сессия SQLAlchemy.
            timeout: Таймаут одной операции в секундах (None — без таймаута).
        """
        self._session = session
        self._timeout = timeout

    async def _execute(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        """Выполнить операцию с таймаутом и единообразной обработкой ошибок.

        Args:
            operation: Название операции для сообщения об ошибке.
            func: Корутина-функция без аргументов.

        Returns:
            Результат операции.

        Raises:
            DatabaseOperationError: Ошибка SQLAlchemy или таймаут.
            DocumentNotFoundError: Пробрасывается из func без изменений.
        """
        try:
            async with asyncio.timeout(self._timeout):
                return await func()
        except TimeoutError as e:
            await self._session.rollback()
            raise DatabaseOperationError(operation, e, retryable=True) from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise DatabaseOperationError(
                operation, e, retryable=isinstance(e, OperationalError)
            ) from e

    async def query(
        self,
        collection: str,
        filters: Mapping[str, str] | None = None,
    ) -> list[Document]:
        """Найти документы коллекции по равенству строковых полей.

        Args:
            collection: Имя коллекции.
            filters: Условия {поле: значение}, объединяются через AND.

        Returns:
            Список документов в порядке ID.
        """

        async def _query() -> list[Document]:
            stmt = select(Document).where(Document.collection == collection)
            for field, value in (filters or {}).items():
                stmt = stmt.where(Document.data[field].as_string() == value)
            stmt = stmt.order_by(Document.id).execution_options(populate_existing=True)
            result = await self._session.execute(stmt)
            return list(result.scalars().all())

        return await self._execute("query", _query)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Прочитать документ по ID.

        Args:
            collection: Имя коллекции.
            doc_id: ID документа.

        Returns:
            Document или None если не найден.
        """

        async def _get() -> Document | None:
            return await self._session.get(
                Document, (collection, doc_id), populate_existing=True
            )

        return await self._execute("get", _get)

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
    ) -> Document:
        """Обновить именованные поля документа.

        Остальные поля документа сохраняются. Запись безусловная
        (last write wins) и фиксируется сразу.

        Args:
            collection: Имя коллекции.
            doc_id: ID документа.
            fields: Поля для обновления.

        Returns:
            Обновлённый документ.

        Raises:
            DocumentNotFoundError: Документа с таким ID нет.
        """

        async def _update() -> Document:
            document = await self._session.get(
                Document, (collection, doc_id), populate_existing=True
            )
            if document is None:
                raise DocumentNotFoundError(collection, doc_id)

            document.data = {**document.data, **fields}
            await self._session.commit()
            return document

        return await self._execute("update", _update)

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
    ) -> Document:
        """Создать или полностью перезаписать документ.

        Используется клиентами хранилища и тестами. Задача истечения
        подписок документы не создаёт.

        Args:
            collection: Имя коллекции.
            doc_id: ID документа.
            data: Все поля документа.

        Returns:
            Сохранённый документ.
        """

        async def _set() -> Document:
            document = await self._session.get(Document, (collection, doc_id))
            if document is None:
                document = Document(collection=collection, id=doc_id, data=dict(data))
                self._session.add(document)
            else:
                document.data = dict(data)
            await self._session.commit()
            return document

        return await self._execute("set", _set)
