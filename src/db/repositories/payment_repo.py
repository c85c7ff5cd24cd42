"""Репозиторий для работы с платежами (подписками) пользователей.

Платёж — документ коллекции user_payments (имя задаётся в config.yaml):
    {"userId": "u1", "status": "active", "expiresAt": "2025-01-07T21:55:46Z"}

Жизненный цикл платежа:
1. Создаётся клиентом (мобильное приложение) со статусом active
2. Задача истечения подписок переводит его в expired (необратимо)
3. Никогда не удаляется сервисом
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.config.yaml_config import StoreSchemaConfig
from src.db.models.document import Document
from src.db.repositories.document_repo import DocumentRepository
from src.utils.logging import get_logger
from src.utils.timezone import parse_timestamp

logger = get_logger(__name__)


@dataclass
class PaymentRecord:
    """Платёж пользователя.

    Поля user_id и expires_at могут быть None, если документ некорректен.
    Такие платежи пропускаются задачей истечения подписок.

    Attributes:
        id: ID документа платежа.
        user_id: ID пользователя (ссылка на документ users).
        status: Статус (active / expired).
        expires_at: Момент окончания подписки (UTC).
        raw: Исходные поля документа.
    """

    id: str
    user_id: str | None
    status: str | None
    expires_at: datetime | None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_document(cls, document: Document, schema: StoreSchemaConfig) -> "PaymentRecord":
        """Собрать запись из документа хранилища.

        Args:
            document: Документ коллекции платежей.
            schema: Имена полей.

        Returns:
            PaymentRecord (возможно, с пустыми обязательными полями).
        """
        data = document.data or {}
        user_id = data.get(schema.user_id_field)
        status = data.get(schema.status_field)
        return cls(
            id=document.id,
            user_id=user_id if isinstance(user_id, str) and user_id else None,
            status=status if isinstance(status, str) else None,
            expires_at=parse_timestamp(data.get(schema.expires_at_field)),
            raw=dict(data),
        )


class PaymentRepository:
    """Репозиторий платежей поверх DocumentRepository.

    Attributes:
        _documents: Репозиторий документов.
        _schema: Имена коллекции, полей и статусов.
    """

    def __init__(self, documents: DocumentRepository, schema: StoreSchemaConfig) -> None:
        """Инициализация репозитория.

        Args:
            documents: Репозиторий документов.
            schema: Схема хранилища из config.yaml.
        """
        self._documents = documents
        self._schema = schema

    async def get_active(self) -> list[PaymentRecord]:
        """Получить все платежи со статусом active.

        Время окончания здесь НЕ проверяется.

        Returns:
            Список активных платежей.
        """
        documents = await self._documents.query(
            self._schema.payments_collection,
            {self._schema.status_field: self._schema.active_status},
        )
        return [PaymentRecord.from_document(doc, self._schema) for doc in documents]

    async def get_active_for_user(self, user_id: str) -> list[PaymentRecord]:
        """Получить активные платежи пользователя.

        Args:
            user_id: ID пользователя.

        Returns:
            Список активных платежей пользователя.
        """
        documents = await self._documents.query(
            self._schema.payments_collection,
            {
                self._schema.user_id_field: user_id,
                self._schema.status_field: self._schema.active_status,
            },
        )
        return [PaymentRecord.from_document(doc, self._schema) for doc in documents]

    async def mark_expired(self, payment_id: str) -> None:
        """Пометить платёж как истёкший.

        Запись безусловная: повторный вызов для уже истёкшего платежа
        ничего не меняет по сути (last write wins).

        Args:
            payment_id: ID платежа.
        """
        await self._documents.update(
            self._schema.payments_collection,
            payment_id,
            {self._schema.status_field: self._schema.expired_status},
        )
        logger.debug("Платёж %s помечен как %s", payment_id, self._schema.expired_status)
