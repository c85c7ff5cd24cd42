"""Репозиторий для работы с пользователями.

Пользователь — документ коллекции users (имя задаётся в config.yaml):
    {"role": "admin", "expoPushToken": "ExponentPushToken[xxx]"}

Для сервиса важны только два поля:
- role — admin или нет (повышение роли делает клиент, понижение — задача истечения)
- push-адрес — токен устройства для уведомлений (может отсутствовать)
"""

from dataclasses import dataclass

from src.config.yaml_config import StoreSchemaConfig
from src.db.models.document import Document
from src.db.repositories.document_repo import DocumentRepository


@dataclass
class UserRecord:
    """Пользователь.

    Attributes:
        id: ID документа пользователя.
        role: Роль (admin, user, ...). None если поле не задано.
        push_address: Токен устройства для push. None если не зарегистрирован.
    """

    id: str
    role: str | None
    push_address: str | None

    @classmethod
    def from_document(cls, document: Document, schema: StoreSchemaConfig) -> "UserRecord":
        """Собрать запись из документа хранилища."""
        data = document.data or {}
        role = data.get(schema.role_field)
        push_address = data.get(schema.push_address_field)
        return cls(
            id=document.id,
            role=role if isinstance(role, str) else None,
            push_address=push_address if isinstance(push_address, str) and push_address else None,
        )


class UserRepository:
    """Репозиторий пользователей поверх DocumentRepository.

    Пример использования:
        async with DatabaseSession() as session:
            repo = UserRepository(DocumentRepository(session), yaml_config.store)
            user = await repo.get_by_id("u1")
    """

    def __init__(self, documents: DocumentRepository, schema: StoreSchemaConfig) -> None:
        """Инициализировать репозиторий.

        Args:
            documents: Репозиторий документов.
            schema: Схема хранилища из config.yaml.
        """
        self._documents = documents
        self._schema = schema

    async def get_by_id(self, user_id: str) -> UserRecord | None:
        """Найти пользователя по ID.

        Args:
            user_id: ID документа пользователя.

        Returns:
            UserRecord если найден, None если не существует.
        """
        document = await self._documents.get(self._schema.users_collection, user_id)
        if document is None:
            return None
        return UserRecord.from_document(document, self._schema)

    async def get_admins(self) -> list[UserRecord]:
        """Получить всех пользователей с ролью admin.

        Returns:
            Список администраторов (с push-адресом и без).
        """
        documents = await self._documents.query(
            self._schema.users_collection,
            {self._schema.role_field: self._schema.admin_role},
        )
        return [UserRecord.from_document(doc, self._schema) for doc in documents]

    async def demote(self, user_id: str) -> None:
        """Понизить роль пользователя до обычной.

        Запись безусловная (last write wins), текущая роль не проверяется.

        Args:
            user_id: ID документа пользователя.

        Raises:
            DocumentNotFoundError: Пользователя нет в хранилище.
        """
        await self._documents.update(
            self._schema.users_collection,
            user_id,
            {self._schema.role_field: self._schema.demoted_role},
        )
