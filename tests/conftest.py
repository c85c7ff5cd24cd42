"""Общие фикстуры для всех тестов.

Этот файл содержит pytest-фикстуры, которые используются во всех тестах:
- Тестовая БД SQLite в памяти (для изоляции тестов)
- Асинхронные сессии SQLAlchemy
- Репозиторий документов и схема хранилища
- Фабрики для создания тестовых документов (платежи, пользователи)
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import src.db.models  # noqa: F401  # регистрирует модели в Base.metadata
from src.config.yaml_config import ExpiryNotificationConfig, StoreSchemaConfig
from src.db.models.document import Document
from src.db.models_base import Base
from src.db.repositories.document_repo import DocumentRepository


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[Any, None]:
    """Создать тестовый движок SQLAlchemy.

    Использует SQLite в памяти (:memory:) для полной изоляции тестов.
    Каждый тест получает чистую БД без данных из предыдущих тестов.

    Yields:
        Асинхронный движок SQLAlchemy для тестовой БД.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,  # Отключаем логи SQL в тестах
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Создать асинхронную сессию БД для теста.

    Args:
        test_engine: Тестовый движок SQLAlchemy из фикстуры test_engine.

    Yields:
        Асинхронная сессия для работы с тестовой БД.
    """
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def schema() -> StoreSchemaConfig:
    """Схема хранилища со значениями по умолчанию."""
    return StoreSchemaConfig()


@pytest.fixture
def expiry_notification() -> ExpiryNotificationConfig:
    """Тексты уведомления об истечении подписки."""
    return ExpiryNotificationConfig()


@pytest.fixture
def documents(db_session: AsyncSession) -> DocumentRepository:
    """Репозиторий документов поверх тестовой сессии."""
    return DocumentRepository(db_session)


@pytest.fixture
def add_payment(
    documents: DocumentRepository,
) -> Callable[..., Awaitable[Document]]:
    """Фабрика платежей.

    Пример:
        await add_payment("p1", user_id="u1", expires_at=datetime(2025, 1, 7, tzinfo=UTC))
    """

    async def _add(
        payment_id: str,
        *,
        user_id: str | None = "u1",
        status: str = "active",
        expires_at: Any = None,
        **extra: Any,
    ) -> Document:
        data: dict[str, Any] = {"status": status, **extra}
        if user_id is not None:
            data["userId"] = user_id
        if expires_at is not None:
            data["expiresAt"] = (
                expires_at.isoformat() if isinstance(expires_at, datetime) else expires_at
            )
        return await documents.set("user_payments", payment_id, data)

    return _add


@pytest.fixture
def add_user(
    documents: DocumentRepository,
) -> Callable[..., Awaitable[Document]]:
    """Фабрика пользователей.

    Пример:
        await add_user("u1", role="admin", push_address="ExponentPushToken[u1]")
    """

    async def _add(
        user_id: str,
        *,
        role: str = "admin",
        push_address: str | None = None,
    ) -> Document:
        data: dict[str, Any] = {"role": role}
        if push_address is not None:
            data["expoPushToken"] = push_address
        return await documents.set("users", user_id, data)

    return _add
