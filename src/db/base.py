"""Подключение к хранилищу документов.

Engine и фабрика сессий создаются лениво при первом обращении:
тесты подменяют БД до того, как кто-либо откроет соединение.

URL берётся из DATABASE__URL, по умолчанию SQLite в DATA_DIR/relay.db.
Модели импортируют Base из src.db.models_base.
"""

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config.constants import DATA_DIR
from src.db.models_base import Base

__all__ = [
    "Base",
    "DatabaseSession",
    "create_tables",
    "dispose_engine",
    "get_async_session_factory",
    "get_engine",
    "get_session",
]

if TYPE_CHECKING:
    from src.config.settings import Settings

# Ленивые синглтоны для engine и session factory
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_settings() -> "Settings":
    """Ленивая загрузка настроек.

    Позволяет тестам импортировать модуль без загрузки настроек из .env файла.
    """
    from src.config.settings import settings

    return settings


def _get_database_url() -> str:
    """Получить URL подключения к базе данных (async).

    Логика выбора:
    1. Если DATABASE__URL указан — используем его
    2. Иначе — SQLite из DATA_DIR/relay.db

    Returns:
        URL подключения в формате SQLAlchemy (с async-драйвером).
    """
    settings = _get_settings()
    if settings.database.url:
        return settings.database.url

    # aiosqlite: асинхронный драйвер SQLite
    db_path = DATA_DIR / "relay.db"
    return f"sqlite+aiosqlite:///{db_path}"


def get_engine() -> AsyncEngine:
    """Получить асинхронный engine (ленивая инициализация).

    Returns:
        Асинхронный Engine для SQLAlchemy.
    """
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            _get_database_url(),
            echo=False,
            pool_pre_ping=True,
        )
    return _engine


def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Получить фабрику асинхронных сессий (ленивая инициализация).

    expire_on_commit=False — не "протухать" объекты после commit.

    Returns:
        Фабрика асинхронных сессий SQLAlchemy.
    """
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_factory


async def create_tables() -> None:
    """Создать таблицы, если их ещё нет.

    Схема состоит из одной таблицы documents, поэтому миграции не нужны.
    """
    # Импорт регистрирует модели в Base.metadata
    import src.db.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Закрыть пул соединений (при остановке приложения)."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Сессия на время HTTP-запроса (FastAPI Depends)."""
    async with get_async_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


class DatabaseSession:
    """Сессия для фоновых задач вне HTTP-запроса.

    При исключении внутри блока незакоммиченные изменения откатываются.

        async with DatabaseSession() as session:
            documents = DocumentRepository(session)
    """

    def __init__(self) -> None:
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> AsyncSession:
        self._session = get_async_session_factory()()
        return self._session

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            if exc_type is not None:
                await session.rollback()
        finally:
            await session.close()
