"""Модель документа.

Хранилище устроено как документная БД: одна таблица documents,
каждая строка — документ (JSON) в именованной коллекции.
Мобильное приложение пишет в коллекции user_payments и users,
сервис читает и точечно обновляет отдельные поля.

Почему не отдельные таблицы:
- Схема документов принадлежит клиенту и меняется без миграций
- Имена коллекций и полей задаются в config.yaml (секция store)
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from src.db.models_base import Base


class Document(Base):
    """Документ в коллекции.

    Attributes:
        collection: Имя коллекции (user_payments, users).
        id: ID документа, уникален в пределах коллекции.
        data: Поля документа (JSON-объект).
        created_at: Дата создания строки.
        updated_at: Дата последнего обновления полей.
    """

    __tablename__ = "documents"

    # Составной первичный ключ (коллекция, ID)
    collection: Mapped[str] = mapped_column(String(100), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Поля документа. При обновлении присваивается новый dict:
    # SQLAlchemy не отслеживает мутации JSON "на месте".
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        onupdate=func.now(),
        nullable=True,
    )

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return f"<Document({self.collection}/{self.id})>"
