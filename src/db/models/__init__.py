"""Модели базы данных (таблицы).

Все модели должны наследоваться от Base (из db.models_base).
"""

from src.db.models.document import Document

__all__ = ["Document"]
