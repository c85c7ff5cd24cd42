"""Модуль хранилища документов.

Содержит:
- base.py — подключение к БД (engine, session, create_tables)
- models_base.py — базовый класс для моделей (без загрузки settings)
- models/ — модели SQLAlchemy (таблица documents)
- repositories/ — репозитории для работы с документами

Для изоляции тестов используйте:
    from src.db.models_base import Base  # Без загрузки settings

Для runtime-использования с реальной БД:
    from src.db.base import DatabaseSession, get_session
"""

# Не импортируем из base.py здесь, чтобы тесты могли импортировать
# Base из models_base.py без загрузки settings.
