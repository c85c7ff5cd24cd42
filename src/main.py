"""Точка входа ASGI: uvicorn src.main:app --port 3000

Логирование настраивается при импорте, до создания приложения,
чтобы сообщения старта планировщика попали в общий формат.
Запуск через python -m src см. в src/__main__.py.
"""

import sys
from pathlib import Path

# Запуск как python src/main.py: корень проекта должен быть в sys.path
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from src.app import create_app  # noqa: E402
from src.config.settings import settings  # noqa: E402
from src.utils.logging import get_logger, setup_logging  # noqa: E402

setup_logging(
    level=settings.logging.level,
    timezone_name=settings.logging.timezone,
)

logger = get_logger(__name__)
logger.info("Push Relay: логирование настроено (уровень %s)", settings.logging.level)

app = create_app()

if __name__ == "__main__":
    from src.__main__ import main

    main()
