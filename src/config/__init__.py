"""Модуль конфигурации.

Для доступа к настройкам используйте:
    from src.config.settings import settings
    from src.config.yaml_config import yaml_config

Для использования только классов настроек (без загрузки .env):
    from src.config.models import PushSettings
"""

# Не импортируем settings здесь, чтобы тесты могли импортировать
# другие модули из src.config без загрузки .env файла.
