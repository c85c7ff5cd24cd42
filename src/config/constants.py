"""Константы приложения."""

from pathlib import Path

# ==============================================================================
# ПУТИ К ФАЙЛАМ И ДИРЕКТОРИЯМ
# ==============================================================================

# Корень проекта (где лежит pyproject.toml)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Папка для данных (база SQLite, логи)
#
# В контейнере: /data, персистентный том (абсолютный путь обязателен!)
# Локально: ./data в корне проекта
_CONTAINER_DATA = Path("/data")
DATA_DIR = _CONTAINER_DATA if _CONTAINER_DATA.exists() else PROJECT_ROOT / "data"

# Создаём директорию если не существует (важно для первого запуска)
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Логи: app.log с ротацией (5 МБ × 3)
LOGS_DIR = DATA_DIR / "logs"
LOG_FILE = LOGS_DIR / "app.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3

# ==============================================================================
# PUSH-ШЛЮЗ
# ==============================================================================

# Endpoint Expo Push API: принимает один объект или массив сообщений
EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"

# Таймаут HTTP-запросов к шлюзу в секундах
PUSH_HTTP_TIMEOUT = 10.0
