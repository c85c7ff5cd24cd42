"""Утилиты для работы с часовыми поясами и метками времени.

Как это работает:
1. Время в хранилище хранится в UTC (ISO-8601 строка или миллисекунды эпохи)
2. Все сравнения выполняются с timezone-aware datetime в UTC
3. Часовой пояс логов задаётся через LOGGING__TIMEZONE в настройках
"""

from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Получить объект часового пояса по имени.

    Args:
        timezone_name: Название часового пояса из базы IANA.
            Примеры: "Europe/Moscow", "UTC", "America/New_York".

    Returns:
        Объект ZoneInfo для указанного часового пояса.

    Raises:
        ZoneInfoNotFoundError: Если указанный часовой пояс не найден.
    """
    return ZoneInfo(timezone_name)


def ensure_utc_aware(dt: datetime) -> datetime:
    """Гарантировать, что datetime является timezone-aware в UTC.

    Если datetime naive (без tzinfo) — считаем его UTC и добавляем tzinfo.
    Если datetime уже aware — конвертируем в UTC.

    Args:
        dt: Время для нормализации.

    Returns:
        Время с timezone=UTC.

    Example:
        >>> naive_dt = datetime(2024, 1, 1, 12, 0, 0)
        >>> ensure_utc_aware(naive_dt).tzinfo
        datetime.timezone.utc
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """Разобрать метку времени из документа хранилища.

    Поддерживаемые форматы:
    - datetime (naive считается UTC)
    - ISO-8601 строка ("2025-01-07T21:55:46Z", "2025-01-07T21:55:46+03:00")
    - Миллисекунды эпохи (int/float), как Timestamp.toMillis() в мобильном клиенте
    - Словарь {"seconds": ..., "nanoseconds": ...} (сериализованный Timestamp)

    Args:
        value: Сырое значение поля.

    Returns:
        datetime в UTC или None, если значение отсутствует или некорректно.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return ensure_utc_aware(value)

    try:
        if isinstance(value, int | float):
            return datetime.fromtimestamp(value / 1000, tz=UTC)

        if isinstance(value, str):
            if not value.strip():
                return None
            return ensure_utc_aware(datetime.fromisoformat(value))

        if isinstance(value, dict) and "seconds" in value:
            seconds = float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
            return datetime.fromtimestamp(seconds, tz=UTC)
    except (ValueError, TypeError, OverflowError, OSError):
        return None

    return None
