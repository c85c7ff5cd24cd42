"""Задачи планировщика.

Этот модуль содержит функции, которые периодически выполняются
планировщиком APScheduler:

1. check_expirations — истечение подписок и уведомление пользователей

Как работает проверка:
1. Каждые expiration.interval_seconds секунд (и сразу при старте)
   запускается один цикл ExpirationService.run_cycle()
2. Каждый цикл открывает свою сессию БД и читает свежие данные
3. Ошибка цикла логируется и НЕ останавливает планировщик:
   следующий тик выполнится по расписанию

Важно: Задача идемпотентна (безопасно запускать повторно).
Уже истёкшие платежи не попадают в следующее сканирование.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from src.config.settings import settings
from src.core.exceptions import ScanError
from src.db.base import DatabaseSession
from src.services.expiration_service import CycleReport, create_expiration_service
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.config.yaml_config import YamlConfig
    from src.services.notification_service import NotificationService

logger = get_logger(__name__)

# Циклы, выполняющиеся прямо сейчас (для ожидания при остановке)
_running_cycles: set[asyncio.Task[CycleReport | None]] = set()


async def check_expirations(
    yaml_config: YamlConfig,
    notification_service: NotificationService,
) -> CycleReport | None:
    """Выполнить один цикл проверки истёкших подписок.

    Никогда не выбрасывает исключения: любая ошибка цикла
    логируется, повтор — на следующем тике.

    Args:
        yaml_config: YAML-конфигурация.
        notification_service: Сервис push-уведомлений.

    Returns:
        CycleReport или None, если цикл завершился ошибкой.
    """
    task = asyncio.current_task()
    if task is not None:
        _running_cycles.add(task)

    try:
        return await _run_cycle(yaml_config, notification_service)
    except ScanError as e:
        if e.retryable:
            logger.warning("Цикл проверки подписок пропущен (временный сбой): %s", e)
        else:
            logger.error("Цикл проверки подписок пропущен: %s", e)
        return None
    except Exception:
        logger.exception("Ошибка цикла проверки подписок")
        return None
    finally:
        if task is not None:
            _running_cycles.discard(task)


async def _run_cycle(
    yaml_config: YamlConfig,
    notification_service: NotificationService,
) -> CycleReport:
    """Открыть сессию и выполнить цикл ExpirationService."""
    logger.debug("Запуск проверки истёкших подписок...")

    async with DatabaseSession() as session:
        service = create_expiration_service(
            session,
            yaml_config.store,
            yaml_config.expiration.notification,
            notification_service,
            timeout=settings.database.timeout,
        )
        return await service.run_cycle()


def has_running_cycles() -> bool:
    """Выполняется ли сейчас цикл проверки."""
    return bool(_running_cycles)


async def wait_for_running_cycles(timeout: float) -> bool:
    """Дождаться завершения текущих циклов проверки.

    Цикл нельзя прервать посередине: если он не уложился в timeout,
    пишем предупреждение и продолжаем ждать до конца.

    Args:
        timeout: Время, после которого ожидание считается затянувшимся, в секундах.

    Returns:
        True если циклы завершились за timeout, False если пришлось ждать дольше.
    """
    if not has_running_cycles():
        return True

    logger.info("Ожидание завершения цикла проверки подписок (до %.0f сек)...", timeout)
    _, pending = await asyncio.wait(set(_running_cycles), timeout=timeout)
    if not pending:
        return True

    logger.warning(
        "Цикл проверки подписок не завершился за %.0f сек, ждём его окончания",
        timeout,
    )
    await asyncio.wait(pending)
    logger.info("Цикл проверки подписок завершён")
    return False
