"""Управление планировщиком APScheduler.

Этот модуль предоставляет функции для:
- Создания и настройки планировщика
- Регистрации периодической проверки подписок
- Запуска и корректной остановки планировщика

Интеграция с FastAPI:
    Планировщик запускается в lifespan FastAPI приложения.
    При остановке приложения новые циклы не запускаются,
    а текущий цикл всегда дорабатывает до конца. После
    expiration.shutdown_timeout_seconds в лог пишется предупреждение.

Пример использования:
    from src.scheduler import create_scheduler, start_scheduler, shutdown_scheduler

    scheduler = create_scheduler(yaml_config, notification_service)
    start_scheduler(scheduler)
    ...
    await shutdown_scheduler(scheduler, timeout=30)
"""

import asyncio
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.config.yaml_config import YamlConfig
from src.scheduler.tasks import check_expirations, wait_for_running_cycles
from src.services.notification_service import NotificationService
from src.utils.logging import get_logger

logger = get_logger(__name__)

CHECK_EXPIRATIONS_JOB_ID = "check_expirations"


def create_scheduler(
    yaml_config: YamlConfig,
    notification_service: NotificationService,
) -> AsyncIOScheduler:
    """Создать и настроить планировщик задач.

    Регистрирует check_expirations с интервалом expiration.interval_seconds.
    При run_on_startup первый запуск назначается на момент старта.

    max_instances=1 (по умолчанию в APScheduler): если цикл не успел
    завершиться к следующему тику, тик пропускается, циклы внутри
    одного процесса не пересекаются.

    Между процессами блокировки нет: два экземпляра сервиса могут
    обработать один платёж. Пометка expired и понижение роли идемпотентны,
    повторное уведомление допустимо.

    Планировщик НЕ запускается автоматически — нужно вызвать start_scheduler().

    Args:
        yaml_config: YAML-конфигурация.
        notification_service: Сервис push-уведомлений.

    Returns:
        Настроенный экземпляр AsyncIOScheduler (не запущенный).
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    expiration = yaml_config.expiration

    if not expiration.enabled:
        logger.warning("Проверка подписок отключена (expiration.enabled=false)")
        return scheduler

    job_kwargs = {}
    if expiration.run_on_startup:
        job_kwargs["next_run_time"] = datetime.now(UTC)

    scheduler.add_job(
        check_expirations,
        trigger=IntervalTrigger(seconds=expiration.interval_seconds),
        kwargs={
            "yaml_config": yaml_config,
            "notification_service": notification_service,
        },
        id=CHECK_EXPIRATIONS_JOB_ID,
        name=f"Проверка истёкших подписок (каждые {expiration.interval_seconds} сек)",
        replace_existing=True,
        # Только внутри процесса: другой экземпляр сервиса может выполнять свой цикл
        max_instances=1,
        coalesce=True,
        **job_kwargs,
    )

    logger.info(
        "Планировщик создан с %d задачами",
        len(scheduler.get_jobs()),
    )

    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Запустить планировщик.

    Планировщик работает в фоне и не блокирует event loop.

    Args:
        scheduler: Экземпляр AsyncIOScheduler.
    """
    if scheduler.running:
        logger.warning("Планировщик уже запущен")
        return

    scheduler.start()
    logger.info("Планировщик запущен")

    for job in scheduler.get_jobs():
        logger.debug("  - %s: %s", job.id, job.next_run_time)


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Остановить планировщик без ожидания текущих задач.

    Args:
        scheduler: Экземпляр AsyncIOScheduler.
    """
    if not scheduler.running:
        logger.debug("Планировщик не запущен, пропускаем остановку")
        return

    scheduler.shutdown(wait=False)
    logger.info("Планировщик остановлен")


async def shutdown_scheduler(scheduler: AsyncIOScheduler, timeout: float) -> None:
    """Корректно остановить планировщик.

    1. Пауза: новые циклы не запускаются
    2. Ожидание текущего цикла до его завершения (после timeout — предупреждение)
    3. Остановка планировщика

    Args:
        scheduler: Экземпляр AsyncIOScheduler.
        timeout: Через сколько секунд ожидание считается затянувшимся.
    """
    if not scheduler.running:
        logger.debug("Планировщик не запущен, пропускаем остановку")
        return

    scheduler.pause()
    # Задача, отправленная исполнителю до паузы, регистрируется на следующей итерации
    await asyncio.sleep(0)
    await wait_for_running_cycles(timeout)
    stop_scheduler(scheduler)
    # В APScheduler 3.11 shutdown() выполняется через call_soon_threadsafe
    await asyncio.sleep(0)
