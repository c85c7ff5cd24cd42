"""Тесты для scheduler.runner - создание и остановка планировщика."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock, patch

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from src.config.yaml_config import ExpirationConfig, YamlConfig
from src.scheduler.runner import (
    CHECK_EXPIRATIONS_JOB_ID,
    create_scheduler,
    shutdown_scheduler,
    start_scheduler,
)
from src.scheduler.tasks import check_expirations
from src.services.expiration_service import CycleReport


@pytest.fixture
def notification_service() -> Mock:
    """Заглушка сервиса уведомлений (задача в тестах не выполняется)."""
    return Mock()


def test_create_scheduler_registers_job(notification_service: Mock) -> None:
    """Тест: задача проверки регистрируется с интервалом из конфига."""
    yaml_config = YamlConfig(expiration=ExpirationConfig(interval_seconds=60))

    scheduler = create_scheduler(yaml_config, notification_service)

    job = scheduler.get_job(CHECK_EXPIRATIONS_JOB_ID)
    assert job is not None
    assert job.func is check_expirations
    assert isinstance(job.trigger, IntervalTrigger)
    assert job.trigger.interval == timedelta(seconds=60)
    assert job.max_instances == 1
    assert job.kwargs == {
        "yaml_config": yaml_config,
        "notification_service": notification_service,
    }


def test_run_on_startup_schedules_immediate_run(notification_service: Mock) -> None:
    """Тест: run_on_startup — первый запуск назначен на момент создания."""
    before = datetime.now(UTC)
    yaml_config = YamlConfig(expiration=ExpirationConfig(run_on_startup=True))

    scheduler = create_scheduler(yaml_config, notification_service)

    job = scheduler.get_job(CHECK_EXPIRATIONS_JOB_ID)
    assert job is not None
    assert before <= job.next_run_time <= datetime.now(UTC)


def test_disabled_expiration_registers_nothing(notification_service: Mock) -> None:
    """Тест: expiration.enabled=false — задач нет."""
    yaml_config = YamlConfig(expiration=ExpirationConfig(enabled=False))

    scheduler = create_scheduler(yaml_config, notification_service)

    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_shutdown_waits_for_running_cycle(notification_service: Mock) -> None:
    """Тест: остановка ставит паузу, ждёт текущий цикл и останавливает планировщик."""
    yaml_config = YamlConfig(expiration=ExpirationConfig(enabled=False))
    scheduler = create_scheduler(yaml_config, notification_service)
    start_scheduler(scheduler)
    assert scheduler.running

    with patch(
        "src.scheduler.runner.wait_for_running_cycles",
        new_callable=AsyncMock,
        return_value=True,
    ) as mock_wait:
        await shutdown_scheduler(scheduler, timeout=5.0)

    mock_wait.assert_awaited_once_with(5.0)
    assert not scheduler.running


@pytest.mark.asyncio
async def test_shutdown_not_running_scheduler(notification_service: Mock) -> None:
    """Тест: остановка незапущенного планировщика ничего не делает."""
    scheduler = create_scheduler(YamlConfig(), notification_service)

    with patch(
        "src.scheduler.runner.wait_for_running_cycles", new_callable=AsyncMock
    ) as mock_wait:
        await shutdown_scheduler(scheduler, timeout=5.0)

    mock_wait.assert_not_awaited()


@pytest.mark.asyncio
async def test_shutdown_lets_cycle_finish_past_timeout(notification_service: Mock) -> None:
    """Тест: цикл дольше таймаута дорабатывает, планировщик останавливается после него."""
    scheduler = create_scheduler(
        YamlConfig(expiration=ExpirationConfig(enabled=False)), notification_service
    )
    start_scheduler(scheduler)

    async def slow_cycle() -> CycleReport:
        await asyncio.sleep(0.2)
        return CycleReport(total=1)

    service = Mock()
    service.run_cycle = slow_cycle

    with (
        patch("src.scheduler.tasks.DatabaseSession") as mock_db_session,
        patch("src.scheduler.tasks.create_expiration_service", return_value=service),
    ):
        mock_db_session.return_value.__aenter__.return_value = Mock()
        cycle = asyncio.create_task(check_expirations(YamlConfig(), notification_service))
        await asyncio.sleep(0)

        await shutdown_scheduler(scheduler, timeout=0.01)

        assert cycle.done()
        assert not cycle.cancelled()

    assert cycle.result() == CycleReport(total=1)
    assert not scheduler.running
