"""Тесты для scheduler.tasks - задачи планировщика.

Модуль тестирует:
- check_expirations() - один цикл проверки подписок
- wait_for_running_cycles() - ожидание текущего цикла при остановке

Тестируемая функциональность:
1. Задача истекает просроченные платежи через свою сессию БД
2. Ошибки цикла (сканирование, неожиданные) не выходят из задачи
3. Выполняющийся цикл виден для ожидания при остановке
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, Mock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.yaml_config import YamlConfig
from src.core.exceptions import DatabaseOperationError, ScanError
from src.db.repositories.document_repo import DocumentRepository
from src.scheduler.tasks import (
    check_expirations,
    has_running_cycles,
    wait_for_running_cycles,
)
from src.services.expiration_service import CycleReport
from src.services.notification_service import DeliveryStatus, NotificationService

# ==============================================================================
# ФИКСТУРЫ
# ==============================================================================


@pytest.fixture
def yaml_config() -> YamlConfig:
    """Создать тестовую YAML конфигурацию."""
    return YamlConfig()


@pytest.fixture
def notification_service() -> AsyncMock:
    """Мок сервиса уведомлений."""
    service = AsyncMock(spec=NotificationService)
    service.notify.return_value = DeliveryStatus.SENT
    return service


# ==============================================================================
# CHECK_EXPIRATIONS
# ==============================================================================


@pytest.mark.asyncio
async def test_check_expirations_expires_payments(
    db_session: AsyncSession,
    documents: DocumentRepository,
    add_payment: Callable[..., Awaitable[Any]],
    add_user: Callable[..., Awaitable[Any]],
    yaml_config: YamlConfig,
    notification_service: AsyncMock,
) -> None:
    """Тест: задача истекает просроченный платёж и уведомляет пользователя."""
    now = datetime.now(UTC)
    await add_user("u1", role="admin", push_address="ExponentPushToken[u1]")
    await add_payment("p1", user_id="u1", expires_at=now - timedelta(minutes=1))
    await add_payment("p2", user_id="u2", expires_at=now + timedelta(days=1))

    with patch("src.scheduler.tasks.DatabaseSession") as mock_db_session:
        mock_db_session.return_value.__aenter__.return_value = db_session
        report = await check_expirations(yaml_config, notification_service)

    assert report is not None
    assert report.expired == 1
    assert report.not_due == 1
    assert (await documents.get("user_payments", "p1")).data["status"] == "expired"  # type: ignore[union-attr]
    assert (await documents.get("users", "u1")).data["role"] == "user"  # type: ignore[union-attr]
    notification_service.notify.assert_awaited_once()
    assert notification_service.notify.call_args.args[0] == "ExponentPushToken[u1]"


@pytest.mark.asyncio
async def test_check_expirations_scan_error_swallowed(
    yaml_config: YamlConfig,
    notification_service: AsyncMock,
) -> None:
    """Тест: ScanError логируется, задача возвращает None."""
    service = Mock()
    service.run_cycle = AsyncMock(
        side_effect=ScanError(DatabaseOperationError("query", RuntimeError("down")))
    )

    with (
        patch("src.scheduler.tasks.DatabaseSession") as mock_db_session,
        patch("src.scheduler.tasks.create_expiration_service", return_value=service),
    ):
        mock_db_session.return_value.__aenter__.return_value = Mock()
        result = await check_expirations(yaml_config, notification_service)

    assert result is None
    assert not has_running_cycles()


@pytest.mark.asyncio
async def test_check_expirations_unexpected_error_swallowed(
    yaml_config: YamlConfig,
    notification_service: AsyncMock,
) -> None:
    """Тест: неожиданная ошибка (например, при открытии сессии) не выходит наружу."""
    with patch("src.scheduler.tasks.DatabaseSession") as mock_db_session:
        mock_db_session.return_value.__aenter__.side_effect = RuntimeError("no db")
        result = await check_expirations(yaml_config, notification_service)

    assert result is None


@pytest.mark.asyncio
async def test_check_expirations_uses_config(
    yaml_config: YamlConfig,
    notification_service: AsyncMock,
) -> None:
    """Тест: сервис создаётся со схемой и текстами из config.yaml."""
    service = Mock()
    service.run_cycle = AsyncMock(return_value=CycleReport())
    session = Mock()

    with (
        patch("src.scheduler.tasks.DatabaseSession") as mock_db_session,
        patch(
            "src.scheduler.tasks.create_expiration_service", return_value=service
        ) as mock_create,
    ):
        mock_db_session.return_value.__aenter__.return_value = session
        await check_expirations(yaml_config, notification_service)

    args = mock_create.call_args.args
    assert args[0] is session
    assert args[1] == yaml_config.store
    assert args[2] == yaml_config.expiration.notification
    assert args[3] is notification_service


# ==============================================================================
# ОЖИДАНИЕ ТЕКУЩЕГО ЦИКЛА
# ==============================================================================


@pytest.mark.asyncio
async def test_wait_for_running_cycles_without_cycles() -> None:
    """Тест: нет выполняющихся циклов — сразу True."""
    assert await wait_for_running_cycles(timeout=0.1) is True


@pytest.mark.asyncio
async def test_wait_for_running_cycle(
    yaml_config: YamlConfig,
    notification_service: AsyncMock,
) -> None:
    """Тест: ожидание возвращает True, если цикл уложился в таймаут."""
    release = asyncio.Event()

    async def slow_cycle() -> CycleReport:
        await release.wait()
        return CycleReport(total=1)

    service = Mock()
    service.run_cycle = slow_cycle

    with (
        patch("src.scheduler.tasks.DatabaseSession") as mock_db_session,
        patch("src.scheduler.tasks.create_expiration_service", return_value=service),
    ):
        mock_db_session.return_value.__aenter__.return_value = Mock()
        task = asyncio.create_task(check_expirations(yaml_config, notification_service))
        await asyncio.sleep(0)
        assert has_running_cycles()

        asyncio.get_running_loop().call_soon(release.set)
        assert await wait_for_running_cycles(timeout=1.0) is True
        report = await task

    assert report is not None
    assert report.total == 1
    assert not has_running_cycles()


@pytest.mark.asyncio
async def test_wait_for_running_cycle_past_timeout(
    yaml_config: YamlConfig,
    notification_service: AsyncMock,
) -> None:
    """Тест: цикл дольше таймаута не прерывается, ожидание длится до его конца."""

    async def slow_cycle() -> CycleReport:
        await asyncio.sleep(0.2)
        return CycleReport(total=2)

    service = Mock()
    service.run_cycle = slow_cycle

    with (
        patch("src.scheduler.tasks.DatabaseSession") as mock_db_session,
        patch("src.scheduler.tasks.create_expiration_service", return_value=service),
    ):
        mock_db_session.return_value.__aenter__.return_value = Mock()
        task = asyncio.create_task(check_expirations(yaml_config, notification_service))
        await asyncio.sleep(0)

        assert await wait_for_running_cycles(timeout=0.01) is False
        # Ожидание вернулось только после завершения цикла
        assert task.done()
        assert not task.cancelled()

    report = task.result()
    assert report is not None
    assert report.total == 2
    assert not has_running_cycles()


@pytest.mark.asyncio
async def test_check_expirations_retryable_scan_error_is_warning(
    yaml_config: YamlConfig,
    notification_service: AsyncMock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Тест: временный сбой хранилища логируется как предупреждение."""
    service = Mock()
    service.run_cycle = AsyncMock(
        side_effect=ScanError(
            DatabaseOperationError("query", TimeoutError(), retryable=True)
        )
    )

    with (
        patch("src.scheduler.tasks.DatabaseSession") as mock_db_session,
        patch("src.scheduler.tasks.create_expiration_service", return_value=service),
        caplog.at_level(logging.WARNING, logger="src.scheduler.tasks"),
    ):
        mock_db_session.return_value.__aenter__.return_value = Mock()
        result = await check_expirations(yaml_config, notification_service)

    assert result is None
    records = [r for r in caplog.records if r.name == "src.scheduler.tasks"]
    assert [r.levelno for r in records] == [logging.WARNING]
    assert "временный сбой" in records[0].getMessage()


def test_scan_error_retryable_follows_cause() -> None:
    """Тест: ScanError.retryable берётся из исходной ошибки хранилища."""
    assert ScanError(DatabaseOperationError("q", RuntimeError(), retryable=True)).retryable
    assert not ScanError(DatabaseOperationError("q", RuntimeError())).retryable
    assert not ScanError(RuntimeError("не из хранилища")).retryable
