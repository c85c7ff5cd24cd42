"""Сервис истечения подписок.

Один цикл проверки (run_cycle) проходит четыре этапа:
1. Сканирование — все платежи со статусом active
2. Оценка — истёк ли платёж (expiresAt <= now); некорректные пропускаются
3. Перевод — платёж → expired, понижение роли пользователя
   если у него не осталось активных платежей, чтение push-адреса
4. Уведомление — best effort, без повторов

Обработка ошибок (от узкой области к широкой):
- Некорректный платёж → пропуск, предупреждение в лог
- Не удалось пометить платёж expired → платёж остаётся active,
  без уведомления, повтор в следующем цикле
- Не удалось понизить роль или прочитать пользователя → ошибка в лог,
  остальные шаги выполняются
- Ошибка уведомления → лог, платёж остаётся expired, повтора нет
- Ошибка сканирования → ScanError, цикл прерывается без изменений

Конкурентность: хранилище без блокировок (last write wins).
Два инстанса сервиса могут обработать один платёж одновременно:
повторная пометка expired и повторное понижение роли идемпотентны,
повторное уведомление возможно и допустимо.

Порядок обработки платежей внутри цикла — порядок ID из хранилища.
Если у пользователя два платежа истекают в одном цикле, роль понижается
при обработке второго: к этому моменту первый уже помечен expired.
Если второй ещё не истёк, роль сохраняется.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession

from src.config.yaml_config import ExpiryNotificationConfig, StoreSchemaConfig
from src.core.exceptions import (
    DatabaseError,
    DocumentNotFoundError,
    MalformedRecordError,
    ScanError,
    TransitionError,
)
from src.db.repositories.document_repo import DocumentRepository
from src.db.repositories.payment_repo import PaymentRecord, PaymentRepository
from src.db.repositories.user_repo import UserRepository
from src.services.notification_service import DeliveryStatus, NotificationService
from src.utils.logging import get_logger

logger = get_logger(__name__)


class TransitionStep(StrEnum):
    """Шаги перевода платежа в истёкшие (в порядке выполнения)."""

    MARK_EXPIRED = "mark_expired"
    DEMOTE_ROLE = "demote_role"
    FETCH_PUSH_ADDRESS = "fetch_push_address"


@dataclass
class TransitionResult:
    """Результат перевода одного платежа.

    Платёж уже помечен expired — иначе вместо результата
    выбрасывается TransitionError.

    Attributes:
        payment_id: ID платежа.
        user_id: ID пользователя.
        demoted: Роль пользователя была понижена в этом переводе.
        push_address: Push-адрес пользователя (None если нет или не прочитан).
        failed_steps: Шаги после mark_expired, завершившиеся ошибкой.
    """

    payment_id: str
    user_id: str
    demoted: bool = False
    push_address: str | None = None
    failed_steps: list[TransitionStep] = field(default_factory=list)


@dataclass
class CycleReport:
    """Статистика одного цикла проверки."""

    total: int = 0
    not_due: int = 0
    malformed: int = 0
    expired: int = 0
    failed: int = 0
    demoted: int = 0
    notified: int = 0
    notify_skipped: int = 0
    notify_failed: int = 0


def utc_now() -> datetime:
    """Текущее время в UTC (часы по умолчанию)."""
    return datetime.now(UTC)


def is_expired(record: PaymentRecord, now: datetime) -> bool:
    """Проверить, истёк ли платёж.

    Чистая функция от платежа и текущего времени: expires_at <= now.

    Args:
        record: Платёж.
        now: Текущее время (timezone-aware).

    Returns:
        True если подписка истекла.

    Raises:
        MalformedRecordError: Нет user_id или корректного expires_at.
    """
    if record.user_id is None:
        raise MalformedRecordError(record.id, "user_id")
    if record.expires_at is None:
        raise MalformedRecordError(record.id, "expires_at")
    return record.expires_at <= now


class ExpirationService:
    """Сервис истечения подписок.

    Не хранит состояние между циклами — всё состояние в хранилище.

    Attributes:
        _payments: Репозиторий платежей.
        _users: Репозиторий пользователей.
        _notifications: Сервис уведомлений.
        _notification: Тексты уведомления об истечении.
        _clock: Источник текущего времени.
    """

    def __init__(
        self,
        payments: PaymentRepository,
        users: UserRepository,
        notifications: NotificationService,
        notification: ExpiryNotificationConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Инициализация сервиса.

        Args:
            payments: Репозиторий платежей.
            users: Репозиторий пользователей.
            notifications: Сервис уведомлений.
            notification: Тексты уведомления из config.yaml.
            clock: Источник текущего времени (в тестах — фиксированное время).
        """
        self._payments = payments
        self._users = users
        self._notifications = notifications
        self._notification = notification
        self._clock = clock

    async def scan(self) -> list[PaymentRecord]:
        """Получить все активные платежи.

        Returns:
            Кандидаты на истечение (время не проверяется).

        Raises:
            ScanError: Хранилище недоступно или запрос не удался.
        """
        try:
            return await self._payments.get_active()
        except DatabaseError as e:
            raise ScanError(e) from e

    async def transition(self, record: PaymentRecord) -> TransitionResult:
        """Перевести истёкший платёж в expired и обновить пользователя.

        Шаги:
        1. Пометить платёж expired. При ошибке — TransitionError,
           дальнейшие шаги не выполняются.
        2. Если у пользователя не осталось других активных платежей —
           понизить роль. Статус обновляется ДО проверки, чтобы параллельно
           истекающий второй платёж не увидел этот как активный.
        3. Прочитать push-адрес пользователя.

        Ошибки шагов 2 и 3 логируются и попадают в failed_steps.

        Args:
            record: Платёж, для которого is_expired() вернул True.

        Returns:
            TransitionResult.

        Raises:
            TransitionError: Не удалось пометить платёж expired.
        """
        if record.user_id is None:
            raise MalformedRecordError(record.id, "user_id")
        user_id = record.user_id

        try:
            await self._payments.mark_expired(record.id)
        except DatabaseError as e:
            raise TransitionError(TransitionStep.MARK_EXPIRED, record.id, e) from e

        result = TransitionResult(payment_id=record.id, user_id=user_id)

        try:
            active = await self._payments.get_active_for_user(user_id)
            remaining = [payment for payment in active if payment.id != record.id]
            if not remaining:
                await self._users.demote(user_id)
                result.demoted = True
            else:
                logger.debug(
                    "Пользователь %s: осталось %d активных платежей, роль не меняется",
                    user_id,
                    len(remaining),
                )
        except DocumentNotFoundError:
            result.failed_steps.append(TransitionStep.DEMOTE_ROLE)
            logger.warning(
                "Платёж %s: пользователь %s не найден, роль не понижена",
                record.id,
                user_id,
            )
        except DatabaseError as e:
            result.failed_steps.append(TransitionStep.DEMOTE_ROLE)
            logger.error(
                "Платёж %s: шаг %s не выполнен для пользователя %s: %s",
                record.id,
                TransitionStep.DEMOTE_ROLE,
                user_id,
                e,
            )

        try:
            user = await self._users.get_by_id(user_id)
            result.push_address = user.push_address if user else None
        except DatabaseError as e:
            result.failed_steps.append(TransitionStep.FETCH_PUSH_ADDRESS)
            logger.error(
                "Платёж %s: шаг %s не выполнен для пользователя %s: %s",
                record.id,
                TransitionStep.FETCH_PUSH_ADDRESS,
                user_id,
                e,
            )

        return result

    async def notify(self, push_address: str | None) -> DeliveryStatus:
        """Отправить уведомление об окончании подписки (best effort)."""
        return await self._notifications.notify(
            push_address,
            self._notification.title,
            self._notification.body,
            sound=self._notification.sound,
        )

    async def run_cycle(self) -> CycleReport:
        """Выполнить один цикл проверки.

        Returns:
            CycleReport со статистикой.

        Raises:
            ScanError: Сканирование не удалось, ни один платёж не изменён.
        """
        now = self._clock()
        records = await self.scan()

        report = CycleReport(total=len(records))
        logger.debug("Найдено %d активных платежей", report.total)

        for record in records:
            try:
                await self._process_record(record, now, report)
            except Exception:
                report.failed += 1
                logger.exception("Ошибка обработки платежа id=%s", record.id)

        logger.info(
            "Проверка подписок завершена: всего=%d, истекло=%d, не истекло=%d, "
            "некорректных=%d, ошибок=%d, роль понижена=%d, уведомлено=%d, "
            "без адреса=%d, не доставлено=%d",
            report.total,
            report.expired,
            report.not_due,
            report.malformed,
            report.failed,
            report.demoted,
            report.notified,
            report.notify_skipped,
            report.notify_failed,
        )
        return report

    async def _process_record(
        self,
        record: PaymentRecord,
        now: datetime,
        report: CycleReport,
    ) -> None:
        """Обработать один платёж: оценка → перевод → уведомление."""
        try:
            if not is_expired(record, now):
                report.not_due += 1
                return
        except MalformedRecordError as e:
            report.malformed += 1
            logger.warning("Пропущен некорректный платёж: %s", e)
            return

        try:
            result = await self.transition(record)
        except TransitionError as e:
            report.failed += 1
            logger.error("Платёж остаётся активным до следующего цикла: %s", e)
            return

        report.expired += 1
        if result.demoted:
            report.demoted += 1

        status = await self.notify(result.push_address)
        if status == DeliveryStatus.SENT:
            report.notified += 1
        elif status == DeliveryStatus.SKIPPED:
            report.notify_skipped += 1
        else:
            report.notify_failed += 1

        logger.info(
            "Подписка истекла: payment_id=%s, user_id=%s, роль понижена=%s, уведомление=%s",
            result.payment_id,
            result.user_id,
            result.demoted,
            status,
        )


def create_expiration_service(
    session: AsyncSession,
    schema: StoreSchemaConfig,
    notification: ExpiryNotificationConfig,
    notifications: NotificationService,
    *,
    timeout: float | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> ExpirationService:
    """Фабричная функция для создания ExpirationService.

    Args:
        session: Асинхронная сессия SQLAlchemy.
        schema: Схема хранилища из config.yaml.
        notification: Тексты уведомления из config.yaml.
        notifications: Сервис уведомлений.
        timeout: Таймаут одной операции с хранилищем.
        clock: Источник текущего времени.

    Returns:
        Настроенный экземпляр ExpirationService.
    """
    documents = DocumentRepository(session, timeout=timeout)
    return ExpirationService(
        payments=PaymentRepository(documents, schema),
        users=UserRepository(documents, schema),
        notifications=notifications,
        notification=notification,
        clock=clock,
    )
