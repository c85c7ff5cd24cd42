"""Централизованные исключения приложения.

Этот модуль содержит ВСЕ кастомные исключения проекта.
Удобный импорт: `from src.core.exceptions import SomeError`

Организация исключений по доменам:
- Database: Ошибки хранилища документов
- Expiration: Ошибки задачи истечения подписок
- Push: Ошибки push-шлюза
"""

from typing_extensions import override

# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================
# Исключения для работы с хранилищем документов.
# Иерархия: DatabaseError -> DatabaseOperationError, DocumentNotFoundError
# =============================================================================


class DatabaseError(Exception):
    """Базовое исключение для ошибок работы с хранилищем.

    Может быть потенциально восстановимым (retry) в зависимости от причины.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        """Создать исключение хранилища.

        Args:
            message: Описание ошибки.
            retryable: Можно ли повторить операцию (True для временных сбоев).
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class DatabaseOperationError(DatabaseError):
    """Ошибка выполнения операции с хранилищем.

    Оборачивает ошибки SQLAlchemy и таймауты отдельных вызовов.
    """

    def __init__(
        self, operation: str, original_error: Exception, retryable: bool = False
    ) -> None:
        """Создать исключение об ошибке операции.

        Args:
            operation: Название операции (query, update, get).
            original_error: Оригинальное исключение.
            retryable: Можно ли повторить операцию.
        """
        super().__init__(
            f"Ошибка выполнения операции '{operation}': {original_error!r}",
            retryable=retryable,
        )
        self.operation = operation
        self.original_error = original_error


class DocumentNotFoundError(DatabaseError):
    """Документ для точечного обновления не найден.

    Невосстановимая ошибка — повтор не поможет, пока документ не создан.
    """

    def __init__(self, collection: str, doc_id: str) -> None:
        """Создать исключение о ненайденном документе.

        Args:
            collection: Имя коллекции.
            doc_id: ID документа.
        """
        super().__init__(
            f"Документ {collection}/{doc_id} не найден",
            retryable=False,
        )
        self.collection = collection
        self.doc_id = doc_id


# =============================================================================
# EXPIRATION EXCEPTIONS
# =============================================================================
# Исключения задачи истечения подписок.
# Ни одно из них не выходит за пределы задачи планировщика.
# =============================================================================


class ExpirationError(Exception):
    """Базовое исключение задачи истечения подписок."""


class ScanError(ExpirationError):
    """Не удалось получить список активных платежей.

    Весь цикл прерывается без изменений в хранилище,
    следующий цикл начнёт заново.
    """

    def __init__(self, original_error: Exception) -> None:
        self.original_error = original_error
        super().__init__(f"Не удалось получить активные платежи: {original_error}")

    @property
    def retryable(self) -> bool:
        """Временный ли сбой хранилища (таймаут, обрыв соединения)."""
        return isinstance(self.original_error, DatabaseError) and self.original_error.retryable


class MalformedRecordError(ExpirationError):
    """У платежа нет обязательного поля (или оно некорректно).

    Платёж пропускается в текущем цикле и будет проверен снова в следующем.
    """

    def __init__(self, payment_id: str, field: str) -> None:
        self.payment_id = payment_id
        self.field = field
        super().__init__(
            f"Платёж {payment_id}: поле '{field}' отсутствует или некорректно"
        )


class TransitionError(ExpirationError):
    """Не удалось выполнить шаг перевода платежа в истёкшие.

    Attributes:
        step: Название шага (mark_expired, demote_role, fetch_push_address).
        payment_id: ID платежа.
        original_error: Оригинальное исключение.
    """

    def __init__(self, step: str, payment_id: str, original_error: Exception) -> None:
        self.step = step
        self.payment_id = payment_id
        self.original_error = original_error
        super().__init__(f"Платёж {payment_id}: шаг '{step}' не выполнен: {original_error}")


# =============================================================================
# PUSH EXCEPTIONS
# =============================================================================
# Исключения для push-шлюза.
# =============================================================================


class PushError(Exception):
    """Ошибка при отправке push-уведомления.

    Выбрасывается провайдером, когда шлюз недоступен или ответил не 2xx.
    Задача истечения подписок только логирует её — повторов нет.

    Attributes:
        message: Человекочитаемое описание ошибки.
        provider: Название провайдера (expo).
        status_code: HTTP-статус ответа шлюза (None при сетевой ошибке).
        is_retryable: Временная ли ошибка (таймаут, 5xx).
        original_error: Оригинальное исключение от httpx.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        is_retryable: bool = False,
        original_error: Exception | None = None,
    ) -> None:
        """Создать ошибку отправки.

        Args:
            message: Описание ошибки.
            provider: Название провайдера.
            status_code: HTTP-статус ответа.
            is_retryable: Можно ли повторить операцию.
            original_error: Оригинальное исключение.
        """
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.original_error = original_error

    @override
    def __str__(self) -> str:
        """Строковое представление ошибки."""
        return f"[{self.provider}] {self.message}"
