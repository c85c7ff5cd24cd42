"""Репозитории для работы с данными.

Репозиторий — это класс, который инкапсулирует логику доступа к хранилищу.
Сервисы работают с репозиториями, а не напрямую с SQLAlchemy.
"""

from src.db.repositories.document_repo import DocumentRepository
from src.db.repositories.payment_repo import PaymentRecord, PaymentRepository
from src.db.repositories.user_repo import UserRecord, UserRepository

__all__ = [
    "DocumentRepository",
    "PaymentRecord",
    "PaymentRepository",
    "UserRecord",
    "UserRepository",
]
