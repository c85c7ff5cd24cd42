"""Планировщик задач (APScheduler).

Модуль содержит периодическую задачу проверки истёкших подписок.

Планировщик запускается вместе с основным приложением
и работает как фоновая задача.
"""

from src.scheduler.runner import (
    create_scheduler,
    shutdown_scheduler,
    start_scheduler,
    stop_scheduler,
)

__all__ = ["create_scheduler", "shutdown_scheduler", "start_scheduler", "stop_scheduler"]
