"""Health check эндпоинт.

Содержит endpoint для проверки работоспособности сервиса:
- GET /health — health check для мониторинга и liveness probes
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Проверка состояния сервиса.

    Не обращается к БД и push-шлюзу: отвечает, пока жив процесс.

    Returns:
        Словарь со статусом "ok"
    """
    return {"status": "ok", "message": "Backend is alive 🚀"}
