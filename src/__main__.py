"""Entry point для запуска через python -m src.

Запускает uvicorn сервер с FastAPI приложением.
Планировщик проверки подписок запускается вместе с приложением.

Использование:
    python -m src              # Production mode (без hot-reload)
    python -m src --dev        # Development mode (с hot-reload)
    python -m src --help       # Показать справку

Порт по умолчанию берётся из переменной окружения PORT (3000, если не задана),
как ожидают PaaS-хостинги.
"""

import argparse
import os

import uvicorn

DEFAULT_PORT = 3000


def _default_port() -> int:
    """Порт из переменной окружения PORT или DEFAULT_PORT."""
    value = os.environ.get("PORT", "")
    return int(value) if value.isdigit() else DEFAULT_PORT


def main() -> None:
    """Запустить приложение через uvicorn."""
    parser = argparse.ArgumentParser(
        description="Push Relay — relay push-уведомлений и проверка истёкших подписок",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры:
    python -m src              # Production mode
    python -m src --dev        # Development mode с hot-reload
    python -m src --port 8080  # Указать кастомный порт
        """,
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Включить hot-reload для разработки",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Хост для сервера (по умолчанию: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=_default_port(),
        help=f"Порт для сервера (по умолчанию: $PORT или {DEFAULT_PORT})",
    )
    args = parser.parse_args()

    # Hot-reload следит и за config.yaml: интервал и тексты уведомлений
    # читаются только при старте
    reload_options = (
        {
            "reload": True,
            "reload_includes": ["src/**/*.py", "config.yaml"],
            "reload_excludes": [".venv/**", "data/**", "tests/**", ".git/**"],
        }
        if args.dev
        else {"reload": False}
    )

    uvicorn.run("src.main:app", host=args.host, port=args.port, **reload_options)


if __name__ == "__main__":
    main()
