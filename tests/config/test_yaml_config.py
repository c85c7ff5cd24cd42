"""Тесты для загрузки и валидации YAML-конфигурации."""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config.yaml_config import YamlConfig, load_yaml_config


def _load(yaml_content: str) -> YamlConfig:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write(yaml_content)
        temp_path = f.name

    try:
        return load_yaml_config(temp_path)
    finally:
        Path(temp_path).unlink()


def test_missing_file_returns_defaults() -> None:
    """Тест: нет файла — конфигурация по умолчанию."""
    config = load_yaml_config("/nonexistent/config.yaml")

    assert config.expiration.enabled is True
    assert config.expiration.interval_seconds == 60
    assert config.expiration.run_on_startup is True
    assert config.expiration.notification.title == "Subscription Ended ⚠️"
    assert config.store.payments_collection == "user_payments"
    assert config.store.push_address_field == "expoPushToken"
    assert config.store.demoted_role == "user"


def test_empty_file_returns_defaults() -> None:
    """Тест: пустой файл — конфигурация по умолчанию."""
    config = _load("")

    assert config.expiration.interval_seconds == 60


def test_partial_override() -> None:
    """Тест: заданные поля переопределяются, остальные остаются по умолчанию."""
    config = _load(
        """
expiration:
  interval_seconds: 300
  notification:
    title: "Подписка закончилась"
store:
  users_collection: accounts
"""
    )

    assert config.expiration.interval_seconds == 300
    assert config.expiration.notification.title == "Подписка закончилась"
    assert config.expiration.notification.sound == "default"
    assert config.store.users_collection == "accounts"
    assert config.store.payments_collection == "user_payments"


def test_interval_must_be_positive() -> None:
    """Тест: нулевой интервал отклоняется."""
    with pytest.raises(ValidationError):
        _load("expiration:\n  interval_seconds: 0\n")


def test_project_config_is_valid() -> None:
    """Тест: config.yaml из корня проекта проходит валидацию."""
    config_path = Path(__file__).parent.parent.parent / "config.yaml"

    config = load_yaml_config(config_path)

    assert config.expiration.interval_seconds >= 1
    assert config.store.active_status != config.store.expired_status
