# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import datetime as dt
import json
import os
from contextlib import asynccontextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("ORS_API_KEY", "test_api_key")

from src.core.rides.models import Offer, Trip

TRIP_DATE = dt.date(2024, 6, 1)


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture(scope="session")
def lang_dict_path(project_root: Path) -> Path:
    """Путь к файлу локализации."""
    return project_root / "config" / "lang_dict.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "ridepool_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "DEBUG",
        "LOG_TO_FILE": False,
        "LOG_FORMAT": "colored",
        "JOIN_SERVICE_PORT": 18085,
        "ORS_API_URL": "https://ors.test",
        "ORS_API_KEY": "",
        "MAX_CONCURRENT_GEOCODES": 4,
        "DEFAULT_LANGUAGE": "en",
        "DB_HOST": "db.test",
        "DB_PORT": 5433,
        "DB_NAME": "ridepool_test",
        "DB_USER": "tester",
        "DB_PASSWORD": "",
        "REDIS_ENABLED": False,
        "REDIS_DB": 1,
        "RABBITMQ_EXCHANGE": "ridepool.test",
        "MAX_ALTERNATIVES": 3,
        "RESTORE_SEATS_ON_LEAVE": False,
        "RECONCILE_INTERVAL": 60,
    }


@pytest.fixture
def mock_lang_dict() -> dict[str, dict[str, str]]:
    """Мок словаря локализации для тестов."""
    return {
        "JOIN_OFFER_REQUESTED": {
            "pl": "Nowe zgłoszenie: {origin} → {destination}, {date}.",
            "en": "New join request: {origin} → {destination}, {date}.",
        },
        "JOIN_OFFER_ACCEPTED": {
            "pl": "Twoje zgłoszenie zostało zaakceptowane.",
            "en": "Your join request was accepted.",
        },
        "ONLY_ENGLISH": {
            "en": "English only",
        },
    }


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_conn() -> AsyncMock:
    """Мок соединения asyncpg внутри транзакции."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 1")
    conn.fetchval = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> AsyncMock:
    """Мок менеджера базы данных; transaction() отдаёт mock_conn."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)

    @asynccontextmanager
    async def transaction():
        yield mock_conn

    db.transaction = MagicMock(side_effect=transaction)
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.get_model = AsyncMock(return_value=None)
    redis.set_model = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=None)
    event_bus.subscribe = AsyncMock(return_value=None)
    event_bus.is_connected = True
    return event_bus


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_trip_data() -> dict[str, Any]:
    """Пример данных поездки (строка trips)."""
    return {
        "id": 10,
        "user_id": 111,
        "origin": "Warsaw",
        "destination": "Krakow",
        "date": TRIP_DATE,
        "people": 2,
        "purpose": "work",
        "luggage": "small",
        "pets": False,
        "type": "request",
        "created_at": dt.datetime(2024, 5, 20, 12, 0, tzinfo=dt.timezone.utc),
    }


@pytest.fixture
def sample_offer_data() -> dict[str, Any]:
    """Пример данных предложения (строка offers)."""
    return {
        "id": 20,
        "user_id": 222,
        "origin": "Warsaw",
        "destination": "Krakow",
        "date": TRIP_DATE,
        "price": Decimal("45.00"),
        "vehicle_type": "car",
        "seats_available": 3,
        "luggage": "medium",
        "pets": True,
        "notes": None,
        "valid_until": dt.date(2024, 6, 1),
        "created_at": dt.datetime(2024, 5, 19, 9, 30, tzinfo=dt.timezone.utc),
    }


@pytest.fixture
def sample_trip(sample_trip_data: dict[str, Any]) -> Trip:
    return Trip(**sample_trip_data)


@pytest.fixture
def sample_offer(sample_offer_data: dict[str, Any]) -> Offer:
    return Offer(**sample_offer_data)


# =============================================================================
# УТИЛИТЫ
# =============================================================================

@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


@pytest.fixture
def temp_lang_dict_file(tmp_path: Path, mock_lang_dict: dict[str, dict[str, str]]) -> Path:
    """Создаёт временный файл локализации."""
    lang_file = tmp_path / "lang_dict.json"
    lang_file.write_text(json.dumps(mock_lang_dict, ensure_ascii=False, indent=2))
    return lang_file
