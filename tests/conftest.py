# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test_api_key")
os.environ.setdefault("OPENROUTER_API_KEY", "test_openrouter_key")

from src.common.constants import JobStatus, JobUrgency, UserRole  # noqa: E402
from src.config.loader import MatchingSettings  # noqa: E402
from src.core.geo.models import Coordinate  # noqa: E402
from src.core.jobs.models import JobRecord  # noqa: E402
from src.core.matching.models import MatchingCriteria  # noqa: E402
from src.core.users.models import DriverProfile  # noqa: E402

BASE_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


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


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "reloop_matching_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "DEBUG",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "colored",
        "GOOGLE_MAPS_API_KEY": "test_api_key",
        "GEOCODING_LANGUAGE": "en",
        "ROUTING_TIMEOUT": 3.0,
        "OPENROUTER_API_KEY": "test_openrouter_key",
        "INFERENCE_MODEL": "test/model",
        "INFERENCE_TIMEOUT": 8.0,
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "reloop_test",
        "DB_USER": "postgres",
        "DB_PASSWORD": "test_password",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "REDIS_PASSWORD": "",
        "REDIS_NAMESPACE": "reloop_test",
        "LAST_SEEN_TTL": 60,
        "DEFAULT_MAX_DISTANCE_KM": 40.0,
        "RECOMMENDATION_MIN_SCORE": 0.35,
        "DISTANCE_CONCURRENCY": 4,
    }


@pytest.fixture
def matching_config() -> MatchingSettings:
    """Параметры матчинга по умолчанию."""
    return MatchingSettings()


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.geoadd = AsyncMock(return_value=1)
    redis.geopos = AsyncMock(return_value=None)
    return redis


@pytest.fixture
def mock_geo() -> AsyncMock:
    """Мок Geo-сервиса (10 км до любой точки)."""
    geo = AsyncMock()
    geo.distance = AsyncMock(return_value=10.0)
    return geo


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

def make_job(job_id: str = "job-1", minutes_ago: int = 0, **overrides: Any) -> JobRecord:
    """Создаёт открытую заявку с разумными значениями по умолчанию."""
    data: dict[str, Any] = {
        "id": job_id,
        "category": "standard",
        "volume": 100.0,
        "pickup": Coordinate(lat=51.52, lng=-0.10),
        "delivery": Coordinate(lat=51.45, lng=-0.20),
        "pickup_city": "London",
        "urgency": JobUrgency.NORMAL,
        "price": None,
        "status": JobStatus.OPEN,
        "created_at": BASE_TIME - timedelta(minutes=minutes_ago),
    }
    data.update(overrides)
    return JobRecord(**data)


def make_driver(driver_id: str = "driver-1", **overrides: Any) -> DriverProfile:
    """Создаёт профиль водителя в центре Лондона."""
    data: dict[str, Any] = {
        "id": driver_id,
        "role": UserRole.DRIVER,
        "name": "Test Driver",
        "coordinates": Coordinate(lat=51.50, lng=-0.10),
        "vehicle_capacity": 200.0,
        "rating": 4.6,
        "completed_jobs": 12,
    }
    data.update(overrides)
    return DriverProfile(**data)


@pytest.fixture
def driver() -> DriverProfile:
    """Водитель с вместимостью 200 л."""
    return make_driver()


@pytest.fixture
def criteria(matching_config: MatchingSettings) -> MatchingCriteria:
    """Критерии по умолчанию (50 км, без предпочтений)."""
    return MatchingCriteria.defaults(matching_config)


@pytest.fixture
def sample_job_row() -> dict[str, Any]:
    """Строка таблицы jobs."""
    return {
        "id": "0b6f1c2e-1111-4a5b-9c3d-000000000001",
        "job_type": "restaurant",
        "volume": 120.0,
        "pickup_latitude": 51.5155,
        "pickup_longitude": -0.0922,
        "delivery_latitude": 51.4700,
        "delivery_longitude": -0.4543,
        "pickup_city": "London",
        "urgency": "high",
        "payment": 180.0,
        "contamination": "low",
        "quality_grade": "A",
        "status": "open",
        "driver_id": None,
        "created_at": BASE_TIME,
        "completed_at": None,
    }


@pytest.fixture
def sample_driver_row() -> dict[str, Any]:
    """Строка users + driver_profiles."""
    return {
        "id": "d-42",
        "role": "driver",
        "name": "Sam Carter",
        "latitude": 51.50,
        "longitude": -0.10,
        "rating": 4.8,
        "completed_jobs": 31,
        "vehicle_capacity": 200.0,
        "work_start": "07:00",
        "work_end": "19:00",
    }


@pytest.fixture
def sample_criteria_row() -> dict[str, Any]:
    """Строка driver_profiles с настройками подбора (jsonb приходит строкой)."""
    return {
        "max_distance": 30,
        "min_rating": 4.0,
        "vehicle_capacity": 250.0,
        "preferred_job_types": json.dumps(["restaurant", "hotel"]),
        "working_hours": json.dumps({"start": "06:00", "end": "14:00"}),
    }


@pytest.fixture
def job_factory():
    """Фабрика заявок."""
    return make_job


@pytest.fixture
def driver_factory():
    """Фабрика профилей водителей."""
    return make_driver
