# src/core/matching/dependencies.py
"""
Dependency Injection для сервиса матчинга.
Фабрики сервисов поверх инфраструктурных синглтонов.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_warning, setup_logging
from src.core.geo.service import GeoService
from src.core.jobs.repository import JobRepository
from src.core.matching.assisted import AssistedRanker, InferenceClient
from src.core.matching.service import MatchingService
from src.core.users.locations import DriverLocationStore
from src.core.users.repository import DriverRepository
from src.infra.database import close_db, get_db, init_db
from src.infra.redis_client import close_redis, get_redis, init_redis


# Кэшированные экземпляры
_geo_service: Optional[GeoService] = None
_inference_client: Optional[InferenceClient] = None
_matching_service: Optional[MatchingService] = None


def get_geo_service() -> GeoService:
    """Возвращает Geo-сервис."""
    global _geo_service
    if _geo_service is None:
        _geo_service = GeoService()
    return _geo_service


def get_inference_client() -> Optional[InferenceClient]:
    """
    Возвращает клиент сервиса инференса.
    Без ключа OpenRouter возвращает None: assisted режим отключён.
    """
    global _inference_client
    if _inference_client is None:
        from src.config import settings
        if not settings.inference.OPENROUTER_API_KEY:
            return None
        _inference_client = InferenceClient()
    return _inference_client


def get_matching_service() -> MatchingService:
    """
    Возвращает сервис матчинга.

    Returns:
        MatchingService
    """
    global _matching_service
    if _matching_service is None:
        db = get_db()
        drivers = DriverRepository(db)
        client = get_inference_client()
        _matching_service = MatchingService(
            jobs=JobRepository(db),
            drivers=drivers,
            geo=get_geo_service(),
            locations=DriverLocationStore(get_redis()),
            assisted=AssistedRanker(client) if client is not None else None,
        )
    return _matching_service


async def init_matching() -> MatchingService:
    """Подключает PostgreSQL и Redis и собирает сервис матчинга."""
    setup_logging()
    await log_info("Инициализация инфраструктуры...", type_msg=TypeMsg.INFO)

    await init_db()
    await log_info("PostgreSQL подключён", type_msg=TypeMsg.DEBUG)

    await init_redis()
    await log_info("Redis подключён", type_msg=TypeMsg.DEBUG)

    status = await health_check()
    if not all(status.values()):
        await log_warning(f"Инфраструктура недоступна: {status}")

    return get_matching_service()


async def health_check() -> dict[str, bool]:
    """Проверка здоровья PostgreSQL и Redis."""
    return {
        "database": await get_db().health_check(),
        "redis": await get_redis().health_check(),
    }


async def close_matching() -> None:
    """Закрывает HTTP клиенты и подключения."""
    global _geo_service, _inference_client, _matching_service

    if _geo_service is not None:
        await _geo_service.close()
    if _inference_client is not None:
        await _inference_client.close()
    _geo_service = None
    _inference_client = None
    _matching_service = None

    await close_redis()
    await close_db()
    await log_info("Подключения закрыты", type_msg=TypeMsg.INFO)
