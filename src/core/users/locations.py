# src/core/users/locations.py
"""
Живые координаты водителей в Redis.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from src.common.constants import DRIVER_LAST_SEEN_KEY, DRIVERS_GEO_KEY, TypeMsg
from src.common.logger import log_error, log_info
from src.core.geo.models import Coordinate
from src.infra.redis_client import RedisClient


class DriverLocationStore:
    """
    Хранилище геолокации водителей.
    Реализует DriverLocationView.
    """

    def __init__(self, redis: RedisClient, ttl: int | None = None) -> None:
        """
        Args:
            redis: Клиент Redis (Dependency Injection)
            ttl: TTL метки последней активности (из конфига если None)
        """
        if ttl is None:
            from src.config import settings
            ttl = settings.redis_ttl.LAST_SEEN_TTL

        self._redis = redis
        self._ttl = ttl

    async def update_location(self, driver_id: str, coordinate: Coordinate) -> None:
        """
        Обновляет геолокацию водителя и метку последней активности.

        Args:
            driver_id: ID водителя
            coordinate: Текущие координаты
        """
        await self._redis.geoadd(DRIVERS_GEO_KEY, coordinate.lng, coordinate.lat, driver_id)
        await self._redis.set(
            DRIVER_LAST_SEEN_KEY.format(driver_id=driver_id),
            datetime.now(timezone.utc).isoformat(),
            ttl=self._ttl,
        )

        await log_info(
            f"Обновлена геолокация водителя {driver_id}: {coordinate.as_param()}",
            type_msg=TypeMsg.DEBUG,
        )

    async def get_location(self, driver_id: str) -> Optional[Coordinate]:
        """
        Возвращает последние известные координаты водителя.

        Returns:
            Координаты или None (нет данных или Redis недоступен)
        """
        try:
            position = await self._redis.geopos(DRIVERS_GEO_KEY, driver_id)
        except Exception as e:
            await log_error(f"Ошибка чтения геолокации водителя {driver_id}: {e}")
            return None

        if position is None:
            return None

        lng, lat = position
        return Coordinate(lat=float(lat), lng=float(lng))

