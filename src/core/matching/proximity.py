# src/core/matching/proximity.py
"""
Поиск открытых заявок в радиусе от водителя.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Iterable, Optional

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.core.geo.service import GeoService
from src.core.jobs.models import JobRecord
from src.core.matching.errors import LocationUnavailableError
from src.core.matching.models import JobScore, rank_scores
from src.core.users.models import DriverProfile

if TYPE_CHECKING:
    from src.config.loader import MatchingSettings


def proximity_score(distance_km: float, normalization_km: float = 50.0) -> float:
    """Оценка близости max(0, 1 - d / normalization), не зависит от критериев водителя."""
    return max(0.0, min(1.0, 1 - distance_km / normalization_km))


class ProximityQuery:
    """Заявки поблизости с оценкой по расстоянию."""

    def __init__(self, geo: GeoService, config: Optional["MatchingSettings"] = None) -> None:
        if config is None:
            from src.config import settings
            config = settings.matching

        self._geo = geo
        self._config = config

    async def nearby(
        self,
        driver: DriverProfile,
        jobs: Iterable[JobRecord],
        radius_km: Optional[float] = None,
    ) -> list[JobScore]:
        """
        Возвращает открытые заявки, точка забора которых в радиусе от водителя.

        Args:
            driver: Профиль водителя с координатами
            jobs: Пул заявок
            radius_km: Радиус поиска (из конфига если None)

        Raises:
            LocationUnavailableError: координаты водителя неизвестны
        """
        if driver.coordinates is None:
            raise LocationUnavailableError(driver.id)

        if radius_km is None:
            radius_km = self._config.DEFAULT_NEARBY_RADIUS_KM

        candidates = [job for job in jobs if job.is_open and job.pickup is not None]
        semaphore = asyncio.Semaphore(self._config.DISTANCE_CONCURRENCY)

        async def _distance(job: JobRecord) -> float:
            async with semaphore:
                return await self._geo.distance(driver.coordinates, job.pickup)

        distances = await asyncio.gather(*(_distance(job) for job in candidates))

        scores = [
            JobScore(
                job=job,
                driver_id=driver.id,
                score=proximity_score(distance, self._config.PROXIMITY_NORMALIZATION_KM),
                reasons=(f"Within {round(distance)}km radius",),
            )
            for job, distance in zip(candidates, distances)
            if distance <= radius_km
        ]

        await log_info(
            f"Заявок в радиусе {radius_km} км от водителя {driver.id}: {len(scores)}",
            type_msg=TypeMsg.DEBUG,
        )

        return rank_scores(scores)
