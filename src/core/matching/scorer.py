# src/core/matching/scorer.py
"""
Детерминированный скоринг заявок для водителя.

Оценка: взвешенная сумма пяти слагаемых, каждое ограничено [0, 1]:
расстояние, вместимость, тип заявки, срочность, оплата.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Iterable, Optional

from src.common.constants import JobUrgency, TypeMsg
from src.common.logger import log_info
from src.core.geo.service import GeoService
from src.core.jobs.models import JobRecord
from src.core.matching.models import JobScore, MatchingCriteria, rank_scores
from src.core.users.models import DriverProfile

if TYPE_CHECKING:
    from src.config.loader import MatchingSettings


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def compute_job_score(
    job: JobRecord,
    driver: DriverProfile,
    criteria: MatchingCriteria,
    distance_km: Optional[float],
    config: "MatchingSettings",
) -> JobScore:
    """
    Чистая функция оценки заявки.

    Args:
        job: Открытая заявка
        driver: Профиль водителя
        criteria: Настройки подбора водителя
        distance_km: Расстояние до точки забора (None, если координаты неизвестны)
        config: Параметры матчинга

    Returns:
        JobScore со значением в [0, 1] и списком причин

    Raises:
        ValueError: если заявка не открыта
    """
    if not job.is_open:
        raise ValueError(f"Заявка {job.id} не открыта (статус {job.status.value})")

    reasons: list[str] = []
    total = 0.0

    # Расстояние
    if distance_km is None:
        reasons.append("distance unknown")
    else:
        distance_term = _clamp(1 - distance_km / criteria.max_distance_km)
        if distance_term > 0:
            total += config.WEIGHT_DISTANCE * distance_term
            reasons.append(f"{distance_km:.1f}km away")

    # Вместимость
    capacity = driver.vehicle_capacity
    if capacity is None:
        capacity = criteria.vehicle_capacity
    if not job.volume:
        capacity_term = 1.0
    else:
        capacity_term = _clamp(capacity / job.volume)
    if capacity_term > 0:
        total += config.WEIGHT_CAPACITY * capacity_term
        if capacity_term >= 1.0:
            reasons.append("Fits vehicle capacity")
        else:
            reasons.append(f"Partial load ({capacity_term:.0%} of volume)")

    # Тип заявки: пустой набор предпочтений значит "без предпочтений"
    if not criteria.preferred_categories or job.category in criteria.preferred_categories:
        total += config.WEIGHT_CATEGORY
        if criteria.preferred_categories:
            reasons.append(f"Preferred job type: {job.category}")
        else:
            reasons.append("No job type preference")

    if job.urgency == JobUrgency.HIGH:
        total += config.WEIGHT_URGENCY
        reasons.append("Urgent collection")

    # Оплата
    if job.price is not None:
        price_term = _clamp((job.price - config.PRICE_FLOOR) / config.PRICE_SPAN)
        if price_term > 0:
            total += config.WEIGHT_PRICE * price_term
            reasons.append(f"Payment £{job.price:.0f}")

    return JobScore(
        job=job,
        driver_id=driver.id,
        score=_clamp(total),
        reasons=tuple(reasons),
    )


class DeterministicScorer:
    """
    Скорер с дорожными расстояниями.
    Расстояния запрашиваются параллельно, но не более
    DISTANCE_CONCURRENCY одновременно.
    """

    def __init__(self, geo: GeoService, config: Optional["MatchingSettings"] = None) -> None:
        """
        Args:
            geo: Geo-сервис расстояний
            config: Параметры матчинга (из конфига если None)
        """
        if config is None:
            from src.config import settings
            config = settings.matching

        self._geo = geo
        self._config = config

    async def _distance(
        self,
        semaphore: asyncio.Semaphore,
        driver: DriverProfile,
        job: JobRecord,
    ) -> Optional[float]:
        if driver.coordinates is None or job.pickup is None:
            return None
        async with semaphore:
            return await self._geo.distance(driver.coordinates, job.pickup)

    async def score(
        self,
        job: JobRecord,
        driver: DriverProfile,
        criteria: MatchingCriteria,
    ) -> JobScore:
        """Оценивает одну открытую заявку."""
        semaphore = asyncio.Semaphore(1)
        distance = await self._distance(semaphore, driver, job)
        return compute_job_score(job, driver, criteria, distance, self._config)

    async def score_all(
        self,
        jobs: Iterable[JobRecord],
        driver: DriverProfile,
        criteria: MatchingCriteria,
    ) -> list[JobScore]:
        """
        Оценивает все открытые заявки пула.
        Закрытые заявки пропускаются, по score ничего не отсекается.

        Returns:
            Оценки в порядке входного пула
        """
        open_jobs = [job for job in jobs if job.is_open]
        semaphore = asyncio.Semaphore(self._config.DISTANCE_CONCURRENCY)

        distances = await asyncio.gather(
            *(self._distance(semaphore, driver, job) for job in open_jobs)
        )

        return [
            compute_job_score(job, driver, criteria, distance, self._config)
            for job, distance in zip(open_jobs, distances)
        ]

    async def rank(
        self,
        jobs: Iterable[JobRecord],
        driver: DriverProfile,
        criteria: MatchingCriteria,
        limit: Optional[int] = None,
    ) -> list[JobScore]:
        """
        Оценивает пул и возвращает отсортированный список.

        Args:
            jobs: Пул заявок
            driver: Профиль водителя
            criteria: Настройки подбора
            limit: Максимум результатов (None = все)
        """
        scores = await self.score_all(jobs, driver, criteria)
        ranked = rank_scores(scores, limit)

        await log_info(
            f"Детерминированный скоринг для водителя {driver.id}: "
            f"оценено {len(scores)}, возвращено {len(ranked)}",
            type_msg=TypeMsg.DEBUG,
        )

        return ranked
