# src/core/matching/recommender.py
"""
Рекомендации заявок по истории водителя.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Iterable, Optional

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.core.jobs.models import JobRecord
from src.core.matching.models import DriverPreferenceProfile, JobScore, rank_scores

if TYPE_CHECKING:
    from src.config.loader import MatchingSettings


def build_preference_profile(history: Iterable[JobRecord]) -> DriverPreferenceProfile:
    """
    Строит профиль предпочтений по завершённым заявкам.
    Средние считаются по размеру истории, пустые объём и оплата идут как 0.
    """
    jobs = list(history)
    if not jobs:
        return DriverPreferenceProfile()

    categories = Counter(job.category for job in jobs)
    areas = Counter(job.pickup_city for job in jobs if job.pickup_city)

    return DriverPreferenceProfile(
        category_counts=dict(categories),
        area_counts=dict(areas),
        average_volume=sum(job.volume or 0.0 for job in jobs) / len(jobs),
        average_price=sum(job.price or 0.0 for job in jobs) / len(jobs),
        history_size=len(jobs),
    )


def compute_recommendation_score(
    job: JobRecord,
    profile: DriverPreferenceProfile,
    driver_id: str,
    config: "MatchingSettings",
) -> JobScore:
    """
    Оценивает заявку по сходству с историей водителя.

    Тип и район дают полный вес уже при одном совпадении в истории.
    Слагаемые объёма и оплаты не участвуют, если среднее равно нулю.
    """
    reasons: list[str] = []
    total = 0.0

    category_count = profile.category_counts.get(job.category, 0)
    if category_count:
        total += config.REC_WEIGHT_CATEGORY
        reasons.append(f"Similar to {category_count} previous jobs")

    area_count = profile.area_counts.get(job.pickup_city, 0) if job.pickup_city else 0
    if area_count:
        total += config.REC_WEIGHT_AREA
        reasons.append(f"Familiar area ({area_count} previous jobs)")

    if profile.average_volume > 0 and job.volume is not None:
        similarity = 1 - abs(job.volume - profile.average_volume) / profile.average_volume
        similarity = max(0.0, min(1.0, similarity))
        if similarity > 0:
            total += config.REC_WEIGHT_VOLUME * similarity
            reasons.append("Similar volume to usual jobs")

    if profile.average_price > 0 and job.price is not None:
        ratio = job.price / profile.average_price
        total += config.REC_WEIGHT_PRICE * min(1.0, ratio)
        if ratio > 1.1:
            reasons.append(f"Above average payment (+{(ratio - 1) * 100:.0f}%)")

    return JobScore(
        job=job,
        driver_id=driver_id,
        score=max(0.0, min(1.0, total)),
        reasons=tuple(reasons),
    )


class HistoryRecommender:
    """
    Рекомендатель по истории завершённых заявок.
    Единственный компонент, сам отсекающий слабые оценки.
    """

    def __init__(self, config: Optional["MatchingSettings"] = None) -> None:
        if config is None:
            from src.config import settings
            config = settings.matching
        self._config = config

    async def recommend(
        self,
        open_jobs: Iterable[JobRecord],
        history: Iterable[JobRecord],
        driver_id: str,
        limit: Optional[int] = None,
    ) -> list[JobScore]:
        """
        Возвращает рекомендованные заявки.

        Args:
            open_jobs: Пул открытых заявок
            history: Завершённые заявки водителя
            driver_id: ID водителя
            limit: Максимум результатов (из конфига если None)

        Returns:
            Оценки не ниже RECOMMENDATION_MIN_SCORE, по убыванию
        """
        if limit is None:
            limit = self._config.DEFAULT_RECOMMEND_LIMIT

        profile = build_preference_profile(history)

        scores = [
            compute_recommendation_score(job, profile, driver_id, self._config)
            for job in open_jobs
            if job.is_open
        ]
        accepted = [s for s in scores if s.score >= self._config.RECOMMENDATION_MIN_SCORE]
        ranked = rank_scores(accepted, limit)

        await log_info(
            f"Рекомендации для водителя {driver_id}: история {profile.history_size}, "
            f"прошло порог {len(accepted)} из {len(scores)}",
            type_msg=TypeMsg.DEBUG,
        )

        return ranked
