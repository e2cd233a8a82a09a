# src/core/matching/models.py
"""
Модели данных матчинга заявок и водителей.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.jobs.models import JobRecord

if TYPE_CHECKING:
    from src.config.loader import MatchingSettings


class MatchingCriteria(BaseModel):
    """
    Настройки подбора водителя.
    Неизменяемы в пределах одного запроса.
    """

    model_config = ConfigDict(frozen=True)

    max_distance_km: float = Field(..., gt=0, description="Максимальное расстояние, км")
    min_rating: float = Field(..., ge=0, le=5, description="Минимальный рейтинг поставщика")
    vehicle_capacity: float = Field(..., ge=0, description="Вместимость ТС, л")
    preferred_categories: frozenset[str] = Field(
        default_factory=frozenset,
        description="Предпочитаемые типы заявок (пусто = без предпочтений)",
    )
    work_start: str = Field(..., description="Начало рабочего окна, HH:MM")
    work_end: str = Field(..., description="Конец рабочего окна, HH:MM")

    @field_validator("preferred_categories", mode="before")
    @classmethod
    def parse_categories(cls, v: Any) -> Any:
        """Принимает список, строку JSON или None."""
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = json.loads(v) if v.strip().startswith("[") else [v]
        return frozenset(str(item) for item in v)

    @classmethod
    def defaults(cls, config: "MatchingSettings") -> "MatchingCriteria":
        """Критерии по умолчанию из конфигурации матчинга."""
        return cls(
            max_distance_km=config.DEFAULT_MAX_DISTANCE_KM,
            min_rating=config.DEFAULT_MIN_RATING,
            vehicle_capacity=config.DEFAULT_VEHICLE_CAPACITY,
            work_start=config.DEFAULT_WORK_START,
            work_end=config.DEFAULT_WORK_END,
        )


class JobScore(BaseModel):
    """
    Оценка заявки для конкретного водителя.
    Создаётся на каждый запрос и нигде не сохраняется.
    """

    model_config = ConfigDict(frozen=True)

    job: JobRecord
    driver_id: str
    score: float = Field(..., ge=0.0, le=1.0)
    reasons: tuple[str, ...] = ()

    @property
    def job_id(self) -> str:
        return self.job.id


class DriverPreferenceProfile(BaseModel):
    """Неявные предпочтения водителя, выведенные из истории заявок."""

    model_config = ConfigDict(frozen=True)

    category_counts: dict[str, int] = Field(default_factory=dict)
    area_counts: dict[str, int] = Field(default_factory=dict)
    average_volume: float = 0.0
    average_price: float = 0.0
    history_size: int = 0

    @property
    def is_empty(self) -> bool:
        return self.history_size == 0


def rank_scores(scores: Iterable[JobScore], limit: Optional[int] = None) -> list[JobScore]:
    """
    Сортирует оценки: score по убыванию, затем более новые заявки,
    затем id заявки по убыванию. Порядок не зависит от порядка входа.
    """
    ranked = sorted(
        scores,
        key=lambda s: (s.score, s.job.created_at, s.job.id),
        reverse=True,
    )
    if limit is not None:
        ranked = ranked[:max(0, limit)]
    return ranked
