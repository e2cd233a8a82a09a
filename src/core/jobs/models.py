# src/core/jobs/models.py
"""
Модели данных заявок на сбор отработанного масла.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.common.constants import JobStatus, JobUrgency
from src.core.geo.models import Coordinate

DEFAULT_JOB_CATEGORY = "standard"


class JobRecord(BaseModel):
    """
    Заявка на сбор (снимок из хранилища заявок).
    Матчинг только читает заявки, поэтому модель заморожена.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(..., description="ID заявки")
    category: str = Field(DEFAULT_JOB_CATEGORY, description="Тип заявки")
    volume: Optional[float] = Field(None, ge=0.0, description="Объём, л")

    pickup: Optional[Coordinate] = Field(None, description="Точка забора")
    delivery: Optional[Coordinate] = Field(None, description="Точка доставки")
    pickup_city: Optional[str] = Field(None, description="Город забора")

    urgency: JobUrgency = Field(JobUrgency.NORMAL, description="Срочность")
    price: Optional[float] = Field(None, ge=0.0, description="Оплата, £")

    # Заявленное качество партии
    contamination: Optional[str] = Field(None, description="Степень загрязнения")
    quality_grade: Optional[str] = Field(None, description="Класс качества")

    status: JobStatus = Field(JobStatus.OPEN, description="Статус заявки")
    driver_id: Optional[str] = Field(None, description="Водитель, выполнявший заявку")

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Время создания")
    completed_at: Optional[datetime] = Field(None, description="Время завершения")

    @property
    def is_open(self) -> bool:
        """Открыта ли заявка для подбора."""
        return self.status == JobStatus.OPEN
