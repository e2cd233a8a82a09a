# src/core/users/models.py
"""
Модели данных водителей.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.common.constants import UserRole
from src.core.geo.models import Coordinate


class DriverProfile(BaseModel):
    """
    Профиль водителя (снимок из хранилища профилей).
    Для матчинга только на чтение.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(..., description="ID пользователя")
    role: UserRole = Field(UserRole.DRIVER, description="Роль пользователя")
    name: str = Field("", description="Имя")

    coordinates: Optional[Coordinate] = Field(None, description="Текущие координаты")
    vehicle_capacity: Optional[float] = Field(None, ge=0.0, description="Вместимость ТС, л")

    work_start: Optional[str] = Field(None, description="Начало рабочего дня, HH:MM")
    work_end: Optional[str] = Field(None, description="Конец рабочего дня, HH:MM")

    rating: float = Field(0.0, ge=0.0, le=5.0, description="Рейтинг")
    completed_jobs: int = Field(0, ge=0, description="Завершённых заявок")

    @property
    def is_driver(self) -> bool:
        """Является ли пользователь водителем."""
        return self.role == UserRole.DRIVER

    @property
    def has_location(self) -> bool:
        """Известны ли координаты водителя."""
        return self.coordinates is not None

    def with_location(self, coordinates: Coordinate) -> "DriverProfile":
        """Возвращает копию профиля с актуальными координатами."""
        return self.model_copy(update={"coordinates": coordinates})

