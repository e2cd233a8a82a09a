# src/core/users/repository.py
"""
Репозиторий профилей водителей и их настроек подбора (только чтение).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from src.common.constants import UserRole
from src.common.logger import log_error
from src.core.geo.models import Coordinate
from src.core.users.models import DriverProfile
from src.infra.database import DatabaseManager


def row_to_driver(row: Mapping[str, Any]) -> DriverProfile:
    """Преобразует строку users + driver_profiles в DriverProfile."""
    coordinates = None
    if row["latitude"] is not None and row["longitude"] is not None:
        coordinates = Coordinate(lat=float(row["latitude"]), lng=float(row["longitude"]))

    return DriverProfile(
        id=str(row["id"]),
        role=UserRole(row["role"]),
        name=row["name"] or "",
        coordinates=coordinates,
        vehicle_capacity=row["vehicle_capacity"],
        work_start=row["work_start"],
        work_end=row["work_end"],
        rating=row["rating"] or 0.0,
        completed_jobs=row["completed_jobs"] or 0,
    )


class DriverRepository:
    """Репозиторий водителей. Реализует DriverView."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_driver(self, driver_id: str) -> Optional[DriverProfile]:
        """
        Получает профиль пользователя по ID.

        Args:
            driver_id: ID пользователя

        Returns:
            Профиль или None (не найден или ошибка чтения)
        """
        try:
            row = await self._db.fetchrow(
                """
                SELECT u.id, u.role, u.name, u.latitude, u.longitude,
                       u.rating, u.completed_jobs,
                       dp.vehicle_capacity, dp.work_start, dp.work_end
                FROM users u
                LEFT JOIN driver_profiles dp ON dp.driver_id = u.id
                WHERE u.id = $1
                """,
                driver_id,
            )

            if row is None:
                return None

            return row_to_driver(row)
        except Exception as e:
            await log_error(f"Ошибка получения водителя {driver_id}: {e}")
            return None

    async def get_criteria_row(self, driver_id: str) -> Optional[Mapping[str, Any]]:
        """
        Получает сохранённые настройки подбора водителя.

        Returns:
            Словарь настроек или None, если водитель их не задавал

        Raises:
            Исключения хранилища пробрасываются: решение об откате
            на настройки по умолчанию принимает CriteriaRepository.
        """
        row = await self._db.fetchrow(
            """
            SELECT max_distance, min_rating, vehicle_capacity,
                   preferred_job_types, working_hours
            FROM driver_profiles
            WHERE driver_id = $1
            """,
            driver_id,
        )

        if row is None:
            return None

        return dict(row)
