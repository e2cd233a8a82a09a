# src/core/jobs/repository.py
"""
Репозиторий заявок (только чтение).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError

from src.common.constants import JobStatus, JobUrgency
from src.common.logger import log_error, log_warning
from src.core.geo.models import Coordinate
from src.core.jobs.models import DEFAULT_JOB_CATEGORY, JobRecord
from src.infra.database import DatabaseManager

_JOB_COLUMNS = """
    id, job_type, volume,
    pickup_latitude, pickup_longitude, delivery_latitude, delivery_longitude,
    pickup_city, urgency, payment, contamination, quality_grade,
    status, driver_id, created_at, completed_at
"""


def _coordinate(lat: Any, lng: Any) -> Optional[Coordinate]:
    """Собирает координату, если заданы обе компоненты."""
    if lat is None or lng is None:
        return None
    return Coordinate(lat=float(lat), lng=float(lng))


def row_to_job(row: Mapping[str, Any]) -> JobRecord:
    """
    Преобразует строку таблицы jobs в JobRecord.

    Raises:
        ValidationError, ValueError: если строка некорректна
    """
    return JobRecord(
        id=str(row["id"]),
        category=row["job_type"] or DEFAULT_JOB_CATEGORY,
        volume=row["volume"],
        pickup=_coordinate(row["pickup_latitude"], row["pickup_longitude"]),
        delivery=_coordinate(row["delivery_latitude"], row["delivery_longitude"]),
        pickup_city=row["pickup_city"],
        urgency=JobUrgency(row["urgency"] or JobUrgency.NORMAL.value),
        price=row["payment"],
        contamination=row["contamination"],
        quality_grade=row["quality_grade"],
        status=JobStatus(row["status"]),
        driver_id=str(row["driver_id"]) if row["driver_id"] is not None else None,
        created_at=row["created_at"],
        completed_at=row["completed_at"],
    )


class JobRepository:
    """Репозиторий заявок. Реализует JobPoolView."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def _rows_to_jobs(self, rows: list[Mapping[str, Any]]) -> list[JobRecord]:
        """Конвертирует строки, пропуская некорректные."""
        jobs: list[JobRecord] = []
        for row in rows:
            try:
                jobs.append(row_to_job(row))
            except (ValidationError, ValueError, KeyError) as e:
                await log_warning(f"Пропускаем некорректную заявку {row.get('id')}: {e}")
        return jobs

    async def get_open_jobs(self) -> list[JobRecord]:
        """
        Возвращает открытые заявки, новые первыми.

        Returns:
            Список заявок или пустой список при ошибке
        """
        try:
            rows = await self._db.fetch(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM jobs
                WHERE status = $1
                ORDER BY created_at DESC
                """,
                JobStatus.OPEN.value,
            )
        except Exception as e:
            await log_error(f"Ошибка получения открытых заявок: {e}")
            return []

        return await self._rows_to_jobs(rows)

    async def get_completed_jobs(self, driver_id: str, limit: int = 50) -> list[JobRecord]:
        """
        Возвращает завершённые водителем заявки, последние первыми.

        Args:
            driver_id: ID водителя
            limit: Сколько заявок брать из истории

        Returns:
            Список заявок или пустой список при ошибке
        """
        try:
            rows = await self._db.fetch(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM jobs
                WHERE driver_id = $1
                  AND status = $2
                ORDER BY completed_at DESC
                LIMIT $3
                """,
                driver_id,
                JobStatus.COMPLETED.value,
                limit,
            )
        except Exception as e:
            await log_error(f"Ошибка получения истории водителя {driver_id}: {e}")
            return []

        return await self._rows_to_jobs(rows)
