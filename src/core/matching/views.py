# src/core/matching/views.py
"""
Интерфейсы хранилищ, которые читает матчинг.
Скоринг получает данные только через них, напрямую в БД не ходит.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from src.core.geo.models import Coordinate
from src.core.jobs.models import JobRecord
from src.core.matching.models import MatchingCriteria
from src.core.users.models import DriverProfile


class JobPoolView(Protocol):
    """Чтение заявок."""

    async def get_open_jobs(self) -> list[JobRecord]: ...

    async def get_completed_jobs(self, driver_id: str, limit: int = 50) -> list[JobRecord]: ...


class DriverView(Protocol):
    """Чтение профилей и настроек водителей."""

    async def get_driver(self, driver_id: str) -> Optional[DriverProfile]: ...

    async def get_criteria_row(self, driver_id: str) -> Optional[Mapping[str, Any]]: ...


class DriverLocationView(Protocol):
    """Живая геолокация водителей."""

    async def get_location(self, driver_id: str) -> Optional[Coordinate]: ...

    async def update_location(self, driver_id: str, coordinate: Coordinate) -> None: ...


@dataclass(frozen=True)
class MatchingSnapshot:
    """Данные одного запроса матчинга, прочитанные один раз."""
    driver: DriverProfile
    criteria: MatchingCriteria
    jobs: tuple[JobRecord, ...]
