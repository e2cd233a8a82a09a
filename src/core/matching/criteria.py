# src/core/matching/criteria.py
"""
Загрузка настроек подбора водителя с подстановкой значений по умолчанию.
"""

from __future__ import annotations

import json
import math
from typing import TYPE_CHECKING, Any, Mapping, Optional

from pydantic import ValidationError

from src.common.logger import log_warning
from src.core.matching.models import MatchingCriteria
from src.core.matching.views import DriverView

if TYPE_CHECKING:
    from src.config.loader import MatchingSettings


def _as_float(value: Any, default: float) -> float:
    """Число из строки хранилища или значение по умолчанию."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_json(value: Any) -> Any:
    """asyncpg отдаёт jsonb строкой."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def criteria_from_row(row: Optional[Mapping[str, Any]], config: "MatchingSettings") -> MatchingCriteria:
    """
    Собирает MatchingCriteria из строки хранилища.
    Отсутствующие или некорректные поля заменяются значениями по умолчанию.
    """
    defaults = MatchingCriteria.defaults(config)
    if not row:
        return defaults

    max_distance = _as_float(row.get("max_distance"), defaults.max_distance_km)
    if max_distance <= 0:
        max_distance = defaults.max_distance_km

    min_rating = _as_float(row.get("min_rating"), defaults.min_rating)
    if not 0 <= min_rating <= 5:
        min_rating = defaults.min_rating

    capacity = _as_float(row.get("vehicle_capacity"), defaults.vehicle_capacity)
    if capacity < 0:
        capacity = defaults.vehicle_capacity

    categories = _as_json(row.get("preferred_job_types"))
    if not isinstance(categories, (list, tuple, set, frozenset)):
        categories = defaults.preferred_categories

    hours = _as_json(row.get("working_hours"))
    if not isinstance(hours, Mapping):
        hours = {}

    return MatchingCriteria(
        max_distance_km=max_distance,
        min_rating=min_rating,
        vehicle_capacity=capacity,
        preferred_categories=categories,
        work_start=hours.get("start") or defaults.work_start,
        work_end=hours.get("end") or defaults.work_end,
    )


class CriteriaRepository:
    """
    Репозиторий настроек подбора.

    criteria_for() не бросает исключений: при недоступном хранилище
    возвращаются настройки по умолчанию.
    """

    def __init__(self, store: DriverView, config: Optional["MatchingSettings"] = None) -> None:
        """
        Args:
            store: Хранилище профилей водителей
            config: Параметры матчинга (из конфига если None)
        """
        if config is None:
            from src.config import settings
            config = settings.matching

        self._store = store
        self._config = config

    async def criteria_for(self, driver_id: str) -> MatchingCriteria:
        """
        Возвращает настройки подбора водителя.

        Args:
            driver_id: ID водителя

        Returns:
            MatchingCriteria (по умолчанию, если настроек нет или хранилище недоступно)
        """
        try:
            row = await self._store.get_criteria_row(driver_id)
        except Exception as e:
            await log_warning(
                f"Хранилище настроек недоступно для водителя {driver_id}, "
                f"используем значения по умолчанию: {e}"
            )
            return MatchingCriteria.defaults(self._config)

        try:
            return criteria_from_row(row, self._config)
        except ValidationError as e:
            await log_warning(f"Некорректные настройки водителя {driver_id}: {e}")
            return MatchingCriteria.defaults(self._config)
