# src/core/matching/service.py
"""
Сервис подбора заявок для водителей.
Единая точка входа для матчинга, поиска поблизости и рекомендаций.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from src.common.constants import MatchMode, TypeMsg, UserRole
from src.common.logger import log_info, log_warning
from src.core.geo.models import Coordinate
from src.core.geo.service import GeoService
from src.core.matching.assisted import AssistedRanker, with_fallback
from src.core.matching.criteria import CriteriaRepository
from src.core.matching.errors import DriverNotFoundError, InvalidRoleError
from src.core.matching.models import JobScore
from src.core.matching.proximity import ProximityQuery
from src.core.matching.recommender import HistoryRecommender
from src.core.matching.scorer import DeterministicScorer
from src.core.matching.views import (
    DriverLocationView,
    DriverView,
    JobPoolView,
    MatchingSnapshot,
)
from src.core.users.models import DriverProfile

if TYPE_CHECKING:
    from src.config.loader import MatchingSettings


class MatchingService:
    """
    Сервис матчинга заявок с водителями.

    Хранилища передаются через конструктор. Состояния между
    запросами сервис не держит: каждый запрос читает свой снимок.
    """

    def __init__(
        self,
        jobs: JobPoolView,
        drivers: DriverView,
        geo: GeoService,
        criteria_repo: Optional[CriteriaRepository] = None,
        locations: Optional[DriverLocationView] = None,
        assisted: Optional[AssistedRanker] = None,
        config: Optional["MatchingSettings"] = None,
    ) -> None:
        """
        Инициализация сервиса.

        Args:
            jobs: Хранилище заявок
            drivers: Хранилище профилей водителей
            geo: Geo-сервис расстояний
            criteria_repo: Репозиторий настроек (по умолчанию поверх drivers)
            locations: Живая геолокация водителей (опционально)
            assisted: Ранжирование через сервис инференса (опционально)
            config: Параметры матчинга (из конфига если None)
        """
        if config is None:
            from src.config import settings
            config = settings.matching

        self._jobs = jobs
        self._drivers = drivers
        self._locations = locations
        self._assisted = assisted
        self._config = config

        self._criteria = criteria_repo or CriteriaRepository(drivers, config)
        self._scorer = DeterministicScorer(geo, config)
        self._recommender = HistoryRecommender(config)
        self._proximity = ProximityQuery(geo, config)

    # =========================================================================
    # ЗАГРУЗКА ДАННЫХ
    # =========================================================================

    async def _load_driver(self, driver_id: str) -> DriverProfile:
        """
        Загружает профиль водителя, подставляя живую геолокацию.

        Raises:
            DriverNotFoundError: профиль не найден
            InvalidRoleError: пользователь не водитель
        """
        driver = await self._drivers.get_driver(driver_id)
        if driver is None:
            raise DriverNotFoundError(driver_id)
        if driver.role != UserRole.DRIVER:
            raise InvalidRoleError(driver_id, driver.role.value)

        if self._locations is not None:
            live = await self._locations.get_location(driver_id)
            if live is not None:
                driver = driver.with_location(live)

        return driver

    async def _snapshot(self, driver_id: str) -> MatchingSnapshot:
        driver = await self._load_driver(driver_id)
        criteria = await self._criteria.criteria_for(driver_id)
        jobs = await self._jobs.get_open_jobs()
        return MatchingSnapshot(
            driver=driver,
            criteria=criteria,
            jobs=tuple(job for job in jobs if job.is_open),
        )

    # =========================================================================
    # ПУБЛИЧНЫЕ ОПЕРАЦИИ
    # =========================================================================

    async def match_jobs_to_driver(
        self,
        driver_id: str,
        limit: Optional[int] = None,
        mode: MatchMode | str = MatchMode.DETERMINISTIC,
        min_score: Optional[float] = None,
    ) -> list[JobScore]:
        """
        Подбирает заявки для водителя.

        Args:
            driver_id: ID водителя
            limit: Максимум результатов (из конфига если None)
            mode: "deterministic" или "assisted"
            min_score: Отсечь оценки ниже порога (по умолчанию не отсекаются)

        Returns:
            Оценки по убыванию

        Raises:
            ValueError: неизвестный режим
            InvalidDriverError: водитель не найден или не водитель
        """
        mode = MatchMode(mode)
        if limit is None:
            limit = self._config.DEFAULT_MATCH_LIMIT

        snapshot = await self._snapshot(driver_id)

        async def deterministic() -> list[JobScore]:
            return await self._scorer.rank(snapshot.jobs, snapshot.driver, snapshot.criteria)

        if mode == MatchMode.ASSISTED and self._assisted is not None:
            scores = await with_fallback(
                self._assisted.attempt(snapshot.driver, snapshot.criteria, snapshot.jobs),
                deterministic,
            )
        else:
            if mode == MatchMode.ASSISTED:
                await log_warning("Ранжирование через сервис инференса не настроено")
            scores = await deterministic()

        if min_score is not None:
            scores = [s for s in scores if s.score >= min_score]

        result = scores[:max(0, limit)]

        await log_info(
            f"Подбор для водителя {driver_id} ({mode.value}): "
            f"пул {len(snapshot.jobs)}, возвращено {len(result)}",
            type_msg=TypeMsg.DEBUG,
        )

        return result

    async def get_nearby_jobs(
        self,
        driver_id: str,
        radius_km: Optional[float] = None,
    ) -> list[JobScore]:
        """
        Открытые заявки в радиусе от водителя.

        Raises:
            InvalidDriverError: водитель не найден или не водитель
            LocationUnavailableError: координаты водителя неизвестны
        """
        driver = await self._load_driver(driver_id)
        jobs = await self._jobs.get_open_jobs()
        return await self._proximity.nearby(driver, jobs, radius_km)

    async def get_recommended_jobs(
        self,
        driver_id: str,
        limit: Optional[int] = None,
    ) -> list[JobScore]:
        """
        Рекомендации по истории завершённых заявок.

        Raises:
            InvalidDriverError: водитель не найден или не водитель
        """
        await self._load_driver(driver_id)
        history = await self._jobs.get_completed_jobs(driver_id, self._config.HISTORY_LIMIT)
        jobs = await self._jobs.get_open_jobs()
        return await self._recommender.recommend(jobs, history, driver_id, limit)

    async def update_driver_location(self, driver_id: str, lat: float, lng: float) -> None:
        """
        Сохраняет живую геолокацию водителя.

        Raises:
            RuntimeError: хранилище геолокации не подключено
            ValidationError: координаты вне допустимого диапазона
        """
        if self._locations is None:
            raise RuntimeError("Хранилище геолокации водителей не подключено")

        await self._locations.update_location(driver_id, Coordinate(lat=lat, lng=lng))
