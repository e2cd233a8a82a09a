# tests/core/test_scorer.py
"""
Тесты для детерминированного скорера.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.common.constants import JobStatus, JobUrgency
from src.config.loader import MatchingSettings
from src.core.geo.models import Coordinate
from src.core.matching.models import JobScore, MatchingCriteria, rank_scores
from src.core.matching.scorer import DeterministicScorer, compute_job_score


class TestComputeJobScore:
    """Тесты чистой функции оценки."""

    def test_all_terms(self, job_factory, driver, criteria, matching_config) -> None:
        """Проверяет сумму всех слагаемых."""
        job = job_factory(volume=100.0, urgency=JobUrgency.HIGH, price=550.0)

        result = compute_job_score(job, driver, criteria, 5.0, matching_config)

        # 0.4 * 0.9 + 0.25 + 0.2 + 0.1 + 0.05 * 0.5
        assert result.score == pytest.approx(0.935)
        assert result.driver_id == driver.id
        assert "5.0km away" in result.reasons
        assert "Fits vehicle capacity" in result.reasons
        assert "Urgent collection" in result.reasons
        assert "Payment £550" in result.reasons

    def test_distance_unknown(self, job_factory, driver, criteria, matching_config) -> None:
        """Без координат слагаемое расстояния равно нулю."""
        job = job_factory(pickup=None)

        result = compute_job_score(job, driver, criteria, None, matching_config)

        assert "distance unknown" in result.reasons
        assert result.score == pytest.approx(0.45)

    def test_distance_beyond_max(self, job_factory, driver, criteria, matching_config) -> None:
        """Дальше максимума слагаемое обнуляется, а не уходит в минус."""
        result = compute_job_score(job_factory(), driver, criteria, 80.0, matching_config)

        assert result.score == pytest.approx(0.45)
        assert not any("km away" in reason for reason in result.reasons)

    @pytest.mark.parametrize("volume", [10.0, 150.0, 199.9, 200.0])
    def test_capacity_saturation(self, job_factory, driver, criteria, matching_config, volume) -> None:
        """Вместимость не меньше объёма даёт полный вес 0.25."""
        result = compute_job_score(job_factory(volume=volume), driver, criteria, 50.0, matching_config)

        assert result.score == pytest.approx(0.25 + 0.20)

    def test_capacity_partial(self, job_factory, driver, criteria, matching_config) -> None:
        """Объём больше вместимости: пропорциональная доля."""
        result = compute_job_score(job_factory(volume=500.0), driver, criteria, 50.0, matching_config)

        assert result.score == pytest.approx(0.25 * 0.4 + 0.20)
        assert "Partial load (40% of volume)" in result.reasons

    @pytest.mark.parametrize("volume", [None, 0.0])
    def test_capacity_missing_volume(self, job_factory, driver, criteria, matching_config, volume) -> None:
        """Нет объёма: без штрафа."""
        result = compute_job_score(job_factory(volume=volume), driver, criteria, 50.0, matching_config)

        assert result.score == pytest.approx(0.45)

    def test_capacity_from_criteria(self, job_factory, driver_factory, criteria, matching_config) -> None:
        """Если у водителя не задана вместимость, берётся из критериев."""
        driver = driver_factory(vehicle_capacity=None)
        result = compute_job_score(job_factory(volume=2000.0), driver, criteria, 50.0, matching_config)

        # 1000 / 2000
        assert result.score == pytest.approx(0.25 * 0.5 + 0.20)

    def test_category_preference(self, job_factory, driver, matching_config) -> None:
        """Слагаемое типа заявки срабатывает только на совпадение."""
        criteria = MatchingCriteria.defaults(matching_config).model_copy(
            update={"preferred_categories": frozenset({"hotel"})}
        )

        preferred = compute_job_score(
            job_factory(category="hotel"), driver, criteria, 50.0, matching_config
        )
        other = compute_job_score(
            job_factory(category="restaurant"), driver, criteria, 50.0, matching_config
        )

        assert preferred.score == pytest.approx(0.45)
        assert "Preferred job type: hotel" in preferred.reasons
        assert other.score == pytest.approx(0.25)

    @pytest.mark.parametrize("price, expected", [(None, 0.0), (30.0, 0.0), (50.0, 0.0), (1050.0, 0.05), (5000.0, 0.05)])
    def test_price_term(self, job_factory, driver, criteria, matching_config, price, expected) -> None:
        """Оплата ниже порога не даёт бонуса, выше порога насыщается."""
        result = compute_job_score(job_factory(price=price), driver, criteria, 50.0, matching_config)

        assert result.score == pytest.approx(0.45 + expected)

    def test_rejects_closed_job(self, job_factory, driver, criteria, matching_config) -> None:
        """Оценка строится только для открытых заявок."""
        with pytest.raises(ValueError):
            compute_job_score(
                job_factory(status=JobStatus.CLAIMED), driver, criteria, 1.0, matching_config
            )

    def test_zero_score_still_returned(self, job_factory, driver, matching_config) -> None:
        """Нулевая оценка не отсекается."""
        criteria = MatchingCriteria.defaults(matching_config).model_copy(
            update={"preferred_categories": frozenset({"hotel"})}
        )
        driver = driver.model_copy(update={"vehicle_capacity": 0.0})

        result = compute_job_score(job_factory(), driver, criteria, 100.0, matching_config)

        assert result.score == 0.0
        assert isinstance(result, JobScore)

    @pytest.mark.parametrize("distance", [0.0, 1.0, 25.0, 49.9, 50.0, 1000.0])
    def test_score_bounds(self, job_factory, driver, criteria, matching_config, distance) -> None:
        """Оценка всегда в [0, 1]."""
        job = job_factory(urgency=JobUrgency.HIGH, price=100000.0, volume=1.0)
        result = compute_job_score(job, driver, criteria, distance, matching_config)

        assert 0.0 <= result.score <= 1.0


class TestRankScores:
    """Тесты порядка выдачи."""

    def test_ties_broken_by_recency_then_id(self, job_factory, driver) -> None:
        """Равные оценки: новые заявки первыми, затем id по убыванию."""
        old = JobScore(job=job_factory("a", minutes_ago=30), driver_id=driver.id, score=0.5)
        new = JobScore(job=job_factory("b", minutes_ago=5), driver_id=driver.id, score=0.5)
        same_time = JobScore(job=job_factory("c", minutes_ago=5), driver_id=driver.id, score=0.5)
        best = JobScore(job=job_factory("d", minutes_ago=60), driver_id=driver.id, score=0.9)

        ranked = rank_scores([old, new, best, same_time])

        assert [s.job_id for s in ranked] == ["d", "c", "b", "a"]

    def test_limit(self, job_factory, driver) -> None:
        scores = [
            JobScore(job=job_factory(f"j{i}"), driver_id=driver.id, score=i / 10)
            for i in range(5)
        ]
        assert [s.job_id for s in rank_scores(scores, 2)] == ["j4", "j3"]


class TestDeterministicScorer:
    """Тесты для DeterministicScorer."""

    @pytest.mark.asyncio
    async def test_score_uses_geo(self, mock_geo, job_factory, driver, criteria, matching_config) -> None:
        """Расстояние запрашивается у Geo-сервиса."""
        scorer = DeterministicScorer(mock_geo, matching_config)

        result = await scorer.score(job_factory(), driver, criteria)

        mock_geo.distance.assert_awaited_once()
        assert "10.0km away" in result.reasons

    @pytest.mark.asyncio
    async def test_score_without_driver_location(
        self, mock_geo, job_factory, driver_factory, criteria, matching_config
    ) -> None:
        """Без координат водителя Geo-сервис не вызывается."""
        scorer = DeterministicScorer(mock_geo, matching_config)

        result = await scorer.score(job_factory(), driver_factory(coordinates=None), criteria)

        mock_geo.distance.assert_not_awaited()
        assert "distance unknown" in result.reasons

    @pytest.mark.asyncio
    async def test_score_all_skips_closed_jobs(
        self, mock_geo, job_factory, driver, criteria, matching_config
    ) -> None:
        """Закрытые заявки не оцениваются."""
        scorer = DeterministicScorer(mock_geo, matching_config)
        jobs = [
            job_factory("open"),
            job_factory("done", status=JobStatus.COMPLETED),
            job_factory("cancelled", status=JobStatus.CANCELLED),
        ]

        scores = await scorer.score_all(jobs, driver, criteria)

        assert [s.job_id for s in scores] == ["open"]

    @pytest.mark.asyncio
    async def test_rank_order_independent_of_completion(
        self, job_factory, driver, criteria, matching_config
    ) -> None:
        """Порядок не зависит от того, какой запрос расстояния завершился первым."""
        distances = {"near": (5.0, 0.05), "mid": (20.0, 0.0), "far": (45.0, 0.02)}

        async def distance(a: Coordinate, b: Coordinate) -> float:
            job_id = next(k for k, v in pickups.items() if v == b)
            km, delay = distances[job_id]
            await asyncio.sleep(delay)
            return km

        pickups = {
            "near": Coordinate(lat=51.51, lng=-0.10),
            "mid": Coordinate(lat=51.60, lng=-0.10),
            "far": Coordinate(lat=51.80, lng=-0.10),
        }
        geo = AsyncMock()
        geo.distance = AsyncMock(side_effect=distance)
        scorer = DeterministicScorer(geo, matching_config)
        jobs = [job_factory(job_id, pickup=point) for job_id, point in pickups.items()]

        ranked = await scorer.rank(jobs, driver, criteria)

        assert [s.job_id for s in ranked] == ["near", "mid", "far"]
        assert all(ranked[i].score >= ranked[i + 1].score for i in range(len(ranked) - 1))

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, job_factory, driver, criteria) -> None:
        """Одновременно выполняется не больше DISTANCE_CONCURRENCY запросов."""
        config = MatchingSettings(DISTANCE_CONCURRENCY=2)
        in_flight = 0
        peak = 0

        async def distance(a: Coordinate, b: Coordinate) -> float:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return 10.0

        geo = AsyncMock()
        geo.distance = AsyncMock(side_effect=distance)
        scorer = DeterministicScorer(geo, config)

        scores = await scorer.score_all([job_factory(f"j{i}") for i in range(6)], driver, criteria)

        assert len(scores) == 6
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_rank_limit(self, mock_geo, job_factory, driver, criteria, matching_config) -> None:
        scorer = DeterministicScorer(mock_geo, matching_config)
        jobs = [job_factory(f"j{i}", minutes_ago=i) for i in range(5)]

        ranked = await scorer.rank(jobs, driver, criteria, limit=3)

        # Равные оценки: новые первыми
        assert [s.job_id for s in ranked] == ["j0", "j1", "j2"]
