# tests/core/test_jobs_repository.py
"""
Тесты для репозитория заявок.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

import pytest

from src.common.constants import JobStatus, JobUrgency
from src.core.geo.models import Coordinate
from src.core.jobs.models import JobRecord
from src.core.jobs.repository import JobRepository, row_to_job


@pytest.fixture
def job_repository(mock_db) -> JobRepository:
    """Создаёт экземпляр JobRepository с моком БД."""
    return JobRepository(db=mock_db)


class TestJobRecord:
    """Тесты для модели JobRecord."""

    def test_defaults(self) -> None:
        job = JobRecord(id="j1")

        assert job.category == "standard"
        assert job.status == JobStatus.OPEN
        assert job.urgency == JobUrgency.NORMAL
        assert job.is_open
        assert job.pickup is None

    def test_negative_volume_rejected(self) -> None:
        with pytest.raises(ValueError):
            JobRecord(id="j1", volume=-5)

    def test_created_at_is_aware(self) -> None:
        """Время создания по умолчанию в UTC, как строки timestamptz из БД."""
        job = JobRecord(id="j1")
        stored = JobRecord(id="j2", created_at=datetime(2025, 1, 15, tzinfo=timezone.utc))

        assert job.created_at.tzinfo is not None
        assert job.created_at > stored.created_at


class TestRowToJob:
    """Тесты преобразования строки в JobRecord."""

    def test_full_row(self, sample_job_row: Dict[str, Any]) -> None:
        job = row_to_job(sample_job_row)

        assert job.id == "0b6f1c2e-1111-4a5b-9c3d-000000000001"
        assert job.category == "restaurant"
        assert job.pickup == Coordinate(lat=51.5155, lng=-0.0922)
        assert job.urgency == JobUrgency.HIGH
        assert job.price == 180.0
        assert job.quality_grade == "A"
        assert job.is_open

    def test_partial_coordinates(self, sample_job_row: Dict[str, Any]) -> None:
        """Одна координата без пары считается отсутствующей."""
        row = {**sample_job_row, "pickup_longitude": None, "job_type": None, "urgency": None}

        job = row_to_job(row)

        assert job.pickup is None
        assert job.category == "standard"
        assert job.urgency == JobUrgency.NORMAL


class TestJobRepository:
    """Тесты для JobRepository."""

    @pytest.mark.asyncio
    async def test_get_open_jobs(
        self, job_repository: JobRepository, mock_db, sample_job_row: Dict[str, Any]
    ) -> None:
        mock_db.fetch.return_value = [sample_job_row]

        jobs = await job_repository.get_open_jobs()

        assert len(jobs) == 1
        assert jobs[0].category == "restaurant"
        query, status = mock_db.fetch.call_args.args
        assert "ORDER BY created_at DESC" in query
        assert status == "open"

    @pytest.mark.asyncio
    async def test_get_open_jobs_skips_bad_rows(
        self, job_repository: JobRepository, mock_db, sample_job_row: Dict[str, Any]
    ) -> None:
        """Некорректная строка пропускается, остальные возвращаются."""
        bad = {**sample_job_row, "id": "bad", "status": "lost"}
        negative = {**sample_job_row, "id": "neg", "volume": -1}
        mock_db.fetch.return_value = [bad, sample_job_row, negative]

        jobs = await job_repository.get_open_jobs()

        assert [job.id for job in jobs] == [sample_job_row["id"]]

    @pytest.mark.asyncio
    async def test_get_open_jobs_error(self, job_repository: JobRepository, mock_db) -> None:
        mock_db.fetch.side_effect = Exception("DB error")

        assert await job_repository.get_open_jobs() == []

    @pytest.mark.asyncio
    async def test_get_completed_jobs(
        self, job_repository: JobRepository, mock_db, sample_job_row: Dict[str, Any]
    ) -> None:
        row = {
            **sample_job_row,
            "status": "completed",
            "driver_id": "d-42",
            "completed_at": datetime(2025, 1, 16, tzinfo=timezone.utc),
        }
        mock_db.fetch.return_value = [row]

        jobs = await job_repository.get_completed_jobs("d-42", limit=20)

        assert jobs[0].status == JobStatus.COMPLETED
        assert jobs[0].driver_id == "d-42"
        assert not jobs[0].is_open
        query, driver_id, status, limit = mock_db.fetch.call_args.args
        assert "ORDER BY completed_at DESC" in query
        assert (driver_id, status, limit) == ("d-42", "completed", 20)

    @pytest.mark.asyncio
    async def test_get_completed_jobs_error(self, job_repository: JobRepository, mock_db) -> None:
        mock_db.fetch.side_effect = Exception("DB error")

        assert await job_repository.get_completed_jobs("d-42") == []
