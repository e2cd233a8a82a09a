# src/core/__init__.py
"""
Доменный слой (Core Domain).
Подбор заявок для водителей, независимый от инфраструктуры.
"""

from src.core.jobs import JobRecord, JobRepository
from src.core.users import DriverProfile, DriverRepository, DriverLocationStore
from src.core.matching import MatchingService

__all__ = [
    "JobRecord",
    "JobRepository",
    "DriverProfile",
    "DriverRepository",
    "DriverLocationStore",
    "MatchingService",
]
