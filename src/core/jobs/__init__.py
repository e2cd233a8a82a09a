"""
Домен заявок.
Модели и репозиторий открытых и завершённых заявок.
"""

from src.core.jobs.models import JobRecord
from src.core.jobs.repository import JobRepository

__all__ = [
    "JobRecord",
    "JobRepository",
]
