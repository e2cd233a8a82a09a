"""
Домен водителей.
Профили, настройки подбора и живая геолокация.
"""

from src.core.users.locations import DriverLocationStore
from src.core.users.models import DriverProfile
from src.core.users.repository import DriverRepository

__all__ = [
    "DriverProfile",
    "DriverRepository",
    "DriverLocationStore",
]
