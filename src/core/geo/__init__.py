"""
Geo-сервис.
Расчёт расстояний через Google Maps с откатом на haversine.
"""

from src.core.geo.models import Coordinate, RouteInfo
from src.core.geo.service import GeoService, haversine_distance

__all__ = [
    "Coordinate",
    "RouteInfo",
    "GeoService",
    "haversine_distance",
]
