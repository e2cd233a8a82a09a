"""
Модели геоданных.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """Точка на карте (WGS84)."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0, description="Широта")
    lng: float = Field(..., ge=-180.0, le=180.0, description="Долгота")

    def as_param(self) -> str:
        """Формат 'lat,lng' для query-параметров Google Maps."""
        return f"{self.lat},{self.lng}"


@dataclass
class RouteInfo:
    """Информация о маршруте."""
    distance_km: float
    duration_minutes: int
    polyline: str = ""
