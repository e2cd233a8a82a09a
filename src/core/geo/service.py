# src/core/geo/service.py
"""
Geo-сервис расчёта расстояний.
Дорожное расстояние через Google Directions API, при любой ошибке
расстояние по большому кругу (haversine).
"""

from __future__ import annotations

import asyncio
import math
from typing import Optional

import httpx

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_warning
from src.core.geo.models import Coordinate, RouteInfo

EARTH_RADIUS_KM = 6371.0


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """
    Расстояние между двумя точками по большому кругу (км).
    Чистая функция без I/O.
    """
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) *
         math.sin(dlng / 2) ** 2)
    # Погрешность округления у антиподов даёт h > 1
    h = min(1.0, max(0.0, h))

    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_KM * c


class GeoService:
    """
    Сервис расстояний поверх Google Maps Directions API.

    distance() никогда не бросает исключений: таймаут, ошибка сети,
    некорректный ответ или отсутствие ключа приводят к haversine.
    """

    DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

    def __init__(
        self,
        api_key: str | None = None,
        language: str = "en",
        timeout: float | None = None,
    ) -> None:
        """
        Инициализация сервиса.

        Args:
            api_key: API ключ Google Maps (берётся из конфига если None)
            language: Язык ответов
            timeout: Таймаут запроса в секундах (из конфига если None)
        """
        if api_key is None or timeout is None:
            from src.config import settings
            if api_key is None:
                api_key = settings.google_maps.GOOGLE_MAPS_API_KEY
                language = settings.google_maps.GEOCODING_LANGUAGE
            if timeout is None:
                timeout = settings.google_maps.ROUTING_TIMEOUT

        self._api_key = api_key
        self._language = language
        self._timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def calculate_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
    ) -> Optional[RouteInfo]:
        """
        Запрашивает маршрут между двумя точками.

        Returns:
            Информация о маршруте или None, если маршрут не найден

        Raises:
            httpx.HTTPError, KeyError, ValueError, TypeError при сбое сервиса
            или некорректном ответе
        """
        response = await self._client.get(
            self.DIRECTIONS_URL,
            params={
                "origin": origin.as_param(),
                "destination": destination.as_param(),
                "mode": "driving",
                "units": "metric",
                "key": self._api_key,
                "language": self._language,
            },
        )
        response.raise_for_status()

        data = response.json()

        if data.get("status") != "OK" or not data.get("routes"):
            await log_info(
                f"Маршрут не найден ({data.get('status')}): "
                f"({origin.as_param()}) -> ({destination.as_param()})",
                type_msg=TypeMsg.DEBUG,
            )
            return None

        route = data["routes"][0]
        leg = route["legs"][0]

        distance_km = float(leg["distance"]["value"]) / 1000
        duration_min = round(float(leg["duration"]["value"]) / 60)

        if not math.isfinite(distance_km) or distance_km < 0:
            raise ValueError(f"Некорректное расстояние в ответе: {distance_km}")

        return RouteInfo(
            distance_km=round(distance_km, 2),
            duration_minutes=duration_min,
            polyline=route.get("overview_polyline", {}).get("points", ""),
        )

    async def distance(self, a: Coordinate, b: Coordinate) -> float:
        """
        Дорожное расстояние между точками (км) с откатом на haversine.

        Args:
            a: Начальная точка
            b: Конечная точка

        Returns:
            Расстояние в км, всегда число
        """
        if not self._api_key:
            return haversine_distance(a, b)

        try:
            route = await asyncio.wait_for(
                self.calculate_route(a, b),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            await log_warning(f"Таймаут сервиса маршрутов ({self._timeout}s), используем haversine")
            return haversine_distance(a, b)
        except Exception as e:
            await log_warning(f"Ошибка сервиса маршрутов: {e}, используем haversine")
            return haversine_distance(a, b)

        if route is None:
            return haversine_distance(a, b)

        return route.distance_km
