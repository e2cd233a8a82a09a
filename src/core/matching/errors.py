# src/core/matching/errors.py
"""
Исключения матчинга.

Недоступность маршрутизации, хранилища настроек или сервиса
ранжирования исключений не порождает: для них есть откат.
"""

from __future__ import annotations


class MatchingError(Exception):
    """Базовое исключение матчинга."""


class InvalidDriverError(MatchingError):
    """Запрос для некорректного водителя."""

    def __init__(self, driver_id: str, reason: str) -> None:
        self.driver_id = driver_id
        self.reason = reason
        super().__init__(f"Водитель {driver_id}: {reason}")


class DriverNotFoundError(InvalidDriverError):
    """Водитель не найден."""

    def __init__(self, driver_id: str) -> None:
        super().__init__(driver_id, "не найден")


class InvalidRoleError(InvalidDriverError):
    """Пользователь не является водителем."""

    def __init__(self, driver_id: str, role: str) -> None:
        self.role = role
        super().__init__(driver_id, f"роль '{role}', требуется 'driver'")


class LocationUnavailableError(MatchingError):
    """Неизвестно местоположение водителя."""

    def __init__(self, driver_id: str) -> None:
        self.driver_id = driver_id
        super().__init__(f"Местоположение водителя {driver_id} неизвестно")
