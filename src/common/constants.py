"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class UserRole(str, Enum):
    """Роли пользователей маркетплейса."""
    SUPPLIER = "supplier"
    DRIVER = "driver"
    BUYER = "buyer"
    ADMIN = "admin"


class JobStatus(str, Enum):
    """Статусы заявки на сбор."""
    OPEN = "open"
    CLAIMED = "claimed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JobUrgency(str, Enum):
    """Срочность заявки."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class MatchMode(str, Enum):
    """Режим подбора заявок."""
    DETERMINISTIC = "deterministic"
    ASSISTED = "assisted"


# Ключи Redis
DRIVERS_GEO_KEY = "drivers:locations"
DRIVER_LAST_SEEN_KEY = "driver:last_seen:{driver_id}"
