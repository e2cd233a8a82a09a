# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секретные данные переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "reloop_matching"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760


class GoogleMapsSettings(BaseModel):
    """Настройки сервиса маршрутов Google Maps."""
    GOOGLE_MAPS_API_KEY: str = Field("", validate_default=True)
    GEOCODING_LANGUAGE: str = "en"
    ROUTING_TIMEOUT: float = 4.0

    @field_validator("GOOGLE_MAPS_API_KEY", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает API ключ из переменных окружения."""
        if not v:
            return os.getenv("GOOGLE_MAPS_API_KEY", "")
        return v


class InferenceSettings(BaseModel):
    """Настройки внешнего сервиса ранжирования (OpenAI-совместимый API)."""
    OPENROUTER_API_KEY: str = Field("", validate_default=True)
    INFERENCE_BASE_URL: str = "https://openrouter.ai/api/v1"
    INFERENCE_MODEL: str = "anthropic/claude-3.5-sonnet"
    INFERENCE_TEMPERATURE: float = 0.3
    INFERENCE_MAX_TOKENS: int = 2000
    INFERENCE_TIMEOUT: float = 9.0
    APP_TITLE: str = "Genesis Reloop Logistics"

    @field_validator("OPENROUTER_API_KEY", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает API ключ из переменных окружения."""
        if not v:
            return os.getenv("OPENROUTER_API_KEY", "")
        return v


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "reloop"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 2
    DB_MAX_POOL_SIZE: int = 10
    DB_COMMAND_TIMEOUT: int = 30

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "reloop"
    REDIS_MAX_CONNECTIONS: int = 20

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class RedisTTLSettings(BaseModel):
    """Настройки TTL ключей Redis."""
    LAST_SEEN_TTL: int = 300


class MatchingSettings(BaseModel):
    """
    Параметры подбора заявок для водителей.

    Передаётся в компоненты матчинга по значению, поэтому модель заморожена.
    Пороговые константы цены и объёма подобраны под рынок UCO в UK
    и должны настраиваться при переносе на другой рынок.
    """
    model_config = ConfigDict(frozen=True)

    # Критерии водителя по умолчанию
    DEFAULT_MAX_DISTANCE_KM: float = Field(50.0, gt=0)
    DEFAULT_MIN_RATING: float = 3.0
    DEFAULT_VEHICLE_CAPACITY: float = Field(1000.0, ge=0)
    DEFAULT_WORK_START: str = "08:00"
    DEFAULT_WORK_END: str = "18:00"

    # Веса детерминированного скорера (сумма = 1.0)
    WEIGHT_DISTANCE: float = 0.40
    WEIGHT_CAPACITY: float = 0.25
    WEIGHT_CATEGORY: float = 0.20
    WEIGHT_URGENCY: float = 0.10
    WEIGHT_PRICE: float = 0.05

    # Привлекательность оплаты: min(1, max(0, (price - floor) / span))
    PRICE_FLOOR: float = 50.0
    PRICE_SPAN: float = Field(1000.0, gt=0)

    # Поиск поблизости
    PROXIMITY_NORMALIZATION_KM: float = Field(50.0, gt=0)
    DEFAULT_NEARBY_RADIUS_KM: float = Field(25.0, gt=0)

    # Рекомендации по истории
    REC_WEIGHT_CATEGORY: float = 0.3
    REC_WEIGHT_AREA: float = 0.2
    REC_WEIGHT_VOLUME: float = 0.2
    REC_WEIGHT_PRICE: float = 0.3
    RECOMMENDATION_MIN_SCORE: float = Field(0.3, ge=0, le=1)
    HISTORY_LIMIT: int = Field(50, gt=0)

    # Лимиты и параллелизм
    DEFAULT_MATCH_LIMIT: int = Field(10, gt=0)
    DEFAULT_RECOMMEND_LIMIT: int = Field(5, gt=0)
    DISTANCE_CONCURRENCY: int = Field(8, gt=0)

    @model_validator(mode="after")
    def check_weights(self) -> "MatchingSettings":
        """Проверяет, что веса скорера и рекомендаций в сумме дают 1.0."""
        total = (
            self.WEIGHT_DISTANCE
            + self.WEIGHT_CAPACITY
            + self.WEIGHT_CATEGORY
            + self.WEIGHT_URGENCY
            + self.WEIGHT_PRICE
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Сумма весов скорера должна быть 1.0, получено {total:.4f}")

        rec_total = (
            self.REC_WEIGHT_CATEGORY
            + self.REC_WEIGHT_AREA
            + self.REC_WEIGHT_VOLUME
            + self.REC_WEIGHT_PRICE
        )
        if abs(rec_total - 1.0) > 1e-6:
            raise ValueError(f"Сумма весов рекомендаций должна быть 1.0, получено {rec_total:.4f}")
        return self


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

def _section(model: type[BaseModel], data: dict[str, Any], env_overrides: tuple[str, ...] = ()) -> Any:
    """
    Собирает секцию настроек из плоского config.json.
    Берёт только ключи, известные секции; ключи из env_overrides
    переопределяются переменными окружения.
    """
    values = {key: data[key] for key in model.model_fields if key in data}
    for key in env_overrides:
        env_value = os.getenv(key)
        if env_value:
            values[key] = env_value
    return model(**values)


class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    google_maps: GoogleMapsSettings = Field(default_factory=GoogleMapsSettings)
    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    redis_ttl: RedisTTLSettings = Field(default_factory=RedisTTLSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_dict(cls, config_data: dict[str, Any]) -> "Settings":
        """
        Создаёт объект Settings из плоского словаря config.json.
        Секреты и адреса сервисов переопределяются из переменных окружения.
        """
        # Фильтруем комментарии (ключи, начинающиеся с _comment_)
        data = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        return cls(
            system=_section(SystemSettings, data, ("ENVIRONMENT",)),
            logging=_section(LoggingSettings, data, ("LOG_LEVEL",)),
            google_maps=_section(GoogleMapsSettings, data, ("GOOGLE_MAPS_API_KEY",)),
            inference=_section(
                InferenceSettings,
                data,
                ("OPENROUTER_API_KEY", "INFERENCE_BASE_URL", "INFERENCE_MODEL"),
            ),
            database=_section(
                DatabaseSettings,
                data,
                ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD"),
            ),
            redis=_section(RedisSettings, data, ("REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD")),
            redis_ttl=_section(RedisTTLSettings, data),
            matching=_section(MatchingSettings, data),
        )

    @classmethod
    def from_config_json(cls) -> "Settings":
        """Создаёт объект Settings из config/config.json."""
        return cls.from_dict(load_config_json())


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Использует кэширование для производительности.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
