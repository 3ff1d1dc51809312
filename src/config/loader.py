# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секреты и адреса инфраструктуры переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SectionT = TypeVar("SectionT", bound=BaseModel)


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
    """Загружает config.json и возвращает словарь без ключей-комментариев."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "ridepool"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    COMPONENT_MODE: str = "all"


class DeploymentSettings(BaseModel):
    """Настройки развертывания компонентов."""
    JOIN_SERVICE_HOST: str = "0.0.0.0"
    JOIN_SERVICE_PORT: int = 8085
    WORKER_INSTANCES_COUNT: int = 1


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/ridepool.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760


class GeocodingSettings(BaseModel):
    """Настройки геокодера OpenRouteService."""
    ORS_API_URL: str = "https://api.openrouteservice.org"
    ORS_API_KEY: str = ""
    GEOCODING_TIMEOUT: float = 5.0
    GEOCODE_CACHE_TTL: int = 86400
    MAX_CONCURRENT_GEOCODES: int = 8

    @field_validator("ORS_API_KEY", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает API ключ из переменных окружения."""
        if not v:
            return os.getenv("ORS_API_KEY", "")
        return v


class DomainSettings(BaseModel):
    """Настройки локализации."""
    DEFAULT_LANGUAGE: str = "pl"
    SUPPORTED_LANGUAGES: list[str] = Field(default_factory=lambda: ["pl", "en"])
    TIMEZONE: str = "Europe/Warsaw"


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "ridepool"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 5
    DB_MAX_POOL_SIZE: int = 20
    DB_COMMAND_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis (кэш геокодера)."""
    REDIS_ENABLED: bool = True
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "ridepool"
    REDIS_MAX_CONNECTIONS: int = 50

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class RabbitMQSettings(BaseModel):
    """Настройки RabbitMQ."""
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = "ridepool.events"
    RABBITMQ_PREFETCH_COUNT: int = 10

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к RabbitMQ."""
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}{self.RABBITMQ_VHOST}"
        )


class SearchSettings(BaseModel):
    """Настройки поиска попутчиков."""
    MAX_ALTERNATIVES: int = 5


class JoinSettings(BaseModel):
    """Политики обработки заявок."""
    RESTORE_SEATS_ON_LEAVE: bool = True


class MaintenanceSettings(BaseModel):
    """Интервалы фоновых задач воркера (в секундах)."""
    RECONCILE_ON_STARTUP: bool = True
    RECONCILE_INTERVAL: int = 3600
    EXPIRY_SWEEP_INTERVAL: int = 86400


# Ключи, которые переопределяются переменными окружения
ENV_OVERRIDES: frozenset[str] = frozenset({
    "COMPONENT_MODE",
    "JOIN_SERVICE_HOST",
    "JOIN_SERVICE_PORT",
    "DB_HOST",
    "DB_PORT",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_PASSWORD",
    "RABBITMQ_HOST",
    "RABBITMQ_PORT",
    "RABBITMQ_USER",
    "RABBITMQ_PASSWORD",
    "ORS_API_URL",
    "ORS_API_KEY",
    "LOG_LEVEL",
})


def build_section(section_cls: type[SectionT], data: dict[str, Any]) -> SectionT:
    """
    Собирает секцию настроек из плоского словаря config.json.

    Берутся только поля секции; для ключей из ENV_OVERRIDES значение
    из окружения имеет приоритет. Приведение типов выполняет pydantic.
    """
    values: dict[str, Any] = {}
    for field_name in section_cls.model_fields:
        env_value = os.getenv(field_name) if field_name in ENV_OVERRIDES else None
        if env_value:
            values[field_name] = env_value
        elif field_name in data:
            values[field_name] = data[field_name]
    return section_cls(**values)


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    domain: DomainSettings = Field(default_factory=DomainSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    rabbitmq: RabbitMQSettings = Field(default_factory=RabbitMQSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    joins: JoinSettings = Field(default_factory=JoinSettings)
    maintenance: MaintenanceSettings = Field(default_factory=MaintenanceSettings)

    @classmethod
    def from_config_json(cls) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты переопределяются из переменных окружения.
        """
        data = load_config_json()

        return cls(
            system=build_section(SystemSettings, data),
            deployment=build_section(DeploymentSettings, data),
            logging=build_section(LoggingSettings, data),
            geocoding=build_section(GeocodingSettings, data),
            domain=build_section(DomainSettings, data),
            database=build_section(DatabaseSettings, data),
            redis=build_section(RedisSettings, data),
            rabbitmq=build_section(RabbitMQSettings, data),
            search=build_section(SearchSettings, data),
            joins=build_section(JoinSettings, data),
            maintenance=build_section(MaintenanceSettings, data),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Перед чтением config.json подгружает .env из корня проекта.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


settings = get_settings()
