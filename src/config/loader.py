# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секретные данные и адреса сервисов переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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
    PROJECT_NAME: str = "provider_matching"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    COMPONENT_MODE: str = "all"


class DeploymentSettings(BaseModel):
    """Настройки развертывания компонентов."""
    MATCHING_SERVICE_HOST: str = "0.0.0.0"
    MATCHING_SERVICE_PORT: int = 8092
    MATCHING_SERVICE_INSTANCES_COUNT: int = 1
    WORKER_INSTANCES_COUNT: int = 1


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760
    LOG_BACKUP_COUNT: int = 5

    @field_validator("LOG_FORMAT")
    @classmethod
    def check_format(cls, v: str) -> str:
        """Допустимы только json и colored."""
        if v not in ("json", "colored"):
            raise ValueError(f"LOG_FORMAT должен быть json или colored, получено {v!r}")
        return v


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "marketplace"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 5
    DB_MAX_POOL_SIZE: int = 20
    DB_COMMAND_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0
    # Верхняя граница ожидания одного обращения ядра к хранилищу (секунды)
    STORE_TIMEOUT: float = Field(5.0, gt=0)

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
    REDIS_NAMESPACE: str = "marketplace"
    REDIS_MAX_CONNECTIONS: int = 50

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


class CacheTTLSettings(BaseModel):
    """Время жизни кэшированных производных значений (секунды)."""
    PROVIDER_PROFILE_TTL: int = Field(300, gt=0)
    PROVIDER_RATING_TTL: int = Field(3600, gt=0)
    PROVIDER_STATS_TTL: int = Field(3600, gt=0)
    REVIEWABLE_RATING_TTL: int = Field(3600, gt=0)
    REVIEWABLE_REVIEWS_COUNT_TTL: int = Field(3600, gt=0)


class RabbitMQSettings(BaseModel):
    """Настройки RabbitMQ."""
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = "marketplace.events"
    RABBITMQ_PREFETCH_COUNT: int = 10

    @field_validator("RABBITMQ_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        env_pass = os.getenv("RABBITMQ_PASSWORD", "")
        if env_pass:
            return env_pass
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к RabbitMQ."""
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}{self.RABBITMQ_VHOST}"
        )


class SearchSettings(BaseModel):
    """Настройки поиска исполнителей."""
    DEFAULT_RADIUS_KM: float = Field(10.0, gt=0)
    MAX_RADIUS_KM: float = Field(50.0, gt=0)
    DEFAULT_LIMIT: int = Field(10, ge=1)
    MAX_LIMIT: int = Field(100, ge=1)

    @model_validator(mode="after")
    def check_bounds(self) -> "SearchSettings":
        """Значения по умолчанию не должны выходить за максимумы."""
        if self.DEFAULT_RADIUS_KM > self.MAX_RADIUS_KM:
            raise ValueError("DEFAULT_RADIUS_KM больше MAX_RADIUS_KM")
        if self.DEFAULT_LIMIT > self.MAX_LIMIT:
            raise ValueError("DEFAULT_LIMIT больше MAX_LIMIT")
        return self


class RankingSettings(BaseModel):
    """
    Веса композитной оценки.
    Проверка весов (сумма > 0, неотрицательность) выполняется при ранжировании,
    чтобы ошибка конфигурации возвращалась как InvalidConfiguration.
    """
    DISTANCE_WEIGHT: float = 0.5
    RATING_WEIGHT: float = 0.3
    RECENCY_WEIGHT: float = 0.2
    RECENT_WINDOW_SECONDS: int = Field(300, gt=0)


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    cache_ttl: CacheTTLSettings = Field(default_factory=CacheTTLSettings)
    rabbitmq: RabbitMQSettings = Field(default_factory=RabbitMQSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    ranking: RankingSettings = Field(default_factory=RankingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def from_config_json(cls, config_data: dict[str, Any] | None = None) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и адреса переопределяются из переменных окружения.

        Args:
            config_data: Готовый словарь конфигурации (если None, читается файл)
        """
        if config_data is None:
            config_data = load_config_json()

        # Ключи _comment_* используются как комментарии в JSON
        data = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "provider_matching"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", True),
                ENVIRONMENT=data.get("ENVIRONMENT", "development"),
                COMPONENT_MODE=os.getenv("COMPONENT_MODE", data.get("COMPONENT_MODE", "all")),
            ),
            deployment=DeploymentSettings(
                MATCHING_SERVICE_HOST=os.getenv(
                    "MATCHING_SERVICE_HOST", data.get("MATCHING_SERVICE_HOST", "0.0.0.0")
                ),
                MATCHING_SERVICE_PORT=int(
                    os.getenv("MATCHING_SERVICE_PORT", data.get("MATCHING_SERVICE_PORT", 8092))
                ),
                MATCHING_SERVICE_INSTANCES_COUNT=data.get("MATCHING_SERVICE_INSTANCES_COUNT", 1),
                WORKER_INSTANCES_COUNT=data.get("WORKER_INSTANCES_COUNT", 1),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=data.get("LOG_LEVEL", "DEBUG"),
                LOG_TO_FILE=data.get("LOG_TO_FILE", False),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_FORMAT=data.get("LOG_FORMAT", "colored"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
                LOG_BACKUP_COUNT=data.get("LOG_BACKUP_COUNT", 5),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "marketplace")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 5),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 20),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 60),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 1.0),
                STORE_TIMEOUT=data.get("STORE_TIMEOUT", 5.0),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", data.get("REDIS_PORT", 6379))),
                REDIS_DB=data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=data.get("REDIS_NAMESPACE", "marketplace"),
                REDIS_MAX_CONNECTIONS=data.get("REDIS_MAX_CONNECTIONS", 50),
            ),
            cache_ttl=CacheTTLSettings(
                PROVIDER_PROFILE_TTL=data.get("PROVIDER_PROFILE_TTL", 300),
                PROVIDER_RATING_TTL=data.get("PROVIDER_RATING_TTL", 3600),
                PROVIDER_STATS_TTL=data.get("PROVIDER_STATS_TTL", 3600),
                REVIEWABLE_RATING_TTL=data.get("REVIEWABLE_RATING_TTL", 3600),
                REVIEWABLE_REVIEWS_COUNT_TTL=data.get("REVIEWABLE_REVIEWS_COUNT_TTL", 3600),
            ),
            rabbitmq=RabbitMQSettings(
                RABBITMQ_HOST=os.getenv("RABBITMQ_HOST", data.get("RABBITMQ_HOST", "localhost")),
                RABBITMQ_PORT=int(os.getenv("RABBITMQ_PORT", data.get("RABBITMQ_PORT", 5672))),
                RABBITMQ_USER=os.getenv("RABBITMQ_USER", data.get("RABBITMQ_USER", "guest")),
                RABBITMQ_PASSWORD=os.getenv("RABBITMQ_PASSWORD", data.get("RABBITMQ_PASSWORD", "guest")),
                RABBITMQ_VHOST=data.get("RABBITMQ_VHOST", "/"),
                RABBITMQ_EXCHANGE=data.get("RABBITMQ_EXCHANGE", "marketplace.events"),
                RABBITMQ_PREFETCH_COUNT=data.get("RABBITMQ_PREFETCH_COUNT", 10),
            ),
            search=SearchSettings(
                DEFAULT_RADIUS_KM=data.get("DEFAULT_RADIUS_KM", 10.0),
                MAX_RADIUS_KM=data.get("MAX_RADIUS_KM", 50.0),
                DEFAULT_LIMIT=data.get("DEFAULT_LIMIT", 10),
                MAX_LIMIT=data.get("MAX_LIMIT", 100),
            ),
            ranking=RankingSettings(
                DISTANCE_WEIGHT=data.get("DISTANCE_WEIGHT", 0.5),
                RATING_WEIGHT=data.get("RATING_WEIGHT", 0.3),
                RECENCY_WEIGHT=data.get("RECENCY_WEIGHT", 0.2),
                RECENT_WINDOW_SECONDS=data.get("RECENT_WINDOW_SECONDS", 300),
            ),
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


# Экспорт синглтона для удобного импорта
settings = get_settings()
