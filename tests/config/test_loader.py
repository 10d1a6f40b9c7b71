# tests/config/test_loader.py
"""
Тесты для модуля загрузки конфигурации.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.config.loader import (
    CacheTTLSettings,
    DatabaseSettings,
    LoggingSettings,
    RankingSettings,
    RedisSettings,
    SearchSettings,
    Settings,
    get_config_path,
    get_project_root,
    load_config_json,
)


class TestPaths:
    """Тесты путей проекта."""

    def test_root_contains_src_and_config(self) -> None:
        root = get_project_root()

        assert (root / "src").exists()
        assert (root / "config").exists()

    def test_config_path(self) -> None:
        path = get_config_path()

        assert path.name == "config.json"
        assert path.parent.name == "config"


class TestLoadConfigJson:
    """Тесты для функции load_config_json."""

    def test_contains_required_keys(self) -> None:
        config = load_config_json()

        for key in ("PROJECT_NAME", "VERSION", "LOG_LEVEL", "MAX_RADIUS_KM", "DISTANCE_WEIGHT"):
            assert key in config, f"Отсутствует ключ: {key}"

    def test_raises_file_not_found(self, tmp_path: Path) -> None:
        with patch("src.config.loader.get_config_path") as mock_path:
            mock_path.return_value = tmp_path / "nonexistent.json"

            with pytest.raises(FileNotFoundError):
                load_config_json()


class TestSectionModels:
    """Тесты секций конфигурации."""

    def test_logging_format_validated(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(LOG_FORMAT="xml")

    def test_database_dsn(self) -> None:
        db = DatabaseSettings(DB_USER="u", DB_PASSWORD="p", DB_HOST="h", DB_PORT=5433, DB_NAME="n")

        assert db.dsn == "postgresql://u:p@h:5433/n"

    def test_store_timeout_positive(self) -> None:
        with pytest.raises(ValidationError):
            DatabaseSettings(STORE_TIMEOUT=0)

    def test_redis_url(self) -> None:
        assert RedisSettings(REDIS_PASSWORD="").url == "redis://localhost:6379/0"
        assert RedisSettings(REDIS_PASSWORD="secret").url == "redis://:secret@localhost:6379/0"

    def test_cache_ttl_positive(self) -> None:
        with pytest.raises(ValidationError):
            CacheTTLSettings(PROVIDER_RATING_TTL=0)

    def test_search_defaults_within_maximums(self) -> None:
        with pytest.raises(ValidationError):
            SearchSettings(DEFAULT_RADIUS_KM=60.0, MAX_RADIUS_KM=50.0)
        with pytest.raises(ValidationError):
            SearchSettings(DEFAULT_LIMIT=200, MAX_LIMIT=100)

    def test_ranking_defaults(self) -> None:
        ranking = RankingSettings()

        assert (ranking.DISTANCE_WEIGHT, ranking.RATING_WEIGHT, ranking.RECENCY_WEIGHT) == (0.5, 0.3, 0.2)
        assert ranking.RECENT_WINDOW_SECONDS == 300


class TestSettings:
    """Тесты для главного класса Settings."""

    def test_from_config_json(self) -> None:
        settings = Settings.from_config_json()

        assert settings.system.PROJECT_NAME == "provider_matching"
        assert settings.search.MAX_RADIUS_KM >= settings.search.DEFAULT_RADIUS_KM
        assert settings.redis.REDIS_NAMESPACE == "marketplace"

    def test_from_dict_filters_comment_keys(self) -> None:
        data: dict[str, Any] = {
            "_comment_search": "Поиск",
            "MAX_RADIUS_KM": 25.0,
            "DEFAULT_RADIUS_KM": 5.0,
            "RECENT_WINDOW_SECONDS": 120,
        }

        settings = Settings.from_config_json(data)

        assert settings.search.MAX_RADIUS_KM == 25.0
        assert settings.ranking.RECENT_WINDOW_SECONDS == 120

    def test_env_overrides_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.internal")
        monkeypatch.setenv("MATCHING_SERVICE_PORT", "9000")

        settings = Settings.from_config_json({})

        assert settings.database.DB_HOST == "db.internal"
        assert settings.deployment.MATCHING_SERVICE_PORT == 9000

    def test_config_file_is_valid_json(self, config_path: Path) -> None:
        with open(config_path, encoding="utf-8") as f:
            assert isinstance(json.load(f), dict)
