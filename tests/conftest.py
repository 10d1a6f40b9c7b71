# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")

from src.common.constants import EntityKind, ProviderKind
from src.common.exceptions import ProviderNotFound
from src.core.providers.kinds import get_kind_spec, kind_for_work_entity
from src.core.providers.models import ProviderRecord, ProviderRef
from src.core.providers.store import ProviderQueryFilters
from src.core.reviews.targets import entity_kind_for_reviewable


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


# =============================================================================
# ХРАНИЛИЩЕ В ПАМЯТИ
# =============================================================================

class FakeAggregateScope:
    """Область пересчёта поверх словарей FakeProviderStore."""

    def __init__(self, store: "FakeProviderStore") -> None:
        self._store = store

    async def sum_review_ratings(self, ref: ProviderRef) -> tuple[Decimal, int]:
        ratings = [
            r["rating"]
            for r in self._store.reviews.values()
            if r["reviewable_type"] == ref.kind.value
            and r["reviewable_id"] == ref.id
            and r["rating"] is not None
        ]
        return Decimal(sum(ratings)), len(ratings)

    async def sum_completed_orders(self, ref: ProviderRef) -> tuple[int, Decimal]:
        spec = get_kind_spec(ref.kind)
        done = [
            w for w in self._store.work.values()
            if w["kind"] == ref.kind
            and w["provider_id"] == ref.id
            and w["status"] in spec.completed_statuses
        ]
        return len(done), sum((Decimal(str(w["amount"])) for w in done), Decimal(0))

    async def write_rating(self, ref: ProviderRef, rating_average: Decimal, rating_count: int) -> None:
        self._store.writes.append(("rating", ref))
        row = self._store.providers[ref]
        row["rating_average"] = rating_average
        row["rating_count"] = rating_count

    async def write_stats(self, ref: ProviderRef, total_completed: int, total_earnings: Decimal) -> None:
        self._store.writes.append(("stats", ref))
        row = self._store.providers[ref]
        row["total_completed"] = total_completed
        row["total_earnings"] = total_earnings


class FakeProviderStore:
    """
    Хранилище исполнителей в памяти.
    Реализует протокол ProviderStore; одна блокировка на исполнителя,
    как advisory-блокировка в PostgreSQL.
    """

    def __init__(self) -> None:
        self.providers: dict[ProviderRef, dict[str, Any]] = {}
        self.reviews: dict[int, dict[str, Any]] = {}
        self.reviewables: dict[tuple[str, int], dict[str, Any]] = {}
        self.work: dict[tuple[EntityKind, int], dict[str, Any]] = {}
        self.writes: list[tuple[str, ProviderRef]] = []
        self.query_calls = 0
        self.active_scopes = 0
        self.max_active_scopes = 0
        self._locks: dict[ProviderRef, asyncio.Lock] = {}

    def add_provider(self, kind: ProviderKind, provider_id: int, **fields: Any) -> ProviderRef:
        ref = ProviderRef(kind=kind, id=provider_id)
        self.providers[ref] = {
            "id": provider_id,
            "kind": kind.value,
            "display_name": f"{kind.value}-{provider_id}",
            "latitude": None,
            "longitude": None,
            "location_updated_at": None,
            "is_available": True,
            "is_active": True,
            "is_verified": True,
            "rating_average": Decimal("0"),
            "rating_count": 0,
            "total_completed": 0,
            "total_earnings": Decimal("0"),
            "commission_rate": Decimal("10"),
            "capability_tags": [],
            **fields,
        }
        return ref

    def add_review(self, review_id: int, ref: ProviderRef, rating: Optional[int]) -> None:
        self.reviews[review_id] = {
            "reviewable_type": ref.kind.value,
            "reviewable_id": ref.id,
            "rating": rating,
        }

    def add_reviewable(self, kind: str, reviewable_id: int, **fields: Any) -> None:
        self.reviewables[(kind, reviewable_id)] = {
            "id": reviewable_id,
            "name": f"{kind}-{reviewable_id}",
            "is_active": True,
            "price": Decimal("9.99") if kind == "product" else None,
            **fields,
        }

    def add_target_review(
        self,
        review_id: int,
        reviewable_type: str,
        reviewable_id: int,
        rating: Optional[int],
    ) -> None:
        self.reviews[review_id] = {
            "reviewable_type": reviewable_type,
            "reviewable_id": reviewable_id,
            "rating": rating,
        }

    def add_work(self, work_id: int, ref: ProviderRef, status: str, amount: str) -> None:
        entity_kind = get_kind_spec(ref.kind).work_entity_kind
        self.work[(entity_kind, work_id)] = {
            "kind": ref.kind,
            "provider_id": ref.id,
            "status": status,
            "amount": amount,
        }

    async def query_providers_near(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        filters: ProviderQueryFilters,
    ) -> list[dict[str, Any]]:
        self.query_calls += 1
        rows = []
        for ref, row in self.providers.items():
            if filters.kind is not None and ref.kind != filters.kind:
                continue
            if filters.only_available and not (row["is_available"] and row["is_active"]):
                continue
            if filters.verified_only and not row["is_verified"]:
                continue
            rows.append(dict(row))
        return rows

    async def get_reviewable(self, kind: str, reviewable_id: int) -> Optional[dict[str, Any]]:
        row = self.reviewables.get((kind, reviewable_id))
        return dict(row) if row is not None else None

    async def summarize_reviews(self, reviewable_type: str, reviewable_id: int) -> tuple[Decimal, int, int]:
        rows = [
            r for r in self.reviews.values()
            if r["reviewable_type"] == reviewable_type and r["reviewable_id"] == reviewable_id
        ]
        ratings = [r["rating"] for r in rows if r["rating"] is not None]
        return Decimal(sum(ratings)), len(ratings), len(rows)

    @asynccontextmanager
    async def aggregate_scope(self, ref: ProviderRef) -> AsyncGenerator[FakeAggregateScope, None]:
        lock = self._locks.setdefault(ref, asyncio.Lock())
        async with lock:
            if ref not in self.providers:
                raise ProviderNotFound(f"Исполнитель {ref} не найден", provider=str(ref))
            self.active_scopes += 1
            self.max_active_scopes = max(self.max_active_scopes, self.active_scopes)
            try:
                # Даём другим задачам шанс вклиниться
                await asyncio.sleep(0)
                yield FakeAggregateScope(self)
            finally:
                self.active_scopes -= 1

    async def get_provider(self, ref: ProviderRef) -> Optional[ProviderRecord]:
        row = self.providers.get(ref)
        return ProviderRecord.from_row(row) if row is not None else None

    async def resolve_dependents(self, entity_kind: EntityKind, entity_id: int) -> list[tuple[EntityKind, int]]:
        if entity_kind == EntityKind.REVIEW:
            review = self.reviews.get(entity_id)
            if review is None:
                return []
            return [(entity_kind_for_reviewable(review["reviewable_type"]), review["reviewable_id"])]
        provider_kind = kind_for_work_entity(entity_kind)
        if provider_kind is not None:
            work = self.work.get((entity_kind, entity_id))
            if work is None:
                return []
            return [(get_kind_spec(provider_kind).entity_kind, work["provider_id"])]
        return []


@pytest.fixture
def store() -> FakeProviderStore:
    """Пустое хранилище исполнителей в памяти."""
    return FakeProviderStore()


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.get_model = AsyncMock(return_value=None)
    redis.get_generation = AsyncMock(return_value=0)
    redis.set_model_if_generation = AsyncMock(return_value=True)
    redis.delete_many = AsyncMock(return_value=0)
    return redis


class FakeRedisCache:
    """
    Кэш в памяти с тем же контрактом поколений, что у RedisClient:
    delete_many сдвигает поколение, запись проходит только при совпадении поколения.
    """

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.generations: dict[str, int] = {}
        self.rejected: list[str] = []

    async def get_model(self, key: str, model_class):
        data = self.values.get(key)
        return model_class.model_validate_json(data) if data is not None else None

    async def get_generation(self, key: str) -> int:
        return self.generations.get(key, 0)

    async def set_model_if_generation(self, key: str, model, generation: int, ttl=None) -> bool:
        if self.generations.get(key, 0) != generation:
            self.rejected.append(key)
            return False
        self.values[key] = model.model_dump_json()
        return True

    async def delete_many(self, keys) -> int:
        deleted = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                deleted += 1
            self.generations[key] = self.generations.get(key, 0) + 1
        return deleted


@pytest.fixture
def fake_redis() -> FakeRedisCache:
    """Кэш в памяти с поколениями ключей."""
    return FakeRedisCache()


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.subscribe = AsyncMock(return_value=True)
    event_bus.queue_prefix = "marketplace"
    event_bus.is_connected = True
    return event_bus


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def now() -> datetime:
    """Фиксированный момент времени для ранжирования."""
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_driver_row() -> dict[str, Any]:
    """Пример строки водителя из хранилища."""
    return {
        "id": 42,
        "kind": "driver",
        "display_name": "Ахмед",
        "latitude": Decimal("24.7136"),
        "longitude": Decimal("46.6753"),
        "location_updated_at": datetime(2024, 5, 1, 11, 58, tzinfo=timezone.utc),
        "is_available": True,
        "is_active": True,
        "is_verified": True,
        "rating_average": Decimal("4.5"),
        "rating_count": 12,
        "total_completed": 30,
        "total_earnings": Decimal("1520.50"),
        "commission_rate": Decimal("12.50"),
        "capability_tags": ["motorcycle"],
    }
