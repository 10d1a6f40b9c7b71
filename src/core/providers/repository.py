# src/core/providers/repository.py
"""
Репозиторий исполнителей в PostgreSQL.
Реализует порт ProviderStore поверх DatabaseManager.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional

import asyncpg
from asyncpg import Connection

from src.common.constants import EntityKind
from src.common.exceptions import ProviderNotFound, StoreUnavailable
from src.common.logger import log_error
from src.core.geo.distance import bounding_box, validate_coordinate
from src.core.providers.kinds import (
    PROVIDER_KINDS,
    ProviderKindSpec,
    get_kind_spec,
    kind_for_work_entity,
)
from src.core.providers.models import ProviderRecord, ProviderRef
from src.core.providers.store import ProviderQueryFilters, call_store
from src.core.reviews.targets import REVIEWABLE_REGISTRY, entity_kind_for_reviewable
from src.infra.database import DatabaseManager

# Сбои драйвера и сети, после которых обращение можно повторить
STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _select_columns(spec: ProviderKindSpec) -> str:
    """Колонки профиля в формате, который понимает ProviderRecord.from_row."""
    return f"""
        p.id,
        u.name AS display_name,
        p.latitude, p.longitude, p.location_updated_at,
        p.is_available, p.is_active, p.is_verified,
        p.rating_average, p.rating_count,
        p.{spec.completed_column} AS total_completed,
        p.total_earnings, p.commission_rate,
        {spec.capability_sql} AS capability_tags
    """


@asynccontextmanager
async def _store_errors(operation: str, **context: Any) -> AsyncGenerator[None, None]:
    """Переводит ошибки драйвера в StoreUnavailable."""
    try:
        yield
    except STORE_ERRORS as e:
        await log_error(f"Ошибка хранилища ({operation}): {e}")
        raise StoreUnavailable(
            f"Ошибка хранилища ({operation}): {e}",
            operation=operation,
            **context,
        ) from e


class ProviderAggregateScope:
    """Пересчёт агрегатов одного исполнителя внутри транзакции."""

    def __init__(self, conn: Connection, spec: ProviderKindSpec, timeout: float) -> None:
        self._conn = conn
        self._spec = spec
        self._timeout = timeout

    async def sum_review_ratings(self, ref: ProviderRef) -> tuple[Decimal, int]:
        """Сумма и количество непустых оценок исполнителя."""
        row = await call_store(
            self._conn.fetchrow(
                """
                SELECT COALESCE(SUM(rating), 0) AS total, COUNT(rating) AS cnt
                FROM reviews
                WHERE reviewable_type = $1 AND reviewable_id = $2 AND rating IS NOT NULL
                """,
                self._spec.reviewable_type,
                ref.id,
            ),
            self._timeout,
            "sum_review_ratings",
            provider=str(ref),
        )
        return Decimal(str(row["total"])), int(row["cnt"])

    async def sum_completed_orders(self, ref: ProviderRef) -> tuple[int, Decimal]:
        """Количество и сумма завершённых работ исполнителя."""
        spec = self._spec
        row = await call_store(
            self._conn.fetchrow(
                f"""
                SELECT COUNT(*) AS cnt, COALESCE(SUM({spec.work_amount_column}), 0) AS total
                FROM {spec.work_table}
                WHERE {spec.work_provider_column} = $1 AND status = ANY($2::text[])
                """,
                ref.id,
                list(spec.completed_statuses),
            ),
            self._timeout,
            "sum_completed_orders",
            provider=str(ref),
        )
        return int(row["cnt"]), Decimal(str(row["total"]))

    async def write_rating(self, ref: ProviderRef, rating_average: Decimal, rating_count: int) -> None:
        """Записывает оба поля рейтинга одним UPDATE."""
        await call_store(
            self._conn.execute(
                f"""
                UPDATE {self._spec.table}
                SET rating_average = $2, rating_count = $3, updated_at = NOW()
                WHERE id = $1
                """,
                ref.id,
                rating_average,
                rating_count,
            ),
            self._timeout,
            "write_rating",
            provider=str(ref),
        )

    async def write_stats(self, ref: ProviderRef, total_completed: int, total_earnings: Decimal) -> None:
        """Записывает счётчик работ и заработок одним UPDATE."""
        spec = self._spec
        await call_store(
            self._conn.execute(
                f"""
                UPDATE {spec.table}
                SET {spec.completed_column} = $2, total_earnings = $3, updated_at = NOW()
                WHERE id = $1
                """,
                ref.id,
                total_completed,
                total_earnings,
            ),
            self._timeout,
            "write_stats",
            provider=str(ref),
        )


class ProviderRepository:
    """Репозиторий исполнителей."""

    def __init__(self, db: DatabaseManager, timeout: float | None = None) -> None:
        """
        Инициализация репозитория.

        Args:
            db: Менеджер базы данных (Dependency Injection)
            timeout: Таймаут одного обращения (по умолчанию database.STORE_TIMEOUT)
        """
        if timeout is None:
            from src.config import settings
            timeout = settings.database.STORE_TIMEOUT
        self._db = db
        self._timeout = timeout

    async def query_providers_near(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        filters: ProviderQueryFilters,
    ) -> list[dict[str, Any]]:
        """
        Грубый отбор исполнителей по описывающему прямоугольнику.
        Точное расстояние проверяет вызывающая сторона.

        Returns:
            Строки профилей с ключом kind
        """
        box = bounding_box(validate_coordinate(latitude, longitude), radius_km)
        kinds = [filters.kind] if filters.kind is not None else list(PROVIDER_KINDS)

        rows: list[dict[str, Any]] = []
        for kind in kinds:
            spec = get_kind_spec(kind)
            availability = "AND p.is_available AND p.is_active" if filters.only_available else ""
            verified = "AND p.is_verified" if filters.verified_only else ""
            async with _store_errors("query_providers_near", kind=spec.kind.value):
                records = await call_store(
                    self._db.fetch(
                        f"""
                        SELECT {_select_columns(spec)}
                        FROM {spec.table} p
                        LEFT JOIN users u ON u.id = p.user_id
                        WHERE p.latitude IS NOT NULL AND p.longitude IS NOT NULL
                          AND p.latitude BETWEEN $1 AND $2
                          AND p.longitude BETWEEN $3 AND $4
                          {availability}
                          {verified}
                        """,
                        box.min_latitude,
                        box.max_latitude,
                        box.min_longitude,
                        box.max_longitude,
                    ),
                    self._timeout,
                    "query_providers_near",
                    kind=spec.kind.value,
                )
            rows.extend({**dict(r), "kind": spec.kind.value} for r in records)

        return rows

    @asynccontextmanager
    async def aggregate_scope(self, ref: ProviderRef) -> AsyncGenerator[ProviderAggregateScope, None]:
        """
        Транзакция пересчёта агрегатов под advisory-блокировкой исполнителя.

        Raises:
            ProviderNotFound: профиль исполнителя отсутствует
            StoreUnavailable: хранилище недоступно
        """
        spec = get_kind_spec(ref.kind)
        async with _store_errors("aggregate_scope", provider=str(ref)):
            async with self._db.transaction() as conn:
                await call_store(
                    conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", f"provider:{ref}"),
                    self._timeout,
                    "advisory_lock",
                    provider=str(ref),
                )
                exists = await call_store(
                    conn.fetchval(f"SELECT id FROM {spec.table} WHERE id = $1 FOR UPDATE", ref.id),
                    self._timeout,
                    "lock_provider",
                    provider=str(ref),
                )
                if exists is None:
                    raise ProviderNotFound(
                        f"Исполнитель {ref} не найден",
                        provider=str(ref),
                    )
                yield ProviderAggregateScope(conn, spec, self._timeout)

    async def get_provider(self, ref: ProviderRef) -> Optional[ProviderRecord]:
        """
        Получает профиль исполнителя.

        Returns:
            ProviderRecord или None
        """
        spec = get_kind_spec(ref.kind)
        async with _store_errors("get_provider", provider=str(ref)):
            row = await call_store(
                self._db.fetchrow(
                    f"""
                    SELECT {_select_columns(spec)}
                    FROM {spec.table} p
                    LEFT JOIN users u ON u.id = p.user_id
                    WHERE p.id = $1
                    """,
                    ref.id,
                ),
                self._timeout,
                "get_provider",
                provider=str(ref),
            )

        if row is None:
            return None
        return ProviderRecord.from_row(dict(row), spec.kind)

    async def resolve_dependents(
        self,
        entity_kind: EntityKind,
        entity_id: int,
    ) -> list[tuple[EntityKind, int]]:
        """
        Сущности, чьи кэшированные значения зависят от entity.
        Для удалённой сущности возвращает пустой список.
        """
        async with _store_errors("resolve_dependents", entity=f"{entity_kind.value}:{entity_id}"):
            if entity_kind == EntityKind.REVIEW:
                row = await call_store(
                    self._db.fetchrow(
                        "SELECT reviewable_type, reviewable_id FROM reviews WHERE id = $1",
                        entity_id,
                    ),
                    self._timeout,
                    "resolve_dependents",
                )
                if row is None:
                    return []
                owner = entity_kind_for_reviewable(row["reviewable_type"])
                return [(owner, row["reviewable_id"])] if owner is not None else []

            provider_kind = kind_for_work_entity(entity_kind)
            if provider_kind is not None:
                spec = get_kind_spec(provider_kind)
                provider_id = await call_store(
                    self._db.fetchval(
                        f"SELECT {spec.work_provider_column} FROM {spec.work_table} WHERE id = $1",
                        entity_id,
                    ),
                    self._timeout,
                    "resolve_dependents",
                )
                return [(spec.entity_kind, provider_id)] if provider_id is not None else []

        return []

    async def get_reviewable(self, kind: str, reviewable_id: int) -> Optional[dict[str, Any]]:
        """
        Строка магазина или товара (id, name, is_active, price).

        Returns:
            Словарь или None, если цель не найдена
        """
        spec = REVIEWABLE_REGISTRY[kind]
        if spec.table is None:
            raise ValueError(f"{kind} хранится как исполнитель, а не как цель отзыва")
        price = f"{spec.price_column} AS price" if spec.price_column else "NULL AS price"

        async with _store_errors("get_reviewable", reviewable=f"{kind}:{reviewable_id}"):
            row = await call_store(
                self._db.fetchrow(
                    f"SELECT id, name, is_active, {price} FROM {spec.table} WHERE id = $1",
                    reviewable_id,
                ),
                self._timeout,
                "get_reviewable",
                reviewable=f"{kind}:{reviewable_id}",
            )
        return dict(row) if row is not None else None

    async def summarize_reviews(self, reviewable_type: str, reviewable_id: int) -> tuple[Decimal, int, int]:
        """Сумма и количество непустых оценок, общее число отзывов."""
        async with _store_errors("summarize_reviews", reviewable=f"{reviewable_type}:{reviewable_id}"):
            row = await call_store(
                self._db.fetchrow(
                    """
                    SELECT COALESCE(SUM(rating), 0) AS total, COUNT(rating) AS rated, COUNT(*) AS cnt
                    FROM reviews
                    WHERE reviewable_type = $1 AND reviewable_id = $2
                    """,
                    reviewable_type,
                    reviewable_id,
                ),
                self._timeout,
                "summarize_reviews",
                reviewable=f"{reviewable_type}:{reviewable_id}",
            )
        return Decimal(str(row["total"])), int(row["rated"]), int(row["cnt"])
