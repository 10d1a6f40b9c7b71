# src/core/providers/store.py
"""
Порт хранилища исполнителей.

Ядро обращается к хранилищу только через эти протоколы;
каждое обращение ограничено по времени.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, AsyncContextManager, Awaitable, Mapping, Optional, Protocol, Sequence, TypeVar

from src.common.constants import EntityKind, ProviderKind
from src.common.exceptions import StoreUnavailable
from src.core.providers.models import ProviderRecord, ProviderRef

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderQueryFilters:
    """Фильтры, которые хранилище может применить на своей стороне."""
    kind: Optional[ProviderKind] = None
    only_available: bool = True
    verified_only: bool = False


class AggregateScope(Protocol):
    """
    Область пересчёта агрегатов одного исполнителя.
    Чтение и запись выполняются в одной транзакции под блокировкой исполнителя.
    """

    async def sum_review_ratings(self, ref: ProviderRef) -> tuple[Decimal, int]: ...

    async def sum_completed_orders(self, ref: ProviderRef) -> tuple[int, Decimal]: ...

    async def write_rating(self, ref: ProviderRef, rating_average: Decimal, rating_count: int) -> None: ...

    async def write_stats(self, ref: ProviderRef, total_completed: int, total_earnings: Decimal) -> None: ...


class ProviderStore(Protocol):
    """Хранилище исполнителей."""

    async def query_providers_near(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        filters: ProviderQueryFilters,
    ) -> Sequence[Mapping[str, Any]]: ...

    def aggregate_scope(self, ref: ProviderRef) -> AsyncContextManager[AggregateScope]: ...

    async def get_provider(self, ref: ProviderRef) -> Optional[ProviderRecord]: ...

    async def resolve_dependents(
        self,
        entity_kind: EntityKind,
        entity_id: int,
    ) -> Sequence[tuple[EntityKind, int]]: ...

    async def get_reviewable(self, kind: str, reviewable_id: int) -> Optional[Mapping[str, Any]]: ...

    async def summarize_reviews(self, reviewable_type: str, reviewable_id: int) -> tuple[Decimal, int, int]: ...


async def call_store(
    awaitable: Awaitable[T],
    timeout: float,
    operation: str,
    **context: Any,
) -> T:
    """
    Ожидает обращение к хранилищу не дольше timeout секунд.

    Raises:
        StoreUnavailable: истёк таймаут
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise StoreUnavailable(
            f"Хранилище не ответило за {timeout:g} с ({operation})",
            operation=operation,
            timeout=timeout,
            **context,
        ) from e
