# src/core/aggregates/service.py
"""
Сервис агрегатов исполнителей.
Пересчёт рейтинга и статистики, чтение агрегатов через кэш.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import TypeMsg
from src.common.exceptions import ProviderNotFound
from src.common.logger import log_info
from src.core.aggregates.locks import KeyedLock
from src.core.aggregates.rating import RatingAggregator
from src.core.aggregates.stats import StatsAggregator
from src.core.cache.coordinator import CacheCoordinator
from src.core.cache.dependencies import CachedValue
from src.core.providers.kinds import get_kind_spec
from src.core.providers.models import (
    ProviderAggregates,
    ProviderRecord,
    ProviderRef,
    RatingAggregate,
    StatsAggregate,
)
from src.core.providers.store import ProviderStore, call_store


class AggregateService:
    """
    Сервис агрегатов.

    Пересчёты одного исполнителя выполняются строго последовательно,
    пересчёты разных исполнителей не ждут друг друга.
    """

    def __init__(
        self,
        store: ProviderStore,
        cache: CacheCoordinator | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Инициализация сервиса.

        Args:
            store: Хранилище исполнителей
            cache: Координатор кэша (без него чтения идут прямо в хранилище)
            timeout: Таймаут обращения к хранилищу (по умолчанию database.STORE_TIMEOUT)
        """
        if timeout is None:
            from src.config import settings
            timeout = settings.database.STORE_TIMEOUT
        self._store = store
        self._cache = cache
        self._timeout = timeout
        self._locks = KeyedLock()
        self._rating = RatingAggregator(store, self._locks, timeout)
        self._stats = StatsAggregator(store, self._locks, timeout)

    async def recompute_rating(self, ref: ProviderRef) -> Optional[RatingAggregate]:
        """Пересчитывает рейтинг и инвалидирует кэш исполнителя."""
        aggregate = await self._rating.recompute_rating(ref)
        if aggregate is not None:
            await self._invalidate(ref)
        return aggregate

    async def recompute_stats(self, ref: ProviderRef) -> Optional[StatsAggregate]:
        """Пересчитывает статистику и инвалидирует кэш исполнителя."""
        aggregate = await self._stats.recompute_stats(ref)
        if aggregate is not None:
            await self._invalidate(ref)
        return aggregate

    async def recompute_provider_aggregates(self, ref: ProviderRef) -> Optional[ProviderAggregates]:
        """
        Полный пересчёт рейтинга и статистики исполнителя.

        Returns:
            Оба агрегата или None, если исполнитель не найден

        Raises:
            StoreUnavailable: хранилище не ответило
        """
        rating = await self._rating.recompute_rating(ref)
        if rating is None:
            return None
        # Рейтинг уже записан, кэш сбрасывается даже без статистики
        try:
            stats = await self._stats.recompute_stats(ref)
        finally:
            await self._invalidate(ref)
        if stats is None:
            return None

        await log_info(f"Агрегаты {ref} пересчитаны", type_msg=TypeMsg.DEBUG)
        return ProviderAggregates(provider=ref, rating=rating, stats=stats)

    async def get_rating(self, ref: ProviderRef) -> RatingAggregate:
        """
        Рейтинг исполнителя (через кэш).

        Raises:
            ProviderNotFound: исполнитель не найден
        """
        async def load() -> Optional[RatingAggregate]:
            record = await self._load_provider(ref)
            if record is None:
                return None
            return RatingAggregate(
                provider=ref,
                rating_average=record.rating_average,
                rating_count=record.rating_count,
            )

        return await self._cached(CachedValue.PROVIDER_RATING, ref, RatingAggregate, load)

    async def get_stats(self, ref: ProviderRef) -> StatsAggregate:
        """
        Статистика исполнителя (через кэш).

        Raises:
            ProviderNotFound: исполнитель не найден
        """
        async def load() -> Optional[StatsAggregate]:
            record = await self._load_provider(ref)
            if record is None:
                return None
            return StatsAggregate(
                provider=ref,
                total_completed=record.total_completed,
                total_earnings=record.total_earnings,
            )

        return await self._cached(CachedValue.PROVIDER_STATS, ref, StatsAggregate, load)

    async def get_provider(self, ref: ProviderRef) -> ProviderRecord:
        """
        Профиль исполнителя (через кэш).

        Raises:
            ProviderNotFound: исполнитель не найден
        """
        return await self._cached(
            CachedValue.PROVIDER_PROFILE, ref, ProviderRecord, lambda: self._load_provider(ref)
        )

    async def _cached(self, value, ref, model_class, loader):
        entity_kind = get_kind_spec(ref.kind).entity_kind
        if self._cache is None:
            result = await loader()
        else:
            result = await self._cache.get_or_load(value, entity_kind, ref.id, model_class, loader)
        if result is None:
            raise ProviderNotFound(f"Исполнитель {ref} не найден", provider=str(ref))
        return result

    async def _load_provider(self, ref: ProviderRef) -> Optional[ProviderRecord]:
        return await call_store(
            self._store.get_provider(ref),
            self._timeout,
            "get_provider",
            provider=str(ref),
        )

    async def _invalidate(self, ref: ProviderRef) -> None:
        if self._cache is not None:
            await self._cache.invalidate(get_kind_spec(ref.kind).entity_kind, ref.id)
