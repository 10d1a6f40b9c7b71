# src/core/aggregates/rating.py
"""
Пересчёт рейтинга исполнителя по отзывам.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from src.common.constants import TypeMsg
from src.common.exceptions import ProviderNotFound
from src.common.logger import log_info, log_warning
from src.core.aggregates.locks import KeyedLock
from src.core.providers.kinds import ProviderKindSpec, get_kind_spec
from src.core.providers.models import ProviderRef, RatingAggregate
from src.core.providers.store import ProviderStore, call_store


def average_rating(total: Decimal, count: int, spec: ProviderKindSpec) -> Decimal:
    """Среднее оценок с округлением вида; 0 при отсутствии оценок."""
    if count <= 0:
        return spec.round_rating(Decimal(0))
    return spec.round_rating(Decimal(total) / Decimal(count))


class RatingAggregator:
    """Пересчитывает rating_average и rating_count исполнителя."""

    def __init__(self, store: ProviderStore, locks: KeyedLock, timeout: float) -> None:
        self._store = store
        self._locks = locks
        self._timeout = timeout

    async def recompute_rating(self, ref: ProviderRef) -> Optional[RatingAggregate]:
        """
        Полный пересчёт рейтинга из текущих отзывов.

        Returns:
            Новый агрегат или None, если исполнитель не найден

        Raises:
            StoreUnavailable: хранилище не ответило
        """
        spec = get_kind_spec(ref.kind)

        try:
            async with self._locks.hold(ref):
                async with self._store.aggregate_scope(ref) as scope:
                    total, count = await call_store(
                        scope.sum_review_ratings(ref),
                        self._timeout,
                        "sum_review_ratings",
                        provider=str(ref),
                    )
                    aggregate = RatingAggregate(
                        provider=ref,
                        rating_average=average_rating(total, count, spec),
                        rating_count=count,
                    )
                    await call_store(
                        scope.write_rating(ref, aggregate.rating_average, aggregate.rating_count),
                        self._timeout,
                        "write_rating",
                        provider=str(ref),
                    )
        except ProviderNotFound as e:
            await log_warning(f"Пересчёт рейтинга пропущен: {e.message}")
            return None

        await log_info(
            f"Рейтинг {ref} пересчитан: {aggregate.rating_average} ({aggregate.rating_count} оценок)",
            type_msg=TypeMsg.DEBUG,
        )
        return aggregate
