# src/core/aggregates/stats.py
"""
Пересчёт статистики завершённых работ исполнителя.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import TypeMsg
from src.common.exceptions import ProviderNotFound
from src.common.logger import log_info, log_warning
from src.core.aggregates.locks import KeyedLock
from src.core.providers.kinds import get_kind_spec
from src.core.providers.models import ProviderRef, StatsAggregate
from src.core.providers.store import ProviderStore, call_store


class StatsAggregator:
    """Пересчитывает счётчик завершённых работ и заработок исполнителя."""

    def __init__(self, store: ProviderStore, locks: KeyedLock, timeout: float) -> None:
        self._store = store
        self._locks = locks
        self._timeout = timeout

    async def recompute_stats(self, ref: ProviderRef) -> Optional[StatsAggregate]:
        """
        Полный пересчёт по завершённым заказам (записям) исполнителя.

        Returns:
            Новый агрегат или None, если исполнитель не найден

        Raises:
            StoreUnavailable: хранилище не ответило
        """
        spec = get_kind_spec(ref.kind)

        try:
            async with self._locks.hold(ref):
                async with self._store.aggregate_scope(ref) as scope:
                    count, total = await call_store(
                        scope.sum_completed_orders(ref),
                        self._timeout,
                        "sum_completed_orders",
                        provider=str(ref),
                    )
                    aggregate = StatsAggregate(
                        provider=ref,
                        total_completed=count,
                        total_earnings=spec.round_earnings(total),
                    )
                    await call_store(
                        scope.write_stats(ref, aggregate.total_completed, aggregate.total_earnings),
                        self._timeout,
                        "write_stats",
                        provider=str(ref),
                    )
        except ProviderNotFound as e:
            await log_warning(f"Пересчёт статистики пропущен: {e.message}")
            return None

        await log_info(
            f"Статистика {ref} пересчитана: {aggregate.total_completed} работ, "
            f"заработок {aggregate.total_earnings}",
            type_msg=TypeMsg.DEBUG,
        )
        return aggregate
