# src/core/matching/proximity.py
"""
Отбор исполнителей в радиусе от точки.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_warning
from src.core.geo.distance import Coordinate, distance
from src.core.matching.models import Candidate, ProviderFilter
from src.core.providers.models import ProviderRecord
from src.core.providers.store import ProviderQueryFilters, ProviderStore, call_store


def select_within_radius(
    records: Iterable[ProviderRecord],
    origin: Coordinate,
    radius_km: float,
    provider_filter: ProviderFilter | None = None,
) -> list[Candidate]:
    """
    Исполнители, прошедшие фильтр и находящиеся не дальше radius_km.

    Исполнители без геолокации не возвращаются никогда.
    Результат упорядочен по расстоянию, при равенстве по (id, вид).
    """
    provider_filter = provider_filter or ProviderFilter()

    selected: list[Candidate] = []
    for record in records:
        coordinate = record.coordinate
        if coordinate is None or not provider_filter.accepts(record):
            continue
        km = distance(origin, coordinate)
        if km <= radius_km:
            selected.append(Candidate(provider=record, distance_km=km))

    selected.sort(key=lambda c: (c.distance_km, c.provider.id, c.provider.kind.value))
    return selected


class ProximityIndex:
    """Поиск кандидатов через хранилище исполнителей."""

    def __init__(self, store: ProviderStore, timeout: float | None = None) -> None:
        """
        Args:
            store: Хранилище исполнителей
            timeout: Таймаут обращения к хранилищу (по умолчанию database.STORE_TIMEOUT)
        """
        if timeout is None:
            from src.config import settings
            timeout = settings.database.STORE_TIMEOUT
        self._store = store
        self._timeout = timeout

    async def find_within_radius(
        self,
        origin: Coordinate,
        radius_km: float,
        provider_filter: ProviderFilter | None = None,
    ) -> list[Candidate]:
        """
        Кандидаты в радиусе поиска, по возрастанию расстояния.

        Raises:
            StoreUnavailable: хранилище не ответило
        """
        provider_filter = provider_filter or ProviderFilter()

        rows = await call_store(
            self._store.query_providers_near(
                origin.latitude,
                origin.longitude,
                radius_km,
                ProviderQueryFilters(
                    kind=provider_filter.kind,
                    verified_only=provider_filter.verified_only,
                ),
            ),
            self._timeout,
            "query_providers_near",
        )

        records: list[ProviderRecord] = []
        for row in rows:
            record = await self._to_record(row)
            if record is not None:
                records.append(record)

        candidates = select_within_radius(records, origin, radius_km, provider_filter)

        await log_info(
            f"Найдено {len(candidates)} исполнителей в радиусе {radius_km} км "
            f"(строк из хранилища: {len(rows)})",
            type_msg=TypeMsg.DEBUG,
        )
        return candidates

    @staticmethod
    async def _to_record(row: Mapping[str, Any]) -> ProviderRecord | None:
        try:
            return ProviderRecord.from_row(row)
        except (ValueError, KeyError) as e:
            await log_warning(f"Пропущена некорректная строка исполнителя {row.get('id')}: {e}")
            return None
