# tests/core/test_proximity.py
"""
Тесты отбора исполнителей в радиусе (src/core/matching/proximity.py).
"""

import asyncio
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.common.constants import ProviderKind
from src.common.exceptions import StoreUnavailable
from src.core.geo.distance import Coordinate
from src.core.matching.models import ProviderFilter
from src.core.matching.proximity import ProximityIndex, select_within_radius
from src.core.providers.models import ProviderRecord

ORIGIN = Coordinate(24.7136, 46.6753)


def make_record(provider_id: int, lat: Any, lon: Any, **fields: Any) -> ProviderRecord:
    defaults = {"is_available": True, "kind": ProviderKind.DRIVER}
    defaults.update(fields)
    return ProviderRecord(id=provider_id, latitude=lat, longitude=lon, **defaults)


class TestSelectWithinRadius:
    """Тесты чистой функции отбора."""

    def test_riyadh_example_only_nearby_returned(self) -> None:
        a = make_record(1, 24.7136, 46.6753)
        b = make_record(2, 24.6408, 46.7728)

        result = select_within_radius([b, a], ORIGIN, 10.0)

        assert [c.provider.id for c in result] == [1]
        assert result[0].distance_km == 0.0

    def test_every_result_within_radius(self) -> None:
        records = [make_record(i, 24.7136 + i * 0.01, 46.6753) for i in range(1, 20)]

        result = select_within_radius(records, ORIGIN, 5.0)

        assert result
        assert all(c.distance_km <= 5.0 for c in result)
        assert len(result) < len(records)

    def test_sorted_by_distance(self) -> None:
        records = [
            make_record(3, 24.75, 46.6753),
            make_record(1, 24.72, 46.6753),
            make_record(2, 24.73, 46.6753),
        ]

        result = select_within_radius(records, ORIGIN, 20.0)

        assert [c.provider.id for c in result] == [1, 2, 3]

    def test_equal_distance_ordered_by_id(self) -> None:
        records = [make_record(9, 24.7136, 46.6753), make_record(4, 24.7136, 46.6753)]

        result = select_within_radius(records, ORIGIN, 1.0)

        assert [c.provider.id for c in result] == [4, 9]

    def test_without_location_never_returned(self) -> None:
        records = [make_record(1, None, None), make_record(2, 24.7136, 46.6753)]

        result = select_within_radius(records, ORIGIN, 10_000.0)

        assert [c.provider.id for c in result] == [2]

    def test_unavailable_filtered_out(self) -> None:
        records = [
            make_record(1, 24.7136, 46.6753, is_available=False),
            make_record(2, 24.7136, 46.6753, is_active=False),
            make_record(3, 24.7136, 46.6753),
        ]

        result = select_within_radius(records, ORIGIN, 1.0)

        assert [c.provider.id for c in result] == [3]

    def test_capability_filter_is_case_insensitive(self) -> None:
        records = [
            make_record(1, 24.7136, 46.6753, capability_tags=frozenset({"Car"})),
            make_record(2, 24.7136, 46.6753, capability_tags=frozenset({"motorcycle"})),
        ]

        result = select_within_radius(records, ORIGIN, 1.0, ProviderFilter(capability="car"))

        assert [c.provider.id for c in result] == [1]

    def test_kind_filter(self) -> None:
        records = [
            make_record(1, 24.7136, 46.6753),
            make_record(1, 24.7136, 46.6753, kind=ProviderKind.TECHNICIAN),
        ]

        result = select_within_radius(
            records, ORIGIN, 1.0, ProviderFilter(kind=ProviderKind.TECHNICIAN)
        )

        assert [(c.provider.kind, c.provider.id) for c in result] == [(ProviderKind.TECHNICIAN, 1)]

    def test_custom_predicate(self) -> None:
        records = [
            make_record(1, 24.7136, 46.6753, is_verified=False),
            make_record(2, 24.7136, 46.6753, is_verified=True),
        ]

        result = select_within_radius(
            records, ORIGIN, 1.0, ProviderFilter(predicate=lambda r: r.is_verified)
        )

        assert [c.provider.id for c in result] == [2]

    def test_verified_only_filter(self) -> None:
        records = [
            make_record(1, 24.7136, 46.6753, is_verified=False),
            make_record(2, 24.7136, 46.6753, is_verified=True),
        ]

        result = select_within_radius(records, ORIGIN, 1.0, ProviderFilter(verified_only=True))

        assert [c.provider.id for c in result] == [2]

    def test_empty_input(self) -> None:
        assert select_within_radius([], ORIGIN, 10.0) == []


class TestProximityIndex:
    """Тесты поиска через хранилище."""

    @pytest.mark.asyncio
    async def test_reads_rows_from_store(self, store) -> None:
        store.add_provider(ProviderKind.DRIVER, 1, latitude=Decimal("24.7136"), longitude=Decimal("46.6753"))
        store.add_provider(ProviderKind.DRIVER, 2, latitude=Decimal("24.6408"), longitude=Decimal("46.7728"))
        store.add_provider(ProviderKind.TECHNICIAN, 1, latitude=24.714, longitude=46.676)

        index = ProximityIndex(store, timeout=1.0)
        result = await index.find_within_radius(ORIGIN, 10.0)

        assert [(c.provider.kind, c.provider.id) for c in result] == [
            (ProviderKind.DRIVER, 1),
            (ProviderKind.TECHNICIAN, 1),
        ]
        assert store.query_calls == 1

    @pytest.mark.asyncio
    async def test_partial_location_row_is_skipped(self, store) -> None:
        store.add_provider(ProviderKind.DRIVER, 1, latitude=24.7136, longitude=None)

        index = ProximityIndex(store, timeout=1.0)

        assert await index.find_within_radius(ORIGIN, 10.0) == []

    @pytest.mark.asyncio
    async def test_verified_only_passed_to_store(self) -> None:
        fake = AsyncMock()
        fake.query_providers_near = AsyncMock(return_value=[])

        index = ProximityIndex(fake, timeout=1.0)
        await index.find_within_radius(
            ORIGIN, 1.0, ProviderFilter(kind=ProviderKind.DRIVER, verified_only=True)
        )

        filters = fake.query_providers_near.call_args.args[3]
        assert filters.kind == ProviderKind.DRIVER
        assert filters.verified_only is True

    @pytest.mark.asyncio
    async def test_malformed_row_is_skipped(self) -> None:
        fake = AsyncMock()
        fake.query_providers_near = AsyncMock(return_value=[
            {"kind": "driver", "latitude": 24.7136, "longitude": 46.6753},
            {"id": 5, "kind": "driver", "latitude": 24.7136, "longitude": 46.6753, "is_available": True},
        ])

        index = ProximityIndex(fake, timeout=1.0)
        result = await index.find_within_radius(ORIGIN, 1.0)

        assert [c.provider.id for c in result] == [5]

    @pytest.mark.asyncio
    async def test_slow_store_raises_store_unavailable(self) -> None:
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return []

        fake = AsyncMock()
        fake.query_providers_near = slow

        index = ProximityIndex(fake, timeout=0.01)

        with pytest.raises(StoreUnavailable) as exc_info:
            await index.find_within_radius(ORIGIN, 1.0)
        assert exc_info.value.retryable is True
