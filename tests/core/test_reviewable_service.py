# tests/core/test_reviewable_service.py
"""
Тесты сервиса отзывов магазинов и товаров (src/core/reviews/service.py).
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.common.constants import EntityKind
from src.common.exceptions import InvalidConfiguration, ReviewableNotFound, StoreUnavailable
from src.core.cache.coordinator import CacheCoordinator
from src.core.reviews.service import ReviewableService
from src.core.reviews.targets import DriverTarget, ProductTarget, ShopTarget


@pytest.fixture
def service(store) -> ReviewableService:
    return ReviewableService(store, timeout=1.0)


class TestRating:
    """Средняя оценка и число отзывов."""

    @pytest.mark.asyncio
    async def test_average_rounds_half_up(self, store, service) -> None:
        store.add_reviewable("product", 3)
        for review_id, rating in enumerate([5, 4, 4], start=1):
            store.add_target_review(review_id, "product", 3, rating)

        rating = await service.get_rating(ProductTarget(id=3))

        # 13 / 3 = 4.333...
        assert rating.rating_average == Decimal("4.3")
        assert rating.rating_count == 3

    @pytest.mark.asyncio
    async def test_half_rounds_up(self, store, service) -> None:
        store.add_reviewable("shop", 1)
        for review_id, rating in enumerate([5, 4, 4, 4], start=1):
            store.add_target_review(review_id, "shop", 1, rating)

        rating = await service.get_rating(ShopTarget(id=1))

        assert rating.rating_average == Decimal("4.3")

    @pytest.mark.asyncio
    async def test_null_ratings_count_as_reviews_only(self, store, service) -> None:
        store.add_reviewable("shop", 1)
        store.add_target_review(1, "shop", 1, 3)
        store.add_target_review(2, "shop", 1, None)
        store.add_target_review(3, "shop", 2, 1)

        rating = await service.get_rating(ShopTarget(id=1))
        count = await service.get_reviews_count(ShopTarget(id=1))

        assert rating.rating_average == Decimal("3.0")
        assert rating.rating_count == 1
        assert count.reviews_count == 2

    @pytest.mark.asyncio
    async def test_no_reviews(self, store, service) -> None:
        store.add_reviewable("product", 8)

        rating = await service.get_rating(ProductTarget(id=8))

        assert rating.rating_average == Decimal("0")
        assert rating.rating_count == 0

    @pytest.mark.asyncio
    async def test_missing_target(self, service) -> None:
        with pytest.raises(ReviewableNotFound) as exc_info:
            await service.get_rating(ShopTarget(id=404))
        assert exc_info.value.http_status == 404

    @pytest.mark.asyncio
    async def test_provider_target_rejected(self, store, service) -> None:
        with pytest.raises(InvalidConfiguration):
            await service.get_reviews_count(DriverTarget(id=1))
        assert store.reviewables == {}


class TestDescribe:
    """Сводка по цели отзыва."""

    @pytest.mark.asyncio
    async def test_product_has_price(self, store, service) -> None:
        store.add_reviewable("product", 3, name="Масло 5W-30", price=Decimal("45.50"))
        store.add_target_review(1, "product", 3, 5)

        summary = await service.describe(ProductTarget(id=3))

        assert summary.display_name == "Масло 5W-30"
        assert summary.price == Decimal("45.50")
        assert summary.rating_average == Decimal("5.0")
        assert summary.reviews_count == 1

    @pytest.mark.asyncio
    async def test_shop_without_name(self, store, service) -> None:
        store.add_reviewable("shop", 2, name="")

        summary = await service.describe(ShopTarget(id=2))

        assert summary.display_name == "shop #2"
        assert summary.price is None

    @pytest.mark.asyncio
    async def test_missing_record(self, service) -> None:
        with pytest.raises(ReviewableNotFound):
            await service.describe(ProductTarget(id=1))

    @pytest.mark.asyncio
    async def test_store_timeout(self) -> None:
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        fake = MagicMock()
        fake.get_reviewable = slow
        service = ReviewableService(fake, timeout=0.01)

        with pytest.raises(StoreUnavailable):
            await service.describe(ShopTarget(id=1))


class TestCaching:
    """Значения читаются через координатор кэша."""

    @pytest.mark.asyncio
    async def test_second_read_served_from_cache(self, store, fake_redis) -> None:
        store.add_reviewable("product", 3)
        store.add_target_review(1, "product", 3, 4)
        service = ReviewableService(store, CacheCoordinator(fake_redis, store, timeout=1.0), timeout=1.0)
        store.summarize_reviews = AsyncMock(wraps=store.summarize_reviews)

        await service.get_rating(ProductTarget(id=3))
        await service.get_rating(ProductTarget(id=3))

        assert store.summarize_reviews.await_count == 1
        assert "reviewable_rating:product:3" in fake_redis.values

    @pytest.mark.asyncio
    async def test_new_review_visible_after_invalidate(self, store, fake_redis) -> None:
        store.add_reviewable("shop", 5)
        store.add_target_review(1, "shop", 5, 2)
        cache = CacheCoordinator(fake_redis, store, timeout=1.0)
        service = ReviewableService(store, cache, timeout=1.0)

        before = await service.get_reviews_count(ShopTarget(id=5))
        store.add_target_review(2, "shop", 5, 4)
        await cache.invalidate(EntityKind.REVIEW, 2)
        after = await service.get_reviews_count(ShopTarget(id=5))

        assert before.reviews_count == 1
        assert after.reviews_count == 2
